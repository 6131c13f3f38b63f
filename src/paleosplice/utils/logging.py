# src/paleosplice/utils/logging.py
"""
Logger factory for paleosplice.

Library modules call get_logger(__name__) and never attach handlers; the CLI
(or a host application) calls configure_logging() once to route records to a
rich console handler on stderr.
"""
from __future__ import annotations

import logging
import os
from typing import Optional, Union

_ROOT = "paleosplice"
_configured = False

logging.getLogger(_ROOT).addHandler(logging.NullHandler())


def _level(level: Union[str, int, None]) -> int:
    if level is None:
        level = os.environ.get("PALEOSPLICE_LOG_LEVEL", "WARNING")
    if isinstance(level, int):
        return level
    return int(getattr(logging, str(level).strip().upper(), logging.WARNING))


def configure_logging(level: Union[str, int, None] = None, *, rich_console: bool = True) -> logging.Logger:
    """
    Install one console handler on the paleosplice root logger.

    Idempotent: calling again replaces the previous handler and level.
    """
    global _configured

    lvl = _level(level)
    logger = logging.getLogger(_ROOT)
    logger.setLevel(lvl)

    for h in logger.handlers[:]:
        if not isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler: logging.Handler
    if rich_console:
        from rich.logging import RichHandler

        handler = RichHandler(show_path=False, rich_tracebacks=False, markup=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s"))
    handler.setLevel(lvl)
    logger.addHandler(handler)
    logger.propagate = False

    _configured = True
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the paleosplice namespace (usually get_logger(__name__))."""
    if not name or name == "__main__":
        return logging.getLogger(f"{_ROOT}.main" if name else _ROOT)
    if name == _ROOT or name.startswith(_ROOT + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT}.{name}")


def is_configured() -> bool:
    return _configured

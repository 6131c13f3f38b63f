# src/paleosplice/config/defaults.py
from __future__ import annotations

from .schema import RunConfig


def default_config() -> RunConfig:
    return RunConfig()

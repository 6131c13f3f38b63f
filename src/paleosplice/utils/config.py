# src/paleosplice/utils/config.py
from __future__ import annotations

import os
from dataclasses import fields, is_dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, TypeVar, Union

try:
    import yaml  # type: ignore
except Exception:  # pragma: no cover
    yaml = None  # type: ignore

T = TypeVar("T")

# Extra directory searched for bare config names (e.g. --config default.yaml).
CONFIG_DIR_ENV = "PALEOSPLICE_CONFIG_DIR"


def require_yaml() -> None:
    if yaml is None:
        raise RuntimeError("PyYAML is required to read run configs. Install with: pip install pyyaml")


def _candidates(path: Path) -> Iterator[Path]:
    yield path
    if path.is_absolute():
        return
    env = os.environ.get(CONFIG_DIR_ENV)
    if env:
        yield Path(env) / path
    for parent in [Path.cwd(), *Path.cwd().parents]:
        if (parent / "pyproject.toml").is_file():
            yield parent / "configs" / path
            break


def resolve_config_path(path: Union[str, Path]) -> Path:
    """
    First existing location among: the path as given, $PALEOSPLICE_CONFIG_DIR/<path>,
    and <project root>/configs/<path>. Unresolved paths come back unchanged.
    """
    p = Path(path)
    for c in _candidates(p):
        if c.is_file():
            return c.resolve()
    return p


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    require_yaml()
    p = resolve_config_path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Config not found: {p}")
    with p.open("r", encoding="utf-8") as fh:
        doc = yaml.safe_load(fh)
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ValueError(f"Config {p} must hold a mapping at top level, got {type(doc).__name__}.")
    return doc


def deep_get(d: Mapping[str, Any], dotted: str, default: Any = None) -> Any:
    """deep_get(cfg, "correlation.max_lag") -> value, or `default` if any level is missing."""
    node: Any = d
    for key in dotted.split("."):
        try:
            node = node[key]
        except (KeyError, TypeError):
            return default
    return node


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """New dict: `override` laid over `base`, nested mappings merged key by key."""
    merged: Dict[str, Any] = dict(base)
    for key, val in override.items():
        prev = merged.get(key)
        both_maps = isinstance(prev, Mapping) and isinstance(val, Mapping)
        merged[key] = deep_merge(prev, val) if both_maps else val
    return merged


def apply_overrides(obj: T, d: Any) -> T:
    """
    Copy of dataclass `obj` with fields taken from dict `d`. Nested dataclass
    fields recurse; keys that are not fields are ignored.
    """
    if not (is_dataclass(obj) and isinstance(d, Mapping)):
        return obj
    changes: Dict[str, Any] = {}
    for f in fields(obj):
        if f.name not in d:
            continue
        cur = getattr(obj, f.name)
        changes[f.name] = apply_overrides(cur, d[f.name]) if is_dataclass(cur) else d[f.name]
    return replace(obj, **changes)  # type: ignore[type-var]


def as_plain_dict(x: Any) -> Any:
    """Dataclass tree -> nested dicts / lists (what a YAML dump of the run config looks like)."""
    if is_dataclass(x):
        return {f.name: as_plain_dict(getattr(x, f.name)) for f in fields(x)}
    if isinstance(x, Mapping):
        return {k: as_plain_dict(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [as_plain_dict(v) for v in x]
    return x


def load_run_config(path: Optional[Union[str, Path]] = None, *, overrides: Optional[Dict[str, Any]] = None) -> Any:
    """
    RunConfig from defaults <- YAML file <- explicit overrides.

    `suggest.correlation` inherits the top-level `correlation:` section unless
    it is given itself.
    """
    from ..config.defaults import default_config

    raw: Dict[str, Any] = load_yaml(path) if path else {}
    if overrides:
        raw = deep_merge(raw, overrides)
    shared = raw.get("correlation")
    if isinstance(shared, Mapping):
        raw = deep_merge({"suggest": {"correlation": shared}}, raw)
    return apply_overrides(default_config(), raw)

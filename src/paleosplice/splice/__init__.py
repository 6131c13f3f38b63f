# src/paleosplice/splice/__init__.py
from __future__ import annotations

from .composite import SpliceInterval, empty_intervals, splice, splice_series

__all__ = [
    "SpliceInterval",
    "empty_intervals",
    "splice",
    "splice_series",
]

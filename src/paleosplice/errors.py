# src/paleosplice/errors.py
from __future__ import annotations

from typing import Any, Optional, Tuple


class PaleoSpliceError(Exception):
    """Base error for all paleosplice failures."""


# ---- Series construction / integrity ----
class InvalidSeries(PaleoSpliceError, ValueError):
    """Raised when a ProxySeries is built from inconsistent arrays."""


class DuplicatePositions(InvalidSeries):
    """Raised when positions must be strictly increasing but repeat or go backwards."""

    def __init__(self, message: str, *, index: Optional[int] = None, position: Optional[float] = None) -> None:
        super().__init__(message)
        self.index = index
        self.position = position


# ---- Calibration ----
class InsufficientTiePoints(PaleoSpliceError, ValueError):
    """Fewer than two tie points; an age model cannot be interpolated."""


class NonMonotonicTiePoints(PaleoSpliceError, ValueError):
    """
    Tie points whose age does not strictly increase with depth.

    `pair` holds the offending (shallower, deeper) tie points.
    """

    def __init__(self, message: str, *, pair: Tuple[Any, Any]) -> None:
        super().__init__(message)
        self.pair = pair


# ---- Correlation ----
class EmptySeries(PaleoSpliceError, ValueError):
    """A series (or the requested proxy within it) has no usable samples."""


class InsufficientOverlap(PaleoSpliceError, ValueError):
    """Two series do not share enough position range to be compared."""


class CorrelationCancelled(PaleoSpliceError):
    """A lag sweep observed a cancellation request and stopped."""


# ---- Suggestions ----
class SuggestionUnavailable(PaleoSpliceError):
    """The suggestion collaborator failed, timed out, or returned nothing usable."""


class AgeUnavailable(PaleoSpliceError, ValueError):
    """A suggestion cannot become a tie point: no existing age on either side."""

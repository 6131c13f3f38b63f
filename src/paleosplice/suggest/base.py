# src/paleosplice/suggest/base.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable

from ..section import Section


@dataclass(frozen=True)
class TiePointSuggestion:
    """
    Candidate depth correspondence between a reference and a target section.

    Carries no age: correlation aligns depths, it does not date them.
    """
    ref_position: float
    target_position: float
    confidence: float
    source: str = "correlation"
    lag: Optional[float] = None
    coefficient: Optional[float] = None

    def __post_init__(self) -> None:
        c = float(self.confidence)
        if not (0.0 <= c <= 1.0):
            raise ValueError(f"confidence must be within [0, 1] (got {c}).")
        object.__setattr__(self, "confidence", c)
        object.__setattr__(self, "ref_position", float(self.ref_position))
        object.__setattr__(self, "target_position", float(self.target_position))


@runtime_checkable
class Suggester(Protocol):
    """Anything that proposes tie-point pairs for two sections and one proxy."""

    def suggest(self, reference: Section, target: Section, proxy_key: str) -> List[TiePointSuggestion]: ...

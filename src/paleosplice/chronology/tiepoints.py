# src/paleosplice/chronology/tiepoints.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..errors import InsufficientTiePoints, NonMonotonicTiePoints


def new_tie_point_id(prefix: str = "tp") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class TiePoint:
    """One depth in one section pinned to an absolute age (ka)."""
    id: str
    section_id: str
    depth: float
    age: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "depth", float(self.depth))
        object.__setattr__(self, "age", float(self.age))
        if not (np.isfinite(self.depth) and np.isfinite(self.age)):
            raise ValueError(f"Tie point {self.id} has non-finite depth/age: {self.depth}, {self.age}")

    @classmethod
    def create(cls, section_id: str, depth: float, age: float, *, prefix: str = "tp") -> "TiePoint":
        return cls(id=new_tie_point_id(prefix), section_id=str(section_id), depth=depth, age=age)


def _by_depth(points: Iterable[TiePoint]) -> Tuple[TiePoint, ...]:
    # stable: equal depths keep entry order so the checker reports them as entered
    return tuple(sorted(points, key=lambda tp: tp.depth))


def check_tie_points(points: Sequence[TiePoint]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Validate a depth-sorted tie-point sequence and return (depths, ages) arrays.

    Raises:
      InsufficientTiePoints: fewer than 2 points
      NonMonotonicTiePoints: depth not strictly increasing, or age not strictly
                             increasing with depth; `.pair` names the offenders
    """
    pts = _by_depth(points)
    if len(pts) < 2:
        raise InsufficientTiePoints(f"At least two tie points are required to build an age model (got {len(pts)}).")

    for a, b in zip(pts[:-1], pts[1:]):
        if b.depth <= a.depth:
            raise NonMonotonicTiePoints(
                f"Tie points {a.id} and {b.id} share depth {a.depth:g} "
                f"(ages {a.age:g} and {b.age:g} ka).",
                pair=(a, b),
            )
        if b.age <= a.age:
            raise NonMonotonicTiePoints(
                f"Age does not increase with depth between tie points {a.id} "
                f"({a.depth:g}, {a.age:g} ka) and {b.id} ({b.depth:g}, {b.age:g} ka).",
                pair=(a, b),
            )

    depths = np.array([tp.depth for tp in pts], dtype="float64")
    ages = np.array([tp.age for tp in pts], dtype="float64")
    return depths, ages


@dataclass(frozen=True)
class AgeModel:
    """
    Immutable snapshot of one section's tie points, sorted by depth.

    Every edit returns a new snapshot with version + 1. Whatever was computed
    from an older snapshot stays tied to that snapshot; callers compare
    `version` (or identity) to know when to recompute.
    """

    section_id: str
    tie_points: Tuple[TiePoint, ...] = field(default=())
    version: int = 0

    def __post_init__(self) -> None:
        pts = _by_depth(self.tie_points)
        for tp in pts:
            if tp.section_id != self.section_id:
                raise ValueError(
                    f"Tie point {tp.id} belongs to section {tp.section_id!r}, not {self.section_id!r}."
                )
        object.__setattr__(self, "tie_points", pts)

    @classmethod
    def empty(cls, section_id: str) -> "AgeModel":
        return cls(section_id=str(section_id))

    @classmethod
    def for_section(cls, section_id: str, points: Iterable[TiePoint], *, version: int = 0) -> "AgeModel":
        """Pick this section's points out of a shared, mixed-section list."""
        sid = str(section_id)
        return cls(section_id=sid, tie_points=tuple(tp for tp in points if tp.section_id == sid), version=version)

    def __len__(self) -> int:
        return len(self.tie_points)

    @property
    def can_calibrate(self) -> bool:
        return len(self.tie_points) >= 2

    def check(self) -> Tuple[np.ndarray, np.ndarray]:
        return check_tie_points(self.tie_points)

    def is_consistent(self) -> bool:
        try:
            self.check()
        except (InsufficientTiePoints, NonMonotonicTiePoints):
            return False
        return True

    def get(self, tie_point_id: str) -> Optional[TiePoint]:
        for tp in self.tie_points:
            if tp.id == tie_point_id:
                return tp
        return None

    def nearest(self, depth: float, *, tolerance: float) -> Optional[TiePoint]:
        """Closest tie point strictly closer than `tolerance` to `depth` (ties -> shallower)."""
        best: Optional[TiePoint] = None
        best_d = float("inf")
        for tp in self.tie_points:
            d = abs(tp.depth - float(depth))
            if d < tolerance and d < best_d:
                best, best_d = tp, d
        return best

    # ---- edits (each returns a new snapshot) ----
    def add(self, tp: TiePoint) -> "AgeModel":
        if self.get(tp.id) is not None:
            raise ValueError(f"Tie point id already present: {tp.id}")
        return AgeModel(self.section_id, self.tie_points + (tp,), self.version + 1)

    def remove(self, tie_point_id: str) -> "AgeModel":
        if self.get(tie_point_id) is None:
            raise KeyError(f"No tie point {tie_point_id!r} in section {self.section_id!r}")
        kept = tuple(tp for tp in self.tie_points if tp.id != tie_point_id)
        return AgeModel(self.section_id, kept, self.version + 1)

    def replace(self, tp: TiePoint) -> "AgeModel":
        if self.get(tp.id) is None:
            raise KeyError(f"No tie point {tp.id!r} in section {self.section_id!r}")
        pts = tuple(tp if old.id == tp.id else old for old in self.tie_points)
        return AgeModel(self.section_id, pts, self.version + 1)

    def depths(self) -> List[float]:
        return [tp.depth for tp in self.tie_points]

    def ages(self) -> List[float]:
        return [tp.age for tp in self.tie_points]

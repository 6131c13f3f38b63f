# src/paleosplice/correlation/resample.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..errors import EmptySeries, InsufficientOverlap
from ..series import ProxySeries


@dataclass(frozen=True, eq=False)
class GapAwareInterpolator:
    """
    Linear interpolation of one proxy along its series positions that never
    bridges a missing sample.

    A query between two valid samples is defined only if those samples are
    neighbours in the full series (no absent / QC-excluded sample between them).
    Queries outside the valid range or inside a gap return NaN.
    """

    positions: np.ndarray
    values: np.ndarray
    seg_ok: np.ndarray  # (n-1,) True where valid samples i, i+1 are adjacent

    @classmethod
    def from_series(cls, series: ProxySeries, key: str) -> "GapAwareInterpolator":
        if series.n == 0:
            raise EmptySeries(f"Series{_sid(series)} has no samples.")
        if key not in series.values:
            raise EmptySeries(f"Proxy {key!r} is not measured in series{_sid(series)}.")

        series.require_strictly_increasing()
        mask = series.valid_mask(key)
        idx = np.where(mask)[0]
        if idx.size == 0:
            raise EmptySeries(f"Proxy {key!r} has no valid values in series{_sid(series)}.")

        return cls(
            positions=series.positions[idx],
            values=series.values[key][idx],
            seg_ok=np.diff(idx) == 1,
        )

    @property
    def n(self) -> int:
        return int(self.positions.size)

    @property
    def span(self) -> Tuple[float, float]:
        return float(self.positions[0]), float(self.positions[-1])

    def spacing(self) -> Optional[float]:
        if self.n < 2:
            return None
        d = np.diff(self.positions)
        return float(np.median(d))

    def __call__(self, q: np.ndarray) -> np.ndarray:
        q = np.asarray(q, dtype="float64")
        p = self.positions
        out = np.full(q.shape, np.nan, dtype="float64")
        inside = (q >= p[0]) & (q <= p[-1])
        if not np.any(inside):
            return out

        qi = q[inside]
        vals = np.interp(qi, p, self.values)

        if self.n > 1:
            j = np.searchsorted(p, qi, side="right") - 1
            j = np.clip(j, 0, self.n - 2)
            exact = (p[j] == qi) | (p[j + 1] == qi)
            ok = exact | self.seg_ok[j]
            vals[~ok] = np.nan

        out[inside] = vals
        return out


def _sid(series: ProxySeries) -> str:
    return f" {series.section_id}" if series.section_id else ""


@dataclass(frozen=True, eq=False)
class SharedGrid:
    """
    Regular grid shared by both series of a lag sweep.

    Anchored at the centre of the overlap window and wide enough that every
    centred shift within +-max_lag stays on it.
    """

    positions: np.ndarray
    step: float
    overlap: Tuple[float, float]

    @property
    def n(self) -> int:
        return int(self.positions.size)

    def window_mask(self) -> np.ndarray:
        lo, hi = self.overlap
        return (self.positions >= lo) & (self.positions <= hi)


def overlap_window(a: GapAwareInterpolator, b: GapAwareInterpolator) -> Tuple[float, float]:
    a0, a1 = a.span
    b0, b1 = b.span
    lo = max(a0, b0)
    hi = min(a1, b1)
    if lo > hi:
        raise InsufficientOverlap(
            f"Position ranges do not overlap: [{a0:g}, {a1:g}] vs [{b0:g}, {b1:g}]."
        )
    return lo, hi


def build_shared_grid(
    a: GapAwareInterpolator,
    b: GapAwareInterpolator,
    *,
    max_lag: float,
    resolution: Optional[float] = None,
    max_points: int = 200_000,
) -> SharedGrid:
    lo, hi = overlap_window(a, b)

    if resolution is not None:
        h = float(resolution)
    else:
        steps = [s for s in (a.spacing(), b.spacing()) if s is not None and s > 0]
        if not steps:
            raise InsufficientOverlap("Cannot derive a grid step: each series needs >= 2 valid samples.")
        h = min(steps)
    if not math.isfinite(h) or h <= 0:
        raise ValueError(f"Grid resolution must be > 0 (got {h}).")

    c = 0.5 * (lo + hi)
    half = 0.5 * float(max_lag)
    k_lo = math.ceil(((lo - half) - c) / h - 1e-9)
    k_hi = math.floor(((hi + half) - c) / h + 1e-9)
    n = int(k_hi - k_lo + 1)
    if n > int(max_points):
        raise ValueError(
            f"Shared grid would hold {n} points (> {int(max_points)}); "
            f"use a coarser resolution or a smaller max_lag."
        )

    grid = c + h * np.arange(k_lo, k_hi + 1, dtype="float64")
    return SharedGrid(positions=grid, step=h, overlap=(lo, hi))


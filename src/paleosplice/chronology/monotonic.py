# src/paleosplice/chronology/monotonic.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Tuple

import numpy as np


MonotonicMode = Literal["increasing", "nondecreasing"]


@dataclass(frozen=True)
class MonotonicConfig:
    """
    Sediment is assumed to get older downward: age should rise with depth.

    mode='increasing' flags equal consecutive ages as well as drops;
    mode='nondecreasing' only flags drops.
    """
    mode: MonotonicMode = "nondecreasing"


def find_age_reversals(
    ages: np.ndarray,
    *,
    cfg: MonotonicConfig = MonotonicConfig(),
    atol: float = 1e-10,
    rtol: float = 1e-8,
) -> np.ndarray:
    """
    Returns sample indices i (in depth order) where ages[i] goes back in time
    relative to the running maximum of the finite ages above it.

    NaNs are skipped. Comparison is float-tolerant so rounding noise is not flagged.
    """
    ages = np.asarray(ages, dtype="float64")
    if ages.size == 0:
        return np.zeros((0,), dtype=np.int64)

    fin = np.isfinite(ages)
    if fin.sum() <= 1:
        return np.zeros((0,), dtype=np.int64)

    idx = np.where(fin)[0]
    x = ages[fin]
    prev_max = np.maximum.accumulate(x)[:-1]
    cur = x[1:]

    close = np.isclose(cur, prev_max, atol=float(atol), rtol=float(rtol))
    if cfg.mode == "nondecreasing":
        bad = (cur < prev_max) & ~close
    elif cfg.mode == "increasing":
        bad = (cur < prev_max) | close
    else:
        raise ValueError(f"Unknown MonotonicConfig.mode: {cfg.mode}")

    return idx[1:][bad].astype(np.int64, copy=False)


def reversal_intervals(ages: np.ndarray, depths: np.ndarray, rev_idx: np.ndarray) -> List[Tuple[float, float]]:
    """Collapse reversal indices into (top_depth, base_depth) runs for reporting."""
    rev_idx = np.asarray(rev_idx, dtype=np.int64)
    if rev_idx.size == 0:
        return []
    depths = np.asarray(depths, dtype="float64")

    out: List[Tuple[float, float]] = []
    start = int(rev_idx[0])
    prev = start
    for i in rev_idx[1:]:
        i = int(i)
        if i != prev + 1:
            out.append((float(depths[start - 1]), float(depths[prev])))
            start = i
        prev = i
    out.append((float(depths[start - 1]), float(depths[prev])))
    return out

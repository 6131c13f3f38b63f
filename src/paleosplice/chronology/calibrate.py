# src/paleosplice/chronology/calibrate.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence, Tuple, Union

import numpy as np

from ..errors import InvalidSeries
from ..series import Axis, ProxySeries, ReversalDetected
from ..utils.logging import get_logger
from .monotonic import MonotonicConfig, find_age_reversals, reversal_intervals
from .tiepoints import AgeModel, TiePoint, check_tie_points

log = get_logger(__name__)


@dataclass(frozen=True)
class CalibrationConfig:
    # Log a summary line when samples fall outside the tie-point range.
    warn_on_extrapolation: bool = True
    monotonic: MonotonicConfig = MonotonicConfig(mode="nondecreasing")


def depth_to_age(
    depths: np.ndarray,
    tie_depths: np.ndarray,
    tie_ages: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Piecewise-linear depth -> age through validated tie points.

    Inside the tie-point range each depth uses its bracketing pair; outside it
    the nearest pair's line is extended. A depth equal to a tie depth returns
    that tie point's age exactly.

    Returns:
      ages (float64), extrapolated (bool mask)
    """
    z = np.asarray(depths, dtype="float64")
    d = np.asarray(tie_depths, dtype="float64")
    a = np.asarray(tie_ages, dtype="float64")
    if d.size < 2 or d.size != a.size:
        raise ValueError("depth_to_age needs >= 2 tie depths with matching ages.")

    # segment k spans d[k]..d[k+1]; clipping reuses the end segments for extrapolation
    k = np.searchsorted(d, z, side="right") - 1
    k = np.clip(k, 0, d.size - 2)

    d1 = d[k]
    d2 = d[k + 1]
    a1 = a[k]
    a2 = a[k + 1]
    ages = a1 + (z - d1) * (a2 - a1) / (d2 - d1)

    hit = np.searchsorted(d, z, side="left")
    hit_c = np.clip(hit, 0, d.size - 1)
    exact = d[hit_c] == z
    ages[exact] = a[hit_c[exact]]

    extrapolated = (z < d[0]) | (z > d[-1])
    return ages, extrapolated


def calibrate(
    series: ProxySeries,
    tie_points: Union[AgeModel, Sequence[TiePoint]],
    *,
    cfg: CalibrationConfig = CalibrationConfig(),
) -> ProxySeries:
    """
    Re-key a depth-indexed section series on age.

    Same samples, same proxy values, QC flags carried over; original depths are
    kept in `depths` and ages outside the tie-point range are flagged in
    `extrapolated`.

    Raises:
      InvalidSeries:          series is not depth-indexed, or tie points belong to another section
      DuplicatePositions:     repeated / unordered depths in the series
      InsufficientTiePoints:  < 2 tie points
      NonMonotonicTiePoints:  age not strictly increasing with depth

    If the resulting ages are not monotonic the samples stay in depth order and
    a ReversalDetected warning is attached; otherwise the output is age-ascending.
    """
    if series.axis is not Axis.DEPTH:
        raise InvalidSeries(f"calibrate() expects a depth-indexed series, got axis={series.axis.value}.")

    points = tuple(tie_points.tie_points) if isinstance(tie_points, AgeModel) else tuple(tie_points)
    if series.section_id is not None:
        foreign = [tp.id for tp in points if tp.section_id != series.section_id]
        if foreign:
            raise InvalidSeries(
                f"Tie points {foreign} do not belong to section {series.section_id!r}."
            )

    tie_depths, tie_ages = check_tie_points(points)
    series.require_strictly_increasing()

    ages, extrap = depth_to_age(series.positions, tie_depths, tie_ages)

    warnings = list(series.warnings)
    rev = find_age_reversals(ages, cfg=cfg.monotonic)
    if rev.size:
        spans = reversal_intervals(ages, series.positions, rev)
        w = ReversalDetected(
            indices=tuple(int(i) for i in rev),
            message=(
                f"Calibrated ages reverse at {rev.size} sample(s)"
                + (f" in section {series.section_id}" if series.section_id else "")
                + ": depth intervals " + ", ".join(f"{a:g}-{b:g}" for a, b in spans)
            ),
        )
        warnings.append(w)
        log.warning(w.message)
        order = np.arange(series.n)
    else:
        order = np.argsort(ages, kind="stable")

    n_ex = int(extrap.sum())
    if n_ex and cfg.warn_on_extrapolation:
        log.info(
            "%d of %d sample(s)%s extrapolated beyond tie points %g-%g",
            n_ex,
            series.n,
            f" in section {series.section_id}" if series.section_id else "",
            float(tie_depths[0]),
            float(tie_depths[-1]),
        )

    return replace(
        series,
        axis=Axis.AGE,
        positions=ages[order],
        values={k: v[order] for k, v in series.values.items()},
        qc=series.qc[order],
        extrapolated=extrap[order],
        depths=series.positions[order],
        sources=None if series.sources is None else series.sources[order],
        warnings=tuple(warnings),
    )

# src/paleosplice/splice/composite.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..chronology.calibrate import CalibrationConfig
from ..errors import InvalidSeries
from ..section import Section
from ..series import Axis, ProxySeries
from ..utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class SpliceInterval:
    """
    Age window (ka) a section contributes to the composite.

    Bounds may be typed in either order; a None bound means the section
    contributes nothing.
    """
    section_id: str
    start_age: Optional[float] = None
    end_age: Optional[float] = None

    def bounds(self) -> Optional[Tuple[float, float]]:
        if self.start_age is None or self.end_age is None:
            return None
        a = float(self.start_age)
        b = float(self.end_age)
        return (a, b) if a <= b else (b, a)

    @property
    def is_active(self) -> bool:
        return self.bounds() is not None


def empty_intervals(section_ids: Sequence[str]) -> Dict[str, SpliceInterval]:
    return {str(s): SpliceInterval(section_id=str(s)) for s in section_ids}


def splice_series(
    calibrated: Mapping[str, ProxySeries],
    intervals: Mapping[str, SpliceInterval],
) -> ProxySeries:
    """
    Union of the samples of each age-calibrated series that fall inside its
    section's interval (inclusive), ordered by age.

    Sections are pooled in mapping order and sorted stably, so equal ages from
    different sections stay in that order and are both kept. Nothing is
    interpolated, averaged or de-duplicated; overlapping windows contribute
    twice. Proxies missing from a section are absent (NaN) in its rows. Reversal
    warnings of contributing sections carry over to the composite.
    """
    keys: List[str] = []
    parts: List[Tuple[str, ProxySeries, np.ndarray]] = []

    for sid, s in calibrated.items():
        if s.axis is not Axis.AGE:
            raise InvalidSeries(f"Section {sid} is not age-calibrated (axis={s.axis.value}).")
        iv = intervals.get(sid)
        b = iv.bounds() if iv is not None else None
        if b is None:
            continue
        lo, hi = b
        idx = np.where((s.positions >= lo) & (s.positions <= hi))[0]
        if idx.size == 0:
            continue
        parts.append((str(sid), s, idx))
        for k in s.proxy_keys:
            if k not in keys:
                keys.append(k)

    unknown = [sid for sid in intervals if sid not in calibrated and intervals[sid].is_active]
    if unknown:
        log.debug("splice: intervals for unknown section(s) ignored: %s", unknown)

    if not parts:
        return ProxySeries(axis=Axis.AGE, positions=[], values={k: [] for k in keys}, depths=[], sources=[])

    ages = np.concatenate([s.positions[idx] for _, s, idx in parts])
    values = {
        k: np.concatenate(
            [s.values[k][idx] if k in s.values else np.full(idx.size, np.nan) for _, s, idx in parts]
        )
        for k in keys
    }
    qc = np.concatenate([s.qc[idx] for _, s, idx in parts])
    ex = np.concatenate([s.extrapolated[idx] for _, s, idx in parts])
    depths = np.concatenate(
        [s.depths[idx] if s.depths is not None else np.full(idx.size, np.nan) for _, s, idx in parts]
    )
    sources = np.concatenate([np.array([sid] * idx.size, dtype=object) for sid, _, idx in parts])

    warnings = tuple(dict.fromkeys(w for _, s, _ in parts for w in s.warnings))
    order = np.argsort(ages, kind="stable")
    log.debug("splice: %d sample(s) pooled from %d section(s)", ages.size, len(parts))

    return ProxySeries(
        axis=Axis.AGE,
        positions=ages[order],
        values={k: v[order] for k, v in values.items()},
        qc=qc[order],
        extrapolated=ex[order],
        depths=depths[order],
        sources=sources[order],
        warnings=warnings,
    )


def splice(
    sections: Sequence[Section],
    intervals: Mapping[str, SpliceInterval],
    *,
    cfg: CalibrationConfig = CalibrationConfig(),
) -> ProxySeries:
    """
    Calibrate each section that has an active interval against its own age
    model, then splice. Calibration errors (too few / inconsistent tie points)
    propagate: a composite is never built on an invalid age model.
    """
    calibrated: Dict[str, ProxySeries] = {}
    for sec in sections:
        iv = intervals.get(sec.id)
        if iv is None or not iv.is_active:
            continue
        calibrated[sec.id] = sec.calibrated(cfg=cfg)
    return splice_series(calibrated, intervals)

# src/paleosplice/suggest/deterministic.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Tuple

import numpy as np

try:
    from scipy.signal import find_peaks  # type: ignore
except Exception:  # pragma: no cover
    find_peaks = None  # type: ignore

from ..correlation.lag import CorrelationConfig, CorrelationCurve, correlate
from ..correlation.peaks import CorrelationPeak, find_correlation_peaks
from ..section import Section
from ..series import ProxySeries
from ..utils.logging import get_logger
from .base import TiePointSuggestion

log = get_logger(__name__)


@dataclass(frozen=True)
class SuggestConfig:
    top_k: int = 3
    anchors_per_peak: int = 3
    min_confidence: float = 0.0
    # curvature at which a peak's sharpness factor reaches 0.5
    sharpness_half: float = 16.0
    correlation: CorrelationConfig = CorrelationConfig()


def _require_scipy() -> None:
    if find_peaks is None:
        raise RuntimeError("scipy is required for landmark picking. Install with: pip install scipy")


def reference_landmarks(
    series: ProxySeries,
    proxy_key: str,
    lo: float,
    hi: float,
    *,
    count: int,
) -> List[float]:
    """
    Depths of the `count` most prominent local extrema (peaks and troughs) of
    the proxy within [lo, hi], returned in depth order. Falls back to the
    window midpoint when the window holds no extremum.
    """
    _require_scipy()
    if count <= 0:
        return []

    m = series.valid_mask(proxy_key) & (series.positions >= lo) & (series.positions <= hi)
    z = series.positions[m]
    v = series.values[proxy_key][m]

    cands: List[Tuple[float, float]] = []
    if v.size >= 3:
        for sign in (1.0, -1.0):
            idx, props = find_peaks(sign * v, prominence=0.0)  # type: ignore[misc]
            for i, p in zip(idx, props["prominences"]):
                cands.append((float(p), float(z[int(i)])))

    if not cands:
        return [0.5 * (float(lo) + float(hi))]

    cands.sort(key=lambda t: (-t[0], t[1]))
    picked = sorted({d for _, d in cands[: int(count)]})
    return picked


class CorrelationSuggester:
    """
    Transparent tie-point suggester: lag-correlate the two sections' depth
    series, keep the top-k peaks, and for each peak lag L pair reference
    landmarks x with target depth x + L.
    """

    def __init__(self, cfg: SuggestConfig = SuggestConfig(), *, cancel: Any = None) -> None:
        self.cfg = cfg
        self.cancel = cancel

    def analyse(self, reference: Section, target: Section, proxy_key: str) -> Tuple[CorrelationCurve, List[CorrelationPeak]]:
        curve = correlate(
            reference.series,
            target.series,
            proxy_key,
            cfg=self.cfg.correlation,
            cancel=self.cancel,
        )
        peaks = find_correlation_peaks(curve, top_k=self.cfg.top_k, sharpness_half=self.cfg.sharpness_half)
        return curve, peaks

    def suggest(self, reference: Section, target: Section, proxy_key: str) -> List[TiePointSuggestion]:
        _, peaks = self.analyse(reference, target, proxy_key)

        ref = reference.series
        r_span = ref.span
        t_span = target.series.span
        if r_span is None or t_span is None:
            return []
        r0, r1 = r_span
        t0, t1 = t_span

        out: List[TiePointSuggestion] = []
        for pk in peaks:
            if pk.confidence < self.cfg.min_confidence:
                continue
            lo = max(r0, t0 - pk.lag)
            hi = min(r1, t1 - pk.lag)
            if lo > hi:
                continue
            for x in reference_landmarks(ref, proxy_key, lo, hi, count=self.cfg.anchors_per_peak):
                out.append(
                    TiePointSuggestion(
                        ref_position=x,
                        target_position=x + pk.lag,
                        confidence=pk.confidence,
                        source="correlation",
                        lag=pk.lag,
                        coefficient=pk.coefficient,
                    )
                )

        out.sort(key=lambda s: (-s.confidence, s.ref_position))
        log.debug(
            "suggest %s -> %s (%s): %d peak(s), %d suggestion(s)",
            reference.id,
            target.id,
            proxy_key,
            len(peaks),
            len(out),
        )
        return out

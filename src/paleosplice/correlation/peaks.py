# src/paleosplice/correlation/peaks.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

import numpy as np

try:
    from scipy.signal import find_peaks  # type: ignore
except Exception:  # pragma: no cover
    find_peaks = None  # type: ignore

if TYPE_CHECKING:
    from .lag import CorrelationCurve


@dataclass(frozen=True)
class CorrelationPeak:
    """
    Local maximum of |coefficient| on a correlation curve.

    in_phase:   coefficient > 0 (signals move together); False means anti-phase
    curvature:  -d2|c|/dlag2 at the peak scaled by lag_span^2 / |c| range
                (dimensionless; large = sharp, ~0 = flat / ambiguous)
    sharpness:  curvature / (curvature + sharpness_half), in [0, 1)
    relative:   (|c| - min|c|) / (max|c| - min|c|) over the curve
    confidence: relative * sharpness, in [0, 1]
    """
    lag: float
    coefficient: float
    magnitude: float
    in_phase: bool
    curvature: float
    sharpness: float
    relative: float
    confidence: float
    index: int


def _require_scipy() -> None:
    if find_peaks is None:
        raise RuntimeError("scipy is required for peak extraction. Install with: pip install scipy")


def _local_maxima(m: np.ndarray) -> np.ndarray:
    """Indices of local maxima, curve ends included (plateaus -> middle sample)."""
    _require_scipy()
    if m.size == 1:
        return np.array([0], dtype=np.int64)
    padded = np.concatenate([[-np.inf], m, [-np.inf]])
    padded[~np.isfinite(padded)] = -1.0
    idx, _ = find_peaks(padded)  # type: ignore[misc]
    return (np.asarray(idx, dtype=np.int64) - 1)


def _curvature(lags: np.ndarray, m: np.ndarray, i: int) -> float:
    """-f'' at i on a possibly irregular lag axis; one-sided at the curve ends."""
    n = int(m.size)
    has_l = i > 0
    has_r = i < n - 1
    if has_l and has_r:
        hl = float(lags[i] - lags[i - 1])
        hr = float(lags[i + 1] - lags[i])
        return 2.0 * ((m[i] - m[i - 1]) / (hl * (hl + hr)) + (m[i] - m[i + 1]) / (hr * (hl + hr)))
    if has_l:
        h = float(lags[i] - lags[i - 1])
        return 2.0 * float(m[i] - m[i - 1]) / (h * h)
    if has_r:
        h = float(lags[i + 1] - lags[i])
        return 2.0 * float(m[i] - m[i + 1]) / (h * h)
    return 0.0


def find_correlation_peaks(
    curve: "CorrelationCurve",
    *,
    top_k: Optional[int] = None,
    sharpness_half: float = 16.0,
) -> List[CorrelationPeak]:
    """
    Rank the local maxima of |coefficient| by magnitude (largest first; ties ->
    smaller |lag| first) and score each one.
    """
    lags = np.asarray(curve.lags, dtype="float64")
    c = np.asarray(curve.coefficients, dtype="float64")
    if c.size == 0:
        return []

    m = np.abs(c)
    m_min = float(np.min(m))
    m_rng = float(np.max(m)) - m_min
    span = float(lags[-1] - lags[0]) if lags.size > 1 else 0.0

    out: List[CorrelationPeak] = []
    for i in _local_maxima(m):
        i = int(i)
        k = _curvature(lags, m, i)
        k_n = k * span * span / m_rng if (m_rng > 0.0 and span > 0.0) else 0.0
        k_n = max(0.0, k_n)
        sharp = k_n / (k_n + float(sharpness_half)) if k_n > 0.0 else 0.0
        rel = (float(m[i]) - m_min) / m_rng if m_rng > 0.0 else 1.0
        out.append(
            CorrelationPeak(
                lag=float(lags[i]),
                coefficient=float(c[i]),
                magnitude=float(m[i]),
                in_phase=bool(c[i] > 0.0),
                curvature=float(k_n),
                sharpness=float(sharp),
                relative=float(rel),
                confidence=float(min(1.0, max(0.0, rel * sharp))),
                index=i,
            )
        )

    out.sort(key=lambda p: (-p.magnitude, abs(p.lag)))
    if top_k is not None:
        out = out[: max(0, int(top_k))]
    return out

# src/paleosplice/correlation/leadlag.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np

try:
    from scipy import stats  # type: ignore
except Exception:  # pragma: no cover
    stats = None  # type: ignore

from ..series import ProxySeries
from .lag import CorrelationConfig, CorrelationCurve, correlate
from .peaks import CorrelationPeak, find_correlation_peaks


@dataclass(frozen=True)
class LeadLagResult:
    """
    proxy_b against proxy_a within one series.

    A positive best lag means proxy_b lags proxy_a (its features sit that far
    further along the axis: deeper, or older on an age axis).
    """
    proxy_a: str
    proxy_b: str
    curve: CorrelationCurve
    peaks: List[CorrelationPeak]

    @property
    def best(self) -> Optional[CorrelationPeak]:
        return self.peaks[0] if self.peaks else None


def lead_lag(
    series: ProxySeries,
    proxy_a: str,
    proxy_b: str,
    max_lag: Optional[float] = None,
    lag_step: Optional[float] = None,
    *,
    cfg: CorrelationConfig = CorrelationConfig(),
    top_k: Optional[int] = 5,
    cancel: Any = None,
) -> LeadLagResult:
    curve = correlate(
        series,
        series,
        proxy_a,
        max_lag,
        lag_step,
        cfg=cfg,
        target_key=proxy_b,
        cancel=cancel,
    )
    return LeadLagResult(
        proxy_a=proxy_a,
        proxy_b=proxy_b,
        curve=curve,
        peaks=find_correlation_peaks(curve, top_k=top_k),
    )


@dataclass(frozen=True)
class ProxyRegression:
    x_key: str
    y_key: str
    n: int
    r: float
    r_squared: float
    slope: Optional[float]
    intercept: Optional[float]

    def predict(self, x: Any) -> np.ndarray:
        if self.slope is None or self.intercept is None:
            raise ValueError("No regression line: fewer than two distinct x values.")
        return self.intercept + self.slope * np.asarray(x, dtype="float64")


def proxy_regression(series: ProxySeries, x_key: str, y_key: str) -> ProxyRegression:
    """
    Ordinary least squares of y_key on x_key over samples carrying both values
    (QC-excluded samples dropped). Fewer than two usable pairs, or constant x,
    gives r = R^2 = 0 and no line.
    """
    if stats is None:
        raise RuntimeError("scipy is required for regression. Install with: pip install scipy")

    both = series.valid_mask(x_key) & series.valid_mask(y_key)
    x = series.values[x_key][both]
    y = series.values[y_key][both]
    n = int(x.size)

    if n < 2 or float(np.ptp(x)) == 0.0:
        return ProxyRegression(x_key=x_key, y_key=y_key, n=n, r=0.0, r_squared=0.0, slope=None, intercept=None)

    res = stats.linregress(x, y)
    r = float(res.rvalue) if np.isfinite(res.rvalue) else 0.0
    return ProxyRegression(
        x_key=x_key,
        y_key=y_key,
        n=n,
        r=r,
        r_squared=r * r,
        slope=float(res.slope),
        intercept=float(res.intercept),
    )

# src/paleosplice/correlation/lag.py
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Iterator, List, Literal, Optional, Tuple, Union, overload

import numpy as np

from ..errors import CorrelationCancelled, InsufficientOverlap, InvalidSeries
from ..series import Axis, ProxySeries
from ..utils.logging import get_logger
from .resample import GapAwareInterpolator, build_shared_grid

log = get_logger(__name__)

Normalization = Literal["pearson", "global"]


@dataclass(frozen=True)
class CorrelationConfig:
    """
    Lag sweep settings.

    normalization:
      'pearson' -> Pearson r over the samples both series share at each lag
      'global'  -> both series standardized once over the overlap window, then
                   mean product over the shared samples (classic CCF estimate)
    resolution: grid step; None -> smaller of the two median sample spacings.
    """
    max_lag: float = 10.0
    lag_step: float = 1.0
    resolution: Optional[float] = None
    min_overlap: int = 5
    normalization: Normalization = "pearson"
    max_grid_points: int = 200_000


@dataclass(frozen=True)
class CorrelationPoint:
    lag: float
    coefficient: float
    n_overlap: int


@dataclass(frozen=True, eq=False)
class CorrelationCurve:
    """
    Coefficient vs lag. Lags where fewer than min_overlap samples were shared
    (or a side had no variance) are absent, not zero.

    Lag convention: lag L compares reference(x) with target(x + L).
    """

    lags: np.ndarray
    coefficients: np.ndarray
    overlaps: np.ndarray
    proxy_key: str
    axis: Axis
    grid_step: float
    target_key: Optional[str] = None

    def __len__(self) -> int:
        return int(self.lags.size)

    @overload
    def __getitem__(self, i: int) -> CorrelationPoint: ...

    @overload
    def __getitem__(self, i: slice) -> List[CorrelationPoint]: ...

    def __getitem__(self, i: Union[int, slice]) -> Union[CorrelationPoint, List[CorrelationPoint]]:
        if isinstance(i, slice):
            return [self[j] for j in range(*i.indices(len(self)))]
        return CorrelationPoint(
            lag=float(self.lags[i]),
            coefficient=float(self.coefficients[i]),
            n_overlap=int(self.overlaps[i]),
        )

    def __iter__(self) -> Iterator[CorrelationPoint]:
        for i in range(len(self)):
            yield self[i]

    def points(self) -> List[CorrelationPoint]:
        return list(self)

    def at(self, lag: float, *, atol: float = 1e-9) -> Optional[CorrelationPoint]:
        hit = np.where(np.isclose(self.lags, float(lag), rtol=0.0, atol=atol))[0]
        if hit.size == 0:
            return None
        return self[int(hit[0])]

    def best(self) -> CorrelationPoint:
        """Lag with the largest |coefficient| (first one on ties)."""
        if len(self) == 0:
            raise InsufficientOverlap("Correlation curve is empty.")
        return self[int(np.argmax(np.abs(self.coefficients)))]

    def peaks(self, top_k: Optional[int] = None) -> List[Any]:
        from .peaks import find_correlation_peaks

        return find_correlation_peaks(self, top_k=top_k)

    def to_frame(self) -> Any:
        import pandas as pd

        return pd.DataFrame(
            {"lag": self.lags, "coefficient": self.coefficients, "n_overlap": self.overlaps}
        )


def lag_values(max_lag: float, lag_step: float) -> np.ndarray:
    """Symmetric lags k*lag_step for |k| <= floor(max_lag / lag_step); 0 always included."""
    max_lag = float(max_lag)
    lag_step = float(lag_step)
    if not math.isfinite(max_lag) or max_lag < 0:
        raise ValueError(f"max_lag must be >= 0 (got {max_lag}).")
    if not math.isfinite(lag_step) or lag_step <= 0:
        raise ValueError(f"lag_step must be > 0 (got {lag_step}).")
    k = int(math.floor(max_lag / lag_step + 1e-9))
    return lag_step * np.arange(-k, k + 1, dtype="float64")


def _pearson(a: np.ndarray, b: np.ndarray) -> float:
    da = a - a.mean()
    db = b - b.mean()
    saa = float(np.sum(da * da))
    sbb = float(np.sum(db * db))
    if saa <= 0.0 or sbb <= 0.0:
        return float("nan")
    r = float(np.sum(da * db)) / math.sqrt(saa * sbb)
    return max(-1.0, min(1.0, r))


def _cancel_requested(cancel: Any) -> bool:
    if cancel is None:
        return False
    is_set = getattr(cancel, "is_set", None)
    if callable(is_set):
        return bool(is_set())
    return bool(cancel())


def correlate(
    reference: ProxySeries,
    target: ProxySeries,
    proxy_key: str,
    max_lag: Optional[float] = None,
    lag_step: Optional[float] = None,
    *,
    cfg: CorrelationConfig = CorrelationConfig(),
    target_key: Optional[str] = None,
    cancel: Any = None,
) -> CorrelationCurve:
    """
    Correlation of `target` against `reference` for each trial lag.

    Both series are linearly interpolated (never across missing samples) onto
    one regular grid g. At lag L the pairs are reference(g - L/2) and
    target(g + L/2), i.e. reference(x) against target(x + L); the centred
    shift makes correlate(r, t)(L) == correlate(t, r)(-L) exactly.

    max_lag / lag_step override the config values when given. `target_key`
    reads a different proxy from the target (within-section lead/lag).
    `cancel` is a threading.Event-like object or a zero-arg callable checked
    between lags.

    Raises:
      EmptySeries:          a series has no samples / no valid values for the proxy
      InsufficientOverlap:  position ranges do not overlap, or no lag has
                            min_overlap shared samples
      InvalidSeries:        series are on different axes
      CorrelationCancelled: cancellation observed
    """
    if reference.axis is not target.axis:
        raise InvalidSeries(
            f"Cannot correlate a {reference.axis.value}-indexed series with a {target.axis.value}-indexed one."
        )

    cfg = replace(
        cfg,
        max_lag=cfg.max_lag if max_lag is None else float(max_lag),
        lag_step=cfg.lag_step if lag_step is None else float(lag_step),
    )
    tkey = proxy_key if target_key is None else target_key
    if cfg.normalization not in ("pearson", "global"):
        raise ValueError(f"Unknown normalization: {cfg.normalization!r}")
    min_overlap = max(2, int(cfg.min_overlap))

    lags = lag_values(cfg.max_lag, cfg.lag_step)

    ref_f = GapAwareInterpolator.from_series(reference, proxy_key)
    tgt_f = GapAwareInterpolator.from_series(target, tkey)
    grid = build_shared_grid(
        ref_f,
        tgt_f,
        max_lag=cfg.max_lag,
        resolution=cfg.resolution,
        max_points=cfg.max_grid_points,
    )
    g = grid.positions

    log.debug(
        "correlate %s/%s: grid %d pts step %g, %d lags, overlap %g-%g",
        proxy_key,
        tkey,
        grid.n,
        grid.step,
        lags.size,
        grid.overlap[0],
        grid.overlap[1],
    )

    ref_mu = ref_sd = tgt_mu = tgt_sd = 0.0
    if cfg.normalization == "global":
        win = grid.window_mask()
        ref_mu, ref_sd = _moments(ref_f(g[win]))
        tgt_mu, tgt_sd = _moments(tgt_f(g[win]))

    out_lags: List[float] = []
    out_coef: List[float] = []
    out_n: List[int] = []

    for L in lags:
        if _cancel_requested(cancel):
            raise CorrelationCancelled(f"Lag sweep cancelled at lag {float(L):g}.")

        half = 0.5 * float(L)
        a = ref_f(g - half)
        b = tgt_f(g + half)
        both = np.isfinite(a) & np.isfinite(b)
        n = int(both.sum())
        if n < min_overlap:
            continue

        if cfg.normalization == "pearson":
            r = _pearson(a[both], b[both])
        else:
            if ref_sd <= 0.0 or tgt_sd <= 0.0:
                continue
            za = (a[both] - ref_mu) / ref_sd
            zb = (b[both] - tgt_mu) / tgt_sd
            r = max(-1.0, min(1.0, float(np.mean(za * zb))))

        if not math.isfinite(r):
            continue
        out_lags.append(float(L))
        out_coef.append(r)
        out_n.append(n)

    if not out_lags:
        raise InsufficientOverlap(
            f"No lag in +-{cfg.max_lag:g} shares >= {min_overlap} valid samples with non-zero variance."
        )

    return CorrelationCurve(
        lags=np.asarray(out_lags, dtype="float64"),
        coefficients=np.asarray(out_coef, dtype="float64"),
        overlaps=np.asarray(out_n, dtype=np.int64),
        proxy_key=proxy_key,
        target_key=None if tkey == proxy_key else tkey,
        axis=reference.axis,
        grid_step=grid.step,
    )


def _moments(x: np.ndarray) -> Tuple[float, float]:
    fin = np.isfinite(x)
    if not np.any(fin):
        return 0.0, 0.0
    return float(np.mean(x[fin])), float(np.std(x[fin]))

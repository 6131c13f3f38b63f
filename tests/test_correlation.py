from __future__ import annotations

import threading

import numpy as np
import pytest

from paleosplice.correlation.lag import CorrelationConfig, correlate, lag_values
from paleosplice.correlation.resample import GapAwareInterpolator
from paleosplice.errors import CorrelationCancelled, EmptySeries, InsufficientOverlap, InvalidSeries
from paleosplice.series import Axis, ProxySeries


def _signal(n: int, seed: int = 7) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.normal(size=n)


def _depth(values: np.ndarray, start: float = 0.0, sid: str = "A", key: str = "x") -> ProxySeries:
    return ProxySeries(
        axis=Axis.DEPTH,
        positions=start + np.arange(values.size, dtype=float),
        values={key: values},
        section_id=sid,
    )


def _shifted_pair(k: int, n: int = 101) -> tuple:
    """Target features sit k units deeper than the reference's."""
    f = _signal(n)
    tgt = np.full(n, np.nan)
    tgt[k:] = f[: n - k]
    return _depth(f, sid="R"), _depth(tgt, sid="T")


def test_lag_values_are_symmetric_multiples_of_step() -> None:
    assert lag_values(2.0, 0.5).tolist() == [-2.0, -1.5, -1.0, -0.5, 0.0, 0.5, 1.0, 1.5, 2.0]
    assert lag_values(0.0, 1.0).tolist() == [0.0]
    assert lag_values(2.5, 1.0).tolist() == [-2.0, -1.0, 0.0, 1.0, 2.0]
    with pytest.raises(ValueError):
        lag_values(1.0, 0.0)


def test_shifted_copy_peaks_at_its_shift() -> None:
    ref, tgt = _shifted_pair(4)
    curve = correlate(ref, tgt, "x", max_lag=8)
    best = curve.best()
    assert best.lag == 4.0
    assert best.coefficient == pytest.approx(1.0)


def test_swapping_sections_negates_the_peak_lag() -> None:
    ref, tgt = _shifted_pair(4)
    curve = correlate(tgt, ref, "x", max_lag=8)
    assert curve.best().lag == -4.0


def test_swapping_mirrors_the_whole_curve() -> None:
    ref = _depth(_signal(60, seed=1), sid="R")
    tgt = _depth(_signal(55, seed=2), start=3.3, sid="T")
    fwd = correlate(ref, tgt, "x", max_lag=6, lag_step=0.5)
    rev = correlate(tgt, ref, "x", max_lag=6, lag_step=0.5)

    assert fwd.lags.tolist() == (-rev.lags[::-1]).tolist()
    assert np.allclose(fwd.coefficients, rev.coefficients[::-1], atol=1e-12)
    assert fwd.overlaps.tolist() == rev.overlaps[::-1].tolist()


def test_lags_without_enough_overlap_are_absent() -> None:
    ref = _depth(_signal(10, seed=3), sid="R")
    tgt = _depth(_signal(10, seed=4), sid="T")
    curve = correlate(ref, tgt, "x", cfg=CorrelationConfig(max_lag=8, min_overlap=5))

    assert len(curve) < lag_values(8, 1).size
    assert float(np.max(np.abs(curve.lags))) == 5.0
    assert curve.at(8.0) is None
    assert (curve.overlaps >= 5).all()
    assert np.isfinite(curve.coefficients).all()


def test_coefficients_stay_within_unit_range() -> None:
    ref, tgt = _shifted_pair(2)
    curve = correlate(ref, tgt, "x", max_lag=5, lag_step=0.25)
    assert (np.abs(curve.coefficients) <= 1.0).all()


def test_interpolator_never_bridges_missing_samples() -> None:
    s = ProxySeries(axis=Axis.DEPTH, positions=[0.0, 1.0, 2.0, 3.0], values={"x": [0.0, 1.0, np.nan, 3.0]})
    f = GapAwareInterpolator.from_series(s, "x")
    out = f(np.array([0.5, 1.5, 2.0, 2.5, 3.0, 4.0]))
    assert out[0] == pytest.approx(0.5)
    assert np.isnan(out[1:4]).all()
    assert out[4] == 3.0
    assert np.isnan(out[5])


def test_qc_excluded_samples_count_as_missing() -> None:
    s = ProxySeries(axis=Axis.DEPTH, positions=[0.0, 1.0, 2.0], values={"x": [0.0, 5.0, 2.0]}, qc=[0, 2, 0])
    f = GapAwareInterpolator.from_series(s, "x")
    assert np.isnan(f(np.array([0.5]))[0])


def test_empty_or_unmeasured_series_raise() -> None:
    ref = _depth(_signal(20), sid="R")
    empty = ProxySeries(axis=Axis.DEPTH, positions=[], values={"x": []})
    with pytest.raises(EmptySeries):
        correlate(ref, empty, "x")
    with pytest.raises(EmptySeries):
        correlate(ref, _depth(np.full(20, np.nan), sid="T"), "x")
    with pytest.raises(EmptySeries):
        correlate(ref, _depth(_signal(20), sid="T", key="y"), "x")


def test_disjoint_ranges_raise() -> None:
    ref = _depth(_signal(10), sid="R")
    tgt = _depth(_signal(10), start=50.0, sid="T")
    with pytest.raises(InsufficientOverlap):
        correlate(ref, tgt, "x")


def test_mixed_axes_rejected() -> None:
    ref = _depth(_signal(10), sid="R")
    tgt = ProxySeries(axis=Axis.AGE, positions=np.arange(10.0), values={"x": _signal(10)})
    with pytest.raises(InvalidSeries):
        correlate(ref, tgt, "x")


def test_duplicate_positions_rejected() -> None:
    ref = _depth(_signal(10), sid="R")
    bad = ProxySeries(axis=Axis.DEPTH, positions=[0, 1, 1, 2, 3, 4, 5, 6, 7, 8], values={"x": _signal(10)})
    with pytest.raises(InvalidSeries):
        correlate(ref, bad, "x")


def test_cancellation_event_stops_the_sweep() -> None:
    ref, tgt = _shifted_pair(3)
    ev = threading.Event()
    ev.set()
    with pytest.raises(CorrelationCancelled):
        correlate(ref, tgt, "x", cancel=ev)
    with pytest.raises(CorrelationCancelled):
        correlate(ref, tgt, "x", cancel=lambda: True)
    assert len(correlate(ref, tgt, "x", cancel=threading.Event())) > 0


def test_global_normalization_finds_the_same_shift() -> None:
    ref, tgt = _shifted_pair(3)
    curve = correlate(ref, tgt, "x", cfg=CorrelationConfig(max_lag=6, normalization="global"))
    assert curve.best().lag == 3.0
    assert curve.best().coefficient > 0.8


def test_unknown_normalization_rejected() -> None:
    ref, tgt = _shifted_pair(3)
    with pytest.raises(ValueError):
        correlate(ref, tgt, "x", cfg=CorrelationConfig(normalization="spearman"))  # type: ignore[arg-type]


def test_curve_views() -> None:
    ref, tgt = _shifted_pair(2)
    curve = correlate(ref, tgt, "x", max_lag=3)
    pts = curve.points()
    assert [p.lag for p in pts] == curve.lags.tolist()
    assert curve[0].lag == -3.0
    assert len(curve[1:3]) == 2
    df = curve.to_frame()
    assert list(df.columns) == ["lag", "coefficient", "n_overlap"]
    assert curve.peaks(top_k=1)[0].lag == 2.0

from __future__ import annotations

import numpy as np
import pytest

from paleosplice.processing.pipeline import MovingAverage, ProcessingPipeline, apply_pipeline, apply_pipelines
from paleosplice.series import Axis, ProxySeries


def test_moving_average_truncates_at_the_ends() -> None:
    out = MovingAverage(3).apply(np.array([1.0, 2.0, 3.0, 4.0]))
    assert out.tolist() == pytest.approx([1.5, 2.0, 3.0, 3.5])


def test_moving_average_skips_absent_values() -> None:
    out = MovingAverage(3).apply(np.array([1.0, np.nan, 3.0, np.nan, np.nan, np.nan]))
    assert out[:3].tolist() == pytest.approx([1.0, 2.0, 3.0])
    assert out[3] == 3.0
    assert np.isnan(out[4]) and np.isnan(out[5])


def test_window_one_is_identity_and_window_must_be_positive() -> None:
    x = np.array([4.0, 1.0, 7.0])
    assert MovingAverage(1).apply(x).tolist() == x.tolist()
    with pytest.raises(ValueError):
        MovingAverage(0)


def test_pipeline_steps_chain() -> None:
    s = ProxySeries(axis=Axis.DEPTH, positions=np.arange(5.0), values={"x": [0.0, 0.0, 9.0, 0.0, 0.0]})
    p = ProcessingPipeline(name="x_smooth", source_proxy="x", steps=(MovingAverage(3), MovingAverage(3)))
    out = apply_pipeline(s, p)

    once = MovingAverage(3).apply(s.proxy("x"))
    assert out.proxy("x_smooth").tolist() == pytest.approx(MovingAverage(3).apply(once).tolist())
    assert out.proxy("x").tolist() == s.proxy("x").tolist()
    assert p.label == "MA(3), MA(3)"


def test_pipeline_may_not_overwrite_its_source() -> None:
    s = ProxySeries(axis=Axis.DEPTH, positions=[0.0], values={"x": [1.0]})
    with pytest.raises(ValueError):
        apply_pipeline(s, ProcessingPipeline(name="x", source_proxy="x"))


def test_apply_pipelines_adds_each_virtual_proxy() -> None:
    s = ProxySeries(axis=Axis.DEPTH, positions=np.arange(3.0), values={"x": [1.0, 2.0, 3.0]})
    out = apply_pipelines(
        s,
        [
            ProcessingPipeline(name="a", source_proxy="x"),
            ProcessingPipeline(name="b", source_proxy="a", steps=[MovingAverage(3)]),
        ],
    )
    assert out.proxy_keys == ["x", "a", "b"]
    assert out.proxy("b").tolist() == pytest.approx([1.5, 2.0, 2.5])

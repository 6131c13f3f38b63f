from __future__ import annotations

import numpy as np
import pytest

from paleosplice.chronology.tiepoints import TiePoint
from paleosplice.errors import InsufficientTiePoints, InvalidSeries
from paleosplice.section import Section
from paleosplice.series import Axis, ProxySeries, ReversalDetected
from paleosplice.splice.composite import SpliceInterval, empty_intervals, splice, splice_series


def _aged(ages: list, sid: str, **values: list) -> ProxySeries:
    vals = values or {"x": [float(a) for a in ages]}
    return ProxySeries(axis=Axis.AGE, positions=ages, values=vals, section_id=sid)


def test_interleaves_sections_by_age() -> None:
    comp = splice_series(
        {"A": _aged([1, 3, 5], "A"), "B": _aged([2, 4, 6], "B")},
        {"A": SpliceInterval("A", 0, 10), "B": SpliceInterval("B", 0, 10)},
    )
    assert comp.axis is Axis.AGE
    assert comp.positions.tolist() == [1, 2, 3, 4, 5, 6]
    assert comp.source_ids().tolist() == ["A", "B", "A", "B", "A", "B"]


def test_window_is_inclusive_and_excludes_outside_samples() -> None:
    comp = splice_series({"A": _aged([0, 5, 10], "A")}, {"A": SpliceInterval("A", 0, 5)})
    assert comp.positions.tolist() == [0.0, 5.0]


def test_reversed_bounds_are_normalised() -> None:
    comp = splice_series({"A": _aged([1, 2, 3], "A")}, {"A": SpliceInterval("A", 2.5, 1.5)})
    assert comp.positions.tolist() == [2.0]


def test_missing_bound_or_interval_contributes_nothing() -> None:
    series = {"A": _aged([1, 2], "A"), "B": _aged([1, 2], "B")}
    comp = splice_series(series, {"A": SpliceInterval("A", None, 5)})
    assert comp.n == 0
    assert comp.axis is Axis.AGE
    assert splice_series(series, empty_intervals(["A", "B"])).n == 0


def test_overlapping_windows_keep_both_samples_in_section_order() -> None:
    comp = splice_series(
        {"A": _aged([1, 2], "A"), "B": _aged([2, 3], "B")},
        {"A": SpliceInterval("A", 0, 5), "B": SpliceInterval("B", 0, 5)},
    )
    assert comp.positions.tolist() == [1, 2, 2, 3]
    assert comp.source_ids().tolist() == ["A", "A", "B", "B"]


def test_proxy_union_marks_unmeasured_values_absent() -> None:
    comp = splice_series(
        {"A": _aged([1.0], "A", d18O=[3.0]), "B": _aged([2.0], "B", d13C=[0.5])},
        {"A": SpliceInterval("A", 0, 5), "B": SpliceInterval("B", 0, 5)},
    )
    assert comp.proxy_keys == ["d18O", "d13C"]
    assert comp.proxy("d18O")[0] == 3.0 and np.isnan(comp.proxy("d18O")[1])
    assert np.isnan(comp.proxy("d13C")[0]) and comp.proxy("d13C")[1] == 0.5


def test_reversal_warnings_carry_over_to_the_composite() -> None:
    w = ReversalDetected(indices=(2,), message="Calibrated ages reverse at 1 sample(s) in section A")
    a = ProxySeries(axis=Axis.AGE, positions=[1, 2, 3], values={"x": [1.0, 2.0, 3.0]}, section_id="A", warnings=(w,))
    comp = splice_series(
        {"A": a, "B": _aged([4, 5], "B")},
        {"A": SpliceInterval("A", 0, 10), "B": SpliceInterval("B", 0, 10)},
    )
    assert comp.warnings == (w,)

    skipped = splice_series({"A": a}, {"A": SpliceInterval("A", 20, 30)})
    assert skipped.warnings == ()


def test_depth_indexed_input_rejected() -> None:
    s = ProxySeries(axis=Axis.DEPTH, positions=[1.0], values={})
    with pytest.raises(InvalidSeries):
        splice_series({"A": s}, {"A": SpliceInterval("A", 0, 5)})


def test_splice_is_deterministic() -> None:
    series = {"A": _aged([1, 3], "A"), "B": _aged([2, 3], "B")}
    iv = {"A": SpliceInterval("A", 0, 5), "B": SpliceInterval("B", 0, 5)}
    a = splice_series(series, iv)
    b = splice_series(series, iv)
    assert np.array_equal(a.positions, b.positions)
    assert a.source_ids().tolist() == b.source_ids().tolist()


def _section(sid: str, depths: list) -> Section:
    s = ProxySeries(axis=Axis.DEPTH, positions=depths, values={"x": np.ones(len(depths))})
    return Section(id=sid, series=s)


def test_splice_sections_calibrates_each_against_its_own_model() -> None:
    a = _section("A", [0.0, 10.0, 20.0]).with_tie_points(
        [TiePoint("a0", "A", 0, 0), TiePoint("a1", "A", 20, 10), TiePoint("b0", "B", 0, 100)]
    )
    b = _section("B", [0.0, 10.0]).with_tie_points([TiePoint("b0", "B", 0, 3), TiePoint("b1", "B", 10, 13)])
    comp = splice([a, b], {"A": SpliceInterval("A", 0, 10), "B": SpliceInterval("B", 0, 10)})

    assert comp.positions.tolist() == pytest.approx([0.0, 3.0, 5.0, 10.0])
    assert comp.source_ids().tolist() == ["A", "B", "A", "A"]
    assert comp.depths.tolist() == pytest.approx([0.0, 0.0, 10.0, 20.0])


def test_splice_surfaces_calibration_errors_for_active_sections_only() -> None:
    a = _section("A", [0.0, 1.0])
    assert splice([a], {"A": SpliceInterval("A")}).n == 0
    with pytest.raises(InsufficientTiePoints):
        splice([a], {"A": SpliceInterval("A", 0, 1)})

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from paleosplice.errors import DuplicatePositions, InvalidSeries
from paleosplice.series import QC_EXCLUDE, Axis, ProxySeries


def _series() -> ProxySeries:
    return ProxySeries(
        axis=Axis.DEPTH,
        positions=[0.0, 1.0, 2.0, 3.0],
        values={"d18O": [1.0, np.nan, 3.0, 4.0], "d13C": [0.1, 0.2, 0.3, 0.4]},
        qc=[0, 0, QC_EXCLUDE, 1],
        section_id="A",
    )


def test_arrays_are_copied_and_read_only() -> None:
    pos = np.array([0.0, 1.0, 2.0])
    s = ProxySeries(axis="depth", positions=pos, values={"x": [1, 2, 3]})
    pos[0] = 99.0
    assert s.positions[0] == 0.0
    assert s.axis is Axis.DEPTH
    with pytest.raises(ValueError):
        s.positions[0] = 5.0


def test_length_mismatch_rejected() -> None:
    with pytest.raises(InvalidSeries):
        ProxySeries(axis=Axis.DEPTH, positions=[0.0, 1.0], values={"x": [1.0]})


def test_non_finite_positions_rejected() -> None:
    with pytest.raises(InvalidSeries):
        ProxySeries(axis=Axis.DEPTH, positions=[0.0, np.nan], values={})


def test_valid_mask_treats_absent_and_excluded_as_missing() -> None:
    s = _series()
    assert s.valid_mask("d18O").tolist() == [True, False, False, True]
    assert s.valid_mask("d18O", exclude_flagged=False).tolist() == [True, False, True, True]
    with pytest.raises(KeyError):
        s.proxy("Mg/Ca")


def test_require_strictly_increasing_reports_first_duplicate() -> None:
    s = ProxySeries(axis=Axis.DEPTH, positions=[0.0, 1.0, 1.0, 2.0], values={}, section_id="B")
    assert not s.is_strictly_increasing()
    with pytest.raises(DuplicatePositions) as ei:
        s.require_strictly_increasing()
    assert ei.value.index == 2
    assert ei.value.position == 1.0


def test_slice_and_with_proxy_return_new_series() -> None:
    s = _series()
    sub = s.slice_positions(1.0, 2.0)
    assert sub.positions.tolist() == [1.0, 2.0]
    assert sub.qc.tolist() == [0, QC_EXCLUDE]

    s2 = s.with_proxy("smooth", [1, 2, 3, 4])
    assert "smooth" not in s.values
    assert s2.proxy("smooth").tolist() == [1.0, 2.0, 3.0, 4.0]


def test_sample_view_reports_absent_as_none() -> None:
    smp = _series().sample(1)
    assert smp.values["d18O"] is None
    assert smp.values["d13C"] == pytest.approx(0.2)
    assert smp.section_id == "A"


def test_from_records_reads_numeric_columns_as_proxies() -> None:
    s = ProxySeries.from_records(
        [
            {"depth": 0.5, "d18O": 3.2, "qc_flag": 0, "note": "ok"},
            {"depth": 1.0, "d18O": None, "qc_flag": 2},
            {"depth": None, "d18O": 1.0},
        ],
        section_id="A",
    )
    assert s.n == 2
    assert s.proxy_keys == ["d18O"]
    assert s.qc.tolist() == [0, 2]
    assert np.isnan(s.proxy("d18O")[1])


def test_to_records_writes_data_sheet_rows() -> None:
    recs = _series().to_records()
    assert len(recs) == 4
    assert recs[0] == {"depth": 0.0, "d18O": 1.0, "d13C": 0.1, "qc_flag": 0, "section_id": "A"}
    assert recs[1]["d18O"] is None
    assert recs[2]["qc_flag"] == QC_EXCLUDE

    back = ProxySeries.from_records(recs, section_id="A")
    assert back.positions.tolist() == [0.0, 1.0, 2.0, 3.0]
    assert back.qc.tolist() == [0, 0, QC_EXCLUDE, 1]


def test_frame_round_trip_keeps_qc() -> None:
    s = _series()
    df = s.to_frame()
    assert list(df.columns[:1]) == ["depth"]
    back = ProxySeries.from_frame(df, axis=Axis.DEPTH, proxy_columns=["d18O", "d13C"])
    assert np.array_equal(back.positions, s.positions)
    assert back.qc.tolist() == s.qc.tolist()


def test_from_frame_requires_position_column() -> None:
    with pytest.raises(InvalidSeries):
        ProxySeries.from_frame(pd.DataFrame({"x": [1.0]}), axis=Axis.AGE)

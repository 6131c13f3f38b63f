from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from paleosplice.io.sections import attach_tie_points, load_intervals, load_sections, load_tie_points


def _write(tmp_path: Path, name: str, text: str) -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


def test_load_sections_groups_rows(tmp_path: Path) -> None:
    p = _write(
        tmp_path,
        "samples.csv",
        "section_id,section_name,depth,qc_flag,d18O,d13C\n"
        "A,Core A,0.0,0,3.1,0.2\n"
        "A,Core A,1.0,2,3.3,\n"
        "B,,0.5,0,2.9,0.1\n"
        "B,,bad,0,1.0,1.0\n",
    )
    secs = load_sections(p)
    assert list(secs) == ["A", "B"]
    a = secs["A"]
    assert a.name == "Core A"
    assert a.series.positions.tolist() == [0.0, 1.0]
    assert a.series.qc.tolist() == [0, 2]
    assert np.isnan(a.series.proxy("d13C")[1])
    assert secs["B"].series.n == 1


def test_load_sections_requires_depth(tmp_path: Path) -> None:
    p = _write(tmp_path, "bad.csv", "section_id,d18O\nA,1.0\n")
    with pytest.raises(ValueError):
        load_sections(p)


def test_tie_points_and_attach(tmp_path: Path) -> None:
    samples = _write(tmp_path, "s.csv", "section_id,depth,x\nA,0,1\nA,10,2\nB,0,3\n")
    ties = _write(tmp_path, "t.csv", "section_id,depth,age,id\nA,0,0,a0\nA,10,5,\nB,0,1,b0\n")
    points = load_tie_points(ties)
    assert [tp.section_id for tp in points] == ["A", "A", "B"]
    assert points[0].id == "a0"
    assert points[1].id.startswith("tp-")

    secs = attach_tie_points(load_sections(samples), points)
    assert secs["A"].is_calibratable
    assert not secs["B"].is_calibratable
    assert secs["A"].calibrated().positions.tolist() == [0.0, 5.0]


def test_intervals_blank_bounds_are_none(tmp_path: Path) -> None:
    p = _write(tmp_path, "iv.csv", "section_id,start_age,end_age\nA,5,1\nB,,3\n")
    ivs = load_intervals(p)
    assert ivs["A"].bounds() == (1.0, 5.0)
    assert ivs["B"].start_age is None
    assert not ivs["B"].is_active

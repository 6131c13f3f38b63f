# src/paleosplice/io/sections.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union

import numpy as np
import pandas as pd

from ..chronology.tiepoints import AgeModel, TiePoint, new_tie_point_id
from ..section import Section
from ..series import Axis, ProxySeries
from ..splice.composite import SpliceInterval

_SECTION_META = {"section_id", "section_name", "depth", "qc_flag", "qcFlag", "subsection", "age"}


def _read_table(path: Union[str, Path]) -> pd.DataFrame:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Not found: {p}")
    # sep=None sniffs comma / tab / semicolon
    df = pd.read_csv(p, sep=None, engine="python")
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _require(df: pd.DataFrame, cols: List[str], p: Union[str, Path]) -> None:
    missing = set(cols) - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)} (in {p})")


def load_sections(path: Union[str, Path]) -> Dict[str, Section]:
    """
    Load a long-format sample table into Sections keyed by section id.

    Expected columns:
      - section_id (coerced to str)
      - depth (numeric; rows with non-numeric depth dropped)
      - section_name (optional)
      - qc_flag (optional; 0 ok, 1 suspect, 2 exclude)
      - every other numeric column is a proxy; blanks are absent values

    Rows keep file order within a section; duplicate depths are left in place
    and reported when the section is calibrated or correlated.
    """
    df = _read_table(path)
    _require(df, ["section_id", "depth"], path)

    df["section_id"] = df["section_id"].astype(str).str.strip()
    df["depth"] = pd.to_numeric(df["depth"], errors="coerce")
    df = df[(df["section_id"] != "") & df["depth"].notna()]

    proxies = [
        c for c in df.columns
        if c not in _SECTION_META and pd.api.types.is_numeric_dtype(df[c]) and not pd.api.types.is_bool_dtype(df[c])
    ]

    out: Dict[str, Section] = {}
    for sid, g in df.groupby("section_id", sort=False):
        series = ProxySeries.from_frame(g, axis=Axis.DEPTH, section_id=str(sid), proxy_columns=proxies)
        names = g["section_name"].dropna().astype(str).str.strip() if "section_name" in g.columns else []
        name = next((n for n in names if n), str(sid))
        out[str(sid)] = Section(id=str(sid), name=name, series=series)
    return out


def load_tie_points(path: Union[str, Path]) -> List[TiePoint]:
    """
    Columns: section_id, depth, age (ka), optional id. Rows with non-numeric
    depth or age are dropped.
    """
    df = _read_table(path)
    _require(df, ["section_id", "depth", "age"], path)

    df["section_id"] = df["section_id"].astype(str).str.strip()
    df["depth"] = pd.to_numeric(df["depth"], errors="coerce")
    df["age"] = pd.to_numeric(df["age"], errors="coerce")
    df = df[(df["section_id"] != "") & df["depth"].notna() & df["age"].notna()]

    out: List[TiePoint] = []
    for r in df.itertuples(index=False):
        tid = getattr(r, "id", None) if "id" in df.columns else None
        if tid is None or (isinstance(tid, float) and np.isnan(tid)) or not str(tid).strip():
            tid = new_tie_point_id()
        out.append(
            TiePoint(
                id=str(tid).strip(),
                section_id=str(getattr(r, "section_id")),
                depth=float(getattr(r, "depth")),
                age=float(getattr(r, "age")),
            )
        )
    return out


def attach_tie_points(sections: Dict[str, Section], points: List[TiePoint]) -> Dict[str, Section]:
    return {
        sid: sec.with_age_model(AgeModel.for_section(sid, points, version=sec.age_model.version + 1))  # type: ignore[union-attr]
        for sid, sec in sections.items()
    }


def load_intervals(path: Union[str, Path]) -> Dict[str, SpliceInterval]:
    """Columns: section_id, start_age, end_age (blank -> no contribution)."""
    df = _read_table(path)
    _require(df, ["section_id", "start_age", "end_age"], path)

    df["section_id"] = df["section_id"].astype(str).str.strip()
    df["start_age"] = pd.to_numeric(df["start_age"], errors="coerce")
    df["end_age"] = pd.to_numeric(df["end_age"], errors="coerce")

    out: Dict[str, SpliceInterval] = {}
    for r in df.itertuples(index=False):
        sid = str(getattr(r, "section_id"))
        if not sid:
            continue
        a = getattr(r, "start_age")
        b = getattr(r, "end_age")
        out[sid] = SpliceInterval(
            section_id=sid,
            start_age=None if pd.isna(a) else float(a),
            end_age=None if pd.isna(b) else float(b),
        )
    return out

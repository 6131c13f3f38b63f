# src/paleosplice/series.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .errors import DuplicatePositions, InvalidSeries


class Axis(str, Enum):
    """Which physical quantity a series is indexed on."""

    DEPTH = "depth"
    AGE = "age"


# Sample quality flags as entered on the data sheets.
QC_OK = 0
QC_SUSPECT = 1
QC_EXCLUDE = 2

_RESERVED_KEYS = {"depth", "age", "qc_flag", "qcFlag", "subsection", "section_id", "extrapolated"}


@dataclass(frozen=True)
class ReversalDetected:
    """
    Non-fatal warning: calibrated ages go backwards somewhere along the section.

    indices are sample indices i where age[i] < age[i-1] (depth order).
    """
    indices: Tuple[int, ...]
    message: str


@dataclass(frozen=True)
class ProxySample:
    position: float
    values: Mapping[str, Optional[float]]
    qc_flag: int = QC_OK
    extrapolated: bool = False
    depth: Optional[float] = None
    section_id: Optional[str] = None


def _readonly(a: np.ndarray) -> np.ndarray:
    a.setflags(write=False)
    return a


def _as_float_1d(x: Any, *, name: str) -> np.ndarray:
    try:
        a = np.array(x, dtype="float64", copy=True)
    except (TypeError, ValueError) as e:
        raise InvalidSeries(f"`{name}` is not numeric: {e}") from e
    if a.ndim != 1:
        raise InvalidSeries(f"`{name}` must be 1D, got shape {a.shape}")
    return a


@dataclass(frozen=True, eq=False)
class ProxySeries:
    """
    Immutable, axis-tagged table of proxy measurements.

    positions:    depth or age per sample (finite)
    values:       proxy key -> float array, NaN marks an absent measurement
    qc:           per-sample QC flag (0 ok, 1 suspect, 2 exclude)
    extrapolated: True where an age lies outside the tie-point range
    depths:       original depth per sample (kept after calibration)
    sources:      section id per sample (composites mix sections)
    warnings:     non-fatal ReversalDetected records

    Arrays are copied and frozen on construction; transformations return new series.
    """

    axis: Axis
    positions: np.ndarray = field(repr=False)
    values: Dict[str, np.ndarray] = field(default_factory=dict, repr=False)
    qc: Optional[np.ndarray] = field(default=None, repr=False)
    extrapolated: Optional[np.ndarray] = field(default=None, repr=False)
    depths: Optional[np.ndarray] = field(default=None, repr=False)
    sources: Optional[np.ndarray] = field(default=None, repr=False)
    section_id: Optional[str] = None
    warnings: Tuple[ReversalDetected, ...] = ()

    def __post_init__(self) -> None:
        try:
            axis = Axis(self.axis)
        except ValueError as e:
            raise InvalidSeries(f"Unknown axis: {self.axis!r}") from e

        pos = _as_float_1d(self.positions, name="positions")
        n = int(pos.size)
        if n and not np.isfinite(pos).all():
            raise InvalidSeries("`positions` contains non-finite values (NaN/Inf).")

        if not isinstance(self.values, Mapping):
            raise InvalidSeries("`values` must be a mapping of proxy key -> array.")
        vals: Dict[str, np.ndarray] = {}
        for k, v in self.values.items():
            key = str(k)
            if not key.strip():
                raise InvalidSeries("Proxy keys must be non-empty strings.")
            a = _as_float_1d(v, name=f"values[{key}]")
            if a.size != n:
                raise InvalidSeries(f"Proxy {key!r} has {a.size} values for {n} positions.")
            a[~np.isfinite(a)] = np.nan
            vals[key] = _readonly(a)

        if self.qc is None:
            qc = np.zeros(n, dtype="int8")
        else:
            qc = np.array(self.qc, dtype="int8", copy=True).reshape(-1)
            if qc.size != n:
                raise InvalidSeries(f"`qc` has {qc.size} flags for {n} positions.")

        if self.extrapolated is None:
            ex = np.zeros(n, dtype=bool)
        else:
            ex = np.array(self.extrapolated, dtype=bool, copy=True).reshape(-1)
            if ex.size != n:
                raise InvalidSeries(f"`extrapolated` has {ex.size} flags for {n} positions.")

        depths = None
        if self.depths is not None:
            depths = _as_float_1d(self.depths, name="depths")
            if depths.size != n:
                raise InvalidSeries(f"`depths` has {depths.size} values for {n} positions.")
            depths = _readonly(depths)

        sources = None
        if self.sources is not None:
            sources = np.array([None if s is None else str(s) for s in self.sources], dtype=object)
            if sources.size != n:
                raise InvalidSeries(f"`sources` has {sources.size} ids for {n} positions.")
            sources = _readonly(sources)

        object.__setattr__(self, "axis", axis)
        object.__setattr__(self, "positions", _readonly(pos))
        object.__setattr__(self, "values", vals)
        object.__setattr__(self, "qc", _readonly(qc))
        object.__setattr__(self, "extrapolated", _readonly(ex))
        object.__setattr__(self, "depths", depths)
        object.__setattr__(self, "sources", sources)
        object.__setattr__(self, "warnings", tuple(self.warnings))

    # ---- basic accessors ----
    @property
    def n(self) -> int:
        return int(self.positions.size)

    def __len__(self) -> int:
        return self.n

    @property
    def proxy_keys(self) -> List[str]:
        return list(self.values.keys())

    @property
    def has_reversal(self) -> bool:
        return any(isinstance(w, ReversalDetected) for w in self.warnings)

    @property
    def span(self) -> Optional[Tuple[float, float]]:
        if self.n == 0:
            return None
        return float(np.min(self.positions)), float(np.max(self.positions))

    def source_ids(self) -> np.ndarray:
        if self.sources is not None:
            return self.sources
        return np.array([self.section_id] * self.n, dtype=object)

    def proxy(self, key: str) -> np.ndarray:
        if key not in self.values:
            raise KeyError(f"Proxy {key!r} not in series (have: {self.proxy_keys})")
        return self.values[key]

    def valid_mask(self, key: str, *, exclude_flagged: bool = True) -> np.ndarray:
        """Samples that carry a measurement for `key` (and are not QC-excluded)."""
        m = np.isfinite(self.proxy(key))
        if exclude_flagged:
            m &= self.qc != QC_EXCLUDE
        return m

    # ---- ordering ----
    def is_strictly_increasing(self) -> bool:
        return bool(self.n < 2 or np.all(np.diff(self.positions) > 0))

    def require_strictly_increasing(self) -> None:
        if self.n < 2:
            return
        d = np.diff(self.positions)
        bad = np.where(d <= 0)[0]
        if bad.size:
            i = int(bad[0]) + 1
            what = "Duplicate" if d[bad[0]] == 0 else "Out-of-order"
            raise DuplicatePositions(
                f"{what} {self.axis.value} at sample {i}: {self.positions[i]:g} "
                f"(previous {self.positions[i - 1]:g})"
                + (f" in section {self.section_id}" if self.section_id else ""),
                index=i,
                position=float(self.positions[i]),
            )

    # ---- derivation ----
    def take(self, idx: Sequence[int] | np.ndarray) -> "ProxySeries":
        """New series holding the samples at `idx` (in that order)."""
        idx = np.asarray(idx, dtype=np.int64)
        return replace(
            self,
            positions=self.positions[idx],
            values={k: v[idx] for k, v in self.values.items()},
            qc=self.qc[idx],
            extrapolated=self.extrapolated[idx],
            depths=None if self.depths is None else self.depths[idx],
            sources=None if self.sources is None else self.sources[idx],
        )

    def slice_positions(self, lo: Optional[float] = None, hi: Optional[float] = None) -> "ProxySeries":
        mask = np.ones(self.n, dtype=bool)
        if lo is not None:
            mask &= self.positions >= float(lo)
        if hi is not None:
            mask &= self.positions <= float(hi)
        return self.take(np.where(mask)[0])

    def with_proxy(self, key: str, values: Iterable[float]) -> "ProxySeries":
        vals = dict(self.values)
        vals[str(key)] = np.asarray(list(values), dtype="float64")
        return replace(self, values=vals)

    # ---- sample views ----
    def sample(self, i: int) -> ProxySample:
        vals = {}
        for k, v in self.values.items():
            x = float(v[i])
            vals[k] = None if np.isnan(x) else x
        src = self.sources[i] if self.sources is not None else self.section_id
        return ProxySample(
            position=float(self.positions[i]),
            values=vals,
            qc_flag=int(self.qc[i]),
            extrapolated=bool(self.extrapolated[i]),
            depth=None if self.depths is None else float(self.depths[i]),
            section_id=src,
        )

    def __iter__(self) -> Iterator[ProxySample]:
        for i in range(self.n):
            yield self.sample(i)

    # ---- records / frames ----
    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        *,
        axis: Axis | str = Axis.DEPTH,
        section_id: Optional[str] = None,
    ) -> "ProxySeries":
        """
        Build from data-sheet style rows: {"depth": 1.2, "delta18O": 3.4, "qc_flag": 0, ...}.

        The position is read from the column named like the axis. Numeric columns
        other than the reserved ones become proxies; None/missing means absent.
        Rows without a position are dropped.
        """
        ax = Axis(axis)
        rows = [r for r in records if r.get(ax.value) is not None]

        keys: List[str] = []
        for r in rows:
            for k, v in r.items():
                if k in _RESERVED_KEYS or k in keys:
                    continue
                if isinstance(v, bool) or not (v is None or isinstance(v, (int, float, np.number))):
                    continue
                keys.append(k)

        positions = [float(r[ax.value]) for r in rows]
        values: Dict[str, List[float]] = {k: [] for k in keys}
        for r in rows:
            for k in keys:
                v = r.get(k)
                values[k].append(np.nan if v is None or isinstance(v, bool) else float(v))

        qc = [int(r.get("qc_flag", r.get("qcFlag")) or QC_OK) for r in rows]
        depths = None
        if ax is Axis.AGE and any(r.get("depth") is not None for r in rows):
            depths = [np.nan if r.get("depth") is None else float(r["depth"]) for r in rows]

        return cls(axis=ax, positions=positions, values=values, qc=qc, depths=depths, section_id=section_id)

    def to_records(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for s in self:
            row: Dict[str, Any] = {self.axis.value: s.position}
            if self.axis is Axis.AGE and s.depth is not None:
                row["depth"] = s.depth
            row.update(s.values)
            row["qc_flag"] = s.qc_flag
            if self.axis is Axis.AGE:
                row["extrapolated"] = s.extrapolated
            if s.section_id is not None:
                row["section_id"] = s.section_id
            out.append(row)
        return out

    def to_frame(self) -> "Any":
        import pandas as pd

        data: Dict[str, Any] = {self.axis.value: self.positions}
        if self.depths is not None:
            data["depth"] = self.depths
        for k, v in self.values.items():
            data[k] = v
        data["qc_flag"] = self.qc
        if self.axis is Axis.AGE:
            data["extrapolated"] = self.extrapolated
        if self.sources is not None or self.section_id is not None:
            data["section_id"] = self.source_ids()
        return pd.DataFrame(data)

    @classmethod
    def from_frame(
        cls,
        df: "Any",
        *,
        axis: Axis | str = Axis.DEPTH,
        section_id: Optional[str] = None,
        proxy_columns: Optional[Sequence[str]] = None,
    ) -> "ProxySeries":
        import pandas as pd

        ax = Axis(axis)
        if ax.value not in df.columns:
            raise InvalidSeries(f"Missing position column {ax.value!r} (have: {list(df.columns)})")

        pos = pd.to_numeric(df[ax.value], errors="coerce")
        df = df.loc[pos.notna()]
        pos = pos.loc[pos.notna()]

        if proxy_columns is None:
            proxy_columns = [
                c for c in df.columns
                if c not in _RESERVED_KEYS and pd.api.types.is_numeric_dtype(df[c]) and not pd.api.types.is_bool_dtype(df[c])
            ]

        values = {str(c): pd.to_numeric(df[c], errors="coerce").to_numpy(dtype="float64") for c in proxy_columns}

        qc = None
        for qc_col in ("qc_flag", "qcFlag"):
            if qc_col in df.columns:
                qc = pd.to_numeric(df[qc_col], errors="coerce").fillna(QC_OK).to_numpy(dtype="int8")
                break

        depths = None
        if ax is Axis.AGE and "depth" in df.columns:
            depths = pd.to_numeric(df["depth"], errors="coerce").to_numpy(dtype="float64")

        return cls(
            axis=ax,
            positions=pos.to_numpy(dtype="float64"),
            values=values,
            qc=qc,
            depths=depths,
            section_id=section_id,
        )

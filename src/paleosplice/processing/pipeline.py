# src/paleosplice/processing/pipeline.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Sequence, Tuple, Union

import numpy as np

from ..series import ProxySeries


@dataclass(frozen=True)
class MovingAverage:
    """Centred running mean over `window` samples (window // 2 on each side)."""
    window: int = 3

    def __post_init__(self) -> None:
        if int(self.window) < 1:
            raise ValueError(f"MovingAverage.window must be >= 1 (got {self.window}).")
        object.__setattr__(self, "window", int(self.window))

    def apply(self, x: np.ndarray) -> np.ndarray:
        """
        Windows are truncated at the ends and average only present values; a
        window with no present value stays absent (NaN).
        """
        x = np.asarray(x, dtype="float64")
        n = int(x.size)
        if n == 0:
            return x.copy()
        half = self.window // 2

        fin = np.isfinite(x)
        csum = np.concatenate([[0.0], np.cumsum(np.where(fin, x, 0.0))])
        ccnt = np.concatenate([[0], np.cumsum(fin.astype(np.int64))])

        i = np.arange(n)
        lo = np.clip(i - half, 0, n)
        hi = np.clip(i + half + 1, 0, n)
        s = csum[hi] - csum[lo]
        c = ccnt[hi] - ccnt[lo]

        out = np.full(n, np.nan, dtype="float64")
        ok = c > 0
        out[ok] = s[ok] / c[ok]
        return out


PipelineStep = Union[MovingAverage]


@dataclass(frozen=True)
class ProcessingPipeline:
    """
    Named chain of smoothing steps applied to one source proxy. The result is a
    virtual proxy stored under `name`; each step reads the previous step's output.
    """
    name: str
    source_proxy: str
    steps: Tuple[PipelineStep, ...] = field(default=())
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("ProcessingPipeline.name must be non-empty.")
        object.__setattr__(self, "steps", tuple(self.steps))

    @property
    def label(self) -> str:
        return ", ".join(f"MA({s.window})" for s in self.steps) or "identity"


def apply_pipeline(series: ProxySeries, pipeline: ProcessingPipeline) -> ProxySeries:
    """New series with the pipeline output added as proxy `pipeline.name`."""
    if pipeline.name == pipeline.source_proxy:
        raise ValueError(f"Pipeline {pipeline.name!r} would overwrite its source proxy.")
    x = series.proxy(pipeline.source_proxy)
    for step in pipeline.steps:
        x = step.apply(x)
    return series.with_proxy(pipeline.name, x)


def apply_pipelines(series: ProxySeries, pipelines: Sequence[ProcessingPipeline]) -> ProxySeries:
    for p in pipelines:
        series = apply_pipeline(series, p)
    return series

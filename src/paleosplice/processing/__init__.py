# src/paleosplice/processing/__init__.py
from __future__ import annotations

from .pipeline import MovingAverage, PipelineStep, ProcessingPipeline, apply_pipeline, apply_pipelines

__all__ = [
    "MovingAverage",
    "PipelineStep",
    "ProcessingPipeline",
    "apply_pipeline",
    "apply_pipelines",
]

# src/paleosplice/config/schema.py
from __future__ import annotations

from dataclasses import dataclass, field

from ..chronology.calibrate import CalibrationConfig
from ..correlation.lag import CorrelationConfig
from ..suggest.deterministic import SuggestConfig


@dataclass(frozen=True)
class AcceptConfig:
    # depth distance within which an existing tie point supplies the age
    depth_tolerance: float = 1.0


@dataclass(frozen=True)
class RunConfig:
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)
    suggest: SuggestConfig = field(default_factory=SuggestConfig)
    accept: AcceptConfig = field(default_factory=AcceptConfig)
    log_level: str = "WARNING"

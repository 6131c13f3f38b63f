# src/paleosplice/chronology/__init__.py
from __future__ import annotations

from .tiepoints import TiePoint, AgeModel, check_tie_points, new_tie_point_id
from .monotonic import MonotonicConfig, find_age_reversals
from .calibrate import CalibrationConfig, calibrate, depth_to_age

__all__ = [
    "TiePoint",
    "AgeModel",
    "check_tie_points",
    "new_tie_point_id",
    "MonotonicConfig",
    "find_age_reversals",
    "CalibrationConfig",
    "calibrate",
    "depth_to_age",
]

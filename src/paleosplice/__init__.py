# src/paleosplice/__init__.py
"""
paleosplice: age-depth calibration, composite splicing and lag correlation
for multi-section sediment-core proxy records.

Keep this import-light; subpackages pull in scipy/pandas on demand.
"""
from __future__ import annotations

__version__ = "0.3.0"

__all__ = ["__version__"]

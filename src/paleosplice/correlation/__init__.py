# src/paleosplice/correlation/__init__.py
from __future__ import annotations

"""
Correlation subpackage = lag sweep + peak extraction + within-section analyses.

Keep this import-light: suggest.* imports from here, and nothing here may
import suggest.* or splice.*.
"""

from .lag import CorrelationConfig, CorrelationCurve, CorrelationPoint, correlate, lag_values
from .peaks import CorrelationPeak, find_correlation_peaks
from .leadlag import LeadLagResult, ProxyRegression, lead_lag, proxy_regression

__all__ = [
    "CorrelationConfig",
    "CorrelationCurve",
    "CorrelationPoint",
    "correlate",
    "lag_values",
    "CorrelationPeak",
    "find_correlation_peaks",
    "LeadLagResult",
    "ProxyRegression",
    "lead_lag",
    "proxy_regression",
]

# src/paleosplice/suggest/__init__.py
from __future__ import annotations

from .base import Suggester, TiePointSuggestion
from .deterministic import CorrelationSuggester, SuggestConfig, reference_landmarks
from .remote import FallbackSuggester, RemoteSuggester
from .accept import AcceptedSuggestion, accept_suggestion

__all__ = [
    "Suggester",
    "TiePointSuggestion",
    "CorrelationSuggester",
    "SuggestConfig",
    "reference_landmarks",
    "FallbackSuggester",
    "RemoteSuggester",
    "AcceptedSuggestion",
    "accept_suggestion",
]

from __future__ import annotations

from .base import BaseSource, FetchStats
from .http import PoliteHttpClient
from .orchestrator import ExtractionBatch, SourceOutcome, run_all
from .registry import register_sources

__all__ = [
    "BaseSource",
    "ExtractionBatch",
    "FetchStats",
    "PoliteHttpClient",
    "SourceOutcome",
    "register_sources",
    "run_all",
]

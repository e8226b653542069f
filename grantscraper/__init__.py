"""Scholarship listing ingestion, normalization and corpus reconciliation."""

__version__ = "0.1.0"

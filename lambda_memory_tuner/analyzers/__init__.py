"""Analyzers for Lambda tuning measurements."""

from .analyzer import PerformanceAnalyzer, latest_by_memory

__all__ = ["PerformanceAnalyzer", "latest_by_memory"]

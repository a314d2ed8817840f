"""Orchestration of the engine components into one analysis run."""

from .conflict_pipeline import ConflictAnalyzer, analyze_conflicts  # noqa: F401

__all__ = ["ConflictAnalyzer", "analyze_conflicts"]

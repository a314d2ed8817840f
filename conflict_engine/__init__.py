"""Top-level package for the event conflict scoring engine.

This package simply exposes the analysis entry point so callers can do
`from conflict_engine import AnalysisParams, analyze_conflicts`.
"""

from importlib import metadata as _metadata

try:
    __version__: str = _metadata.version("event-conflict-engine")
except _metadata.PackageNotFoundError:  # pragma: no cover – running from source
    __version__ = "0.0.0"

from .models import AnalysisParams, AnalysisResult  # noqa: F401
from .workflows.conflict_pipeline import ConflictAnalyzer, analyze_conflicts  # convenience re-export

__all__ = ["AnalysisParams", "AnalysisResult", "ConflictAnalyzer", "analyze_conflicts", "__version__"]

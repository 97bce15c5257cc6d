"""
SQLAlchemy models package.
"""
from fatigue.models.analysis_run import AnalysisRun

__all__ = [
    "AnalysisRun",
]

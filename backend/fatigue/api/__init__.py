"""
API routes package.

Exports all API routers for easy inclusion in the main application.
"""
from fatigue.api import analysis, expressions, rainflow

__all__ = [
    "analysis",
    "expressions",
    "rainflow",
]

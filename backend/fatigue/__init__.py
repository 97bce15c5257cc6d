"""
Fatigue damage engine.

Structural fatigue damage and remaining life at analysis nodes from
multi-channel load time series, unit-load stress responses and S-N curve
material data.
"""
__version__ = "1.0.0"

"""
Core algorithms of the fatigue damage engine.

This package provides:
- Interpolation of unit-load stress responses
- Stress reconstruction and stress criteria
- Rainflow cycle counting
- S-N curves and mean stress correction
- Damage accumulation (Miner's rule)
- Expression evaluation

Run orchestration lives in ``fatigue.core.engine``.
"""
from . import errors
from . import interpolation
from . import stress
from . import rainflow
from . import sn_curve
from . import mean_stress
from . import damage_accumulation
from . import expressions

__all__ = [
    'errors',
    'interpolation',
    'stress',
    'rainflow',
    'sn_curve',
    'mean_stress',
    'damage_accumulation',
    'expressions',
]

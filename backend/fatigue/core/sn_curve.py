"""
Bilinear S-N curve (Woehler curve) in log-log space.

Equation:
    N = N_k × (ΔS_k / ΔS)^m1     for ΔS > ΔS_k
    N = N_k × (ΔS_k / ΔS)^m2     for ΔS ≤ ΔS_k

Where:
    N:    Allowable cycles at stress range ΔS
    N_k:  Cycle count at the knee point
    ΔS_k: Stress range at the knee point
    m1:   Slope above the knee
    m2:   Slope below the knee

Both branches pass through the knee, so the curve is continuous there.
Stress ranges above the upper cutoff saturate at the cutoff; ranges below
the lower cutoff are treated as non-damaging.

References:
    - DNV-RP-C203, "Fatigue design of offshore steel structures"
    - EN 1993-1-9, "Eurocode 3: Design of steel structures - Fatigue"
"""
from dataclasses import dataclass
from typing import Optional
import logging
import math

from fatigue.core.errors import ConfigurationError, DomainError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SNCurve:
    """Material fatigue curve.

    Attributes:
        m1: Slope above the knee (> 0)
        m2: Slope below the knee (> 0)
        knee_cycle: Cycle count at the knee point (> 0)
        knee_stress: Stress range at the knee point
        cutoff_max: Upper stress cutoff, ranges saturate here
        cutoff_min: Lower stress cutoff, ranges below are skipped
    """
    m1: float
    m2: float
    knee_cycle: float
    knee_stress: float
    cutoff_max: float
    cutoff_min: float

    def __post_init__(self):
        _validate_positive(self.m1, "m1")
        _validate_positive(self.m2, "m2")
        _validate_positive(self.knee_cycle, "knee.cycle")
        _validate_positive(self.knee_stress, "knee.stress")
        if self.cutoff_min < 0:
            raise ConfigurationError(
                f"cutoff.min must be non-negative, got {self.cutoff_min}"
            )
        if not (self.cutoff_min < self.knee_stress < self.cutoff_max):
            raise ConfigurationError(
                f"knee.stress must lie strictly between cutoff.min and cutoff.max, "
                f"got {self.cutoff_min} < {self.knee_stress} < {self.cutoff_max}"
            )

    def slope_at(self, stress_range: float) -> float:
        """Return the slope governing ``stress_range``."""
        return self.m1 if stress_range > self.knee_stress else self.m2

    def cycles_to_failure(self, stress_range: float) -> float:
        """
        Allowable cycles N at a given (already clipped) stress range.

        Args:
            stress_range: Effective stress range, must be positive

        Returns:
            float: Allowable number of cycles

        Raises:
            DomainError: If the stress is non-positive or N is not finite
        """
        if not math.isfinite(stress_range) or stress_range <= 0:
            raise DomainError(
                f"S-N curve evaluated at non-positive stress range {stress_range}",
                context={"stress_range": stress_range},
            )

        m = self.slope_at(stress_range)
        try:
            n = self.knee_cycle * (self.knee_stress / stress_range) ** m
        except OverflowError:
            raise DomainError(
                f"Allowable cycles overflow at stress range {stress_range}",
                context={"stress_range": stress_range},
            )

        if not math.isfinite(n) or n <= 0:
            raise DomainError(
                f"Allowable cycles not finite at stress range {stress_range}",
                context={"stress_range": stress_range},
            )
        return n

    def clip(self, stress_range: float) -> Optional[float]:
        """
        Apply the stress cutoffs.

        Returns:
            The saturated range, or None if the range is below ``cutoff_min``
            or not positive and therefore contributes no damage.
        """
        if stress_range <= 0 or stress_range < self.cutoff_min:
            return None
        return min(stress_range, self.cutoff_max)


def _validate_positive(value: float, param_name: str) -> None:
    if value is None or not math.isfinite(value) or value <= 0:
        raise ConfigurationError(
            f"Parameter '{param_name}' must be positive, got {value}"
        )

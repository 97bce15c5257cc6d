"""
Mean stress correction of rainflow cycles.

Converts a cycle (range, mean) to an effective stress range that is used
against an S-N curve determined at zero mean stress.

Methods (``M`` is the mean stress sensitivity, 0 ≤ M ≤ 1):
    NONE:       ΔS_eff = ΔS
    LINEAR:     ΔS_eff = ΔS + 2·M·σm
    BI-LINEAR:  ΔS_eff = ΔS + 2·M·σm        for σm ≥ 0
                ΔS_eff = ΔS + 2·(M/3)·σm    for σm < 0
    GOODMAN:    ΔS_eff = ΔS / (1 − σm/σu)   for σm > 0, unchanged otherwise

Postfix:
    FIXEDMEAN:  ΔS_eff ← ΔS_eff·(1 + M), a fixed transform that does not
                depend on the cycle mean
    NONE:       no transform
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional
import logging

from fatigue.core.errors import ConfigurationError, DomainError


logger = logging.getLogger(__name__)


class MeanStressMethod(str, Enum):
    NONE = "NONE"
    LINEAR = "LINEAR"
    BILINEAR = "BI-LINEAR"
    GOODMAN = "GOODMAN"


class MeanStressPostfix(str, Enum):
    NONE = "NONE"
    FIXEDMEAN = "FIXEDMEAN"


@dataclass(frozen=True)
class MeanStressCorrection:
    """Mean stress correction settings.

    Attributes:
        method: Per-cycle correction method
        postfix: Fixed transform applied after the method
        sensitivity: Mean stress sensitivity M in [0, 1]
        ultimate_stress: Material ultimate stress, required by GOODMAN
    """
    method: MeanStressMethod = MeanStressMethod.NONE
    postfix: MeanStressPostfix = MeanStressPostfix.NONE
    sensitivity: float = 0.0
    ultimate_stress: Optional[float] = None

    def __post_init__(self):
        if not 0.0 <= self.sensitivity <= 1.0:
            raise ConfigurationError(
                f"mean stress sensitivity must be between 0.0 and 1.0, "
                f"got {self.sensitivity}"
            )
        if self.method == MeanStressMethod.GOODMAN:
            if self.ultimate_stress is None or self.ultimate_stress <= 0:
                raise ConfigurationError(
                    "GOODMAN correction requires a positive ultimate_stress"
                )

    def effective_range(self, stress_range: float, mean: float) -> float:
        """Return the corrected stress range for one cycle."""
        corrected = _METHODS[self.method](self, stress_range, mean)
        if self.postfix == MeanStressPostfix.FIXEDMEAN:
            corrected *= 1.0 + self.sensitivity
        return corrected


def _none(corr: MeanStressCorrection, stress_range: float, mean: float) -> float:
    return stress_range


def _linear(corr: MeanStressCorrection, stress_range: float, mean: float) -> float:
    return stress_range + 2.0 * corr.sensitivity * mean


def _bilinear(corr: MeanStressCorrection, stress_range: float, mean: float) -> float:
    m = corr.sensitivity if mean >= 0 else corr.sensitivity / 3.0
    return stress_range + 2.0 * m * mean


def _goodman(corr: MeanStressCorrection, stress_range: float, mean: float) -> float:
    if mean <= 0:
        return stress_range
    if mean >= corr.ultimate_stress:
        raise DomainError(
            f"Mean stress {mean:.4g} reaches ultimate stress "
            f"{corr.ultimate_stress:.4g} in GOODMAN correction",
            context={"mean": mean, "range": stress_range},
        )
    return stress_range / (1.0 - mean / corr.ultimate_stress)


_METHODS: Dict[MeanStressMethod, Callable[[MeanStressCorrection, float, float], float]] = {
    MeanStressMethod.NONE: _none,
    MeanStressMethod.LINEAR: _linear,
    MeanStressMethod.BILINEAR: _bilinear,
    MeanStressMethod.GOODMAN: _goodman,
}

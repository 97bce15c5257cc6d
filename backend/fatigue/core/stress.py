"""
Stress reconstruction from load time series.

Every raw sample (a named-channel load vector) is pushed through the
interpolant to obtain the nodal stress tensors for that instant, which a
stress criterion reduces to scalar stress channels. The result is a lazy
stream: one sample in, one stress array out, nothing materialised.

Stress tensors use the component order sxx, syy, szz, sxy, syz, szx.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union
import logging
import math

import numpy as np

from fatigue.core.errors import ConfigurationError, DataError
from fatigue.core.interpolation import Interpolant


logger = logging.getLogger(__name__)

Sample = Union[Mapping[str, float], Sequence[float]]


class StressCriterionMethod(str, Enum):
    NONE = "NONE"
    VONMISES = "VONMISES"
    MAXIMUM = "MAXIMUM"
    SXXCRIT = "SXXCRIT"


def _as_tensors(tensors: np.ndarray) -> np.ndarray:
    t = np.asarray(tensors, dtype=float)
    if t.ndim == 1:
        t = t.reshape(1, -1)
    if t.ndim != 2 or t.shape[1] != 6:
        raise DataError(
            f"Stress criterion expects tensors of shape (n_nodes, 6), got {t.shape}"
        )
    return t


def principal_stresses(tensors: np.ndarray) -> np.ndarray:
    """
    Principal stresses of a batch of tensors.

    Args:
        tensors: Array (n_nodes, 6)

    Returns:
        Array (n_nodes, 3), ascending per node
    """
    t = _as_tensors(tensors)
    sxx, syy, szz, sxy, syz, szx = t.T
    matrices = np.stack([
        np.stack([sxx, sxy, szx], axis=-1),
        np.stack([sxy, syy, syz], axis=-1),
        np.stack([szx, syz, szz], axis=-1),
    ], axis=-2)
    return np.linalg.eigvalsh(matrices)


def _dominant_principal(tensors: np.ndarray) -> np.ndarray:
    principal = principal_stresses(tensors)
    idx = np.argmax(np.abs(principal), axis=1)
    return principal[np.arange(principal.shape[0]), idx]


def von_mises(tensors: np.ndarray) -> np.ndarray:
    """Von Mises equivalent stress, shape (n_nodes,)."""
    t = _as_tensors(tensors)
    sxx, syy, szz, sxy, syz, szx = t.T
    return np.sqrt(
        0.5 * ((sxx - syy) ** 2 + (syy - szz) ** 2 + (szz - sxx) ** 2)
        + 3.0 * (sxy ** 2 + syz ** 2 + szx ** 2)
    )


def plane_normal_stresses(tensors: np.ndarray, planes: int) -> np.ndarray:
    """
    Normal stress on ``planes`` planes evenly spaced over 180° in the x-y plane.

    σn(θ) = sxx·cos²θ + syy·sin²θ + 2·sxy·sinθ·cosθ

    Returns:
        Array (n_nodes, planes)
    """
    t = _as_tensors(tensors)
    theta = np.arange(planes) * math.pi / planes
    c, s = np.cos(theta), np.sin(theta)
    sxx, syy, sxy = t[:, 0:1], t[:, 1:2], t[:, 3:4]
    return sxx * c ** 2 + syy * s ** 2 + 2.0 * sxy * s * c


@dataclass(frozen=True)
class StressCriterion:
    """Reduces nodal stress tensors to scalar stress channels.

    NONE uses sxx. VONMISES is signed by the dominant principal stress so
    that reversals between tension and compression show up as ranges.
    MAXIMUM is the dominant (largest magnitude) principal stress. SXXCRIT
    evaluates ``number`` candidate planes; each plane is a channel.
    """
    method: StressCriterionMethod = StressCriterionMethod.NONE
    number: Optional[int] = None

    def __post_init__(self):
        if self.method == StressCriterionMethod.SXXCRIT and (self.number is None or self.number <= 0):
            raise ConfigurationError("number must be greater than 0 for method SXXCRIT")

    @property
    def channels(self) -> int:
        if self.method == StressCriterionMethod.SXXCRIT:
            return int(self.number)
        return 1

    def __call__(self, tensors: np.ndarray) -> np.ndarray:
        """Return scalar stresses, shape (n_nodes, channels)."""
        if self.method == StressCriterionMethod.NONE:
            return _as_tensors(tensors)[:, 0:1]
        if self.method == StressCriterionMethod.VONMISES:
            sign = np.where(_dominant_principal(tensors) < 0, -1.0, 1.0)
            return (sign * von_mises(tensors))[:, None]
        if self.method == StressCriterionMethod.MAXIMUM:
            return _dominant_principal(tensors)[:, None]
        return plane_normal_stresses(tensors, self.channels)


def sample_vector(sample: Sample, channels: Sequence[str], index: int = 0) -> np.ndarray:
    """
    Order a raw sample into a load vector.

    Raises:
        DataError: If the sample's channels do not match ``channels``
    """
    if isinstance(sample, Mapping):
        if set(sample.keys()) != set(channels):
            missing = sorted(set(channels) - set(sample.keys()))
            extra = sorted(set(sample.keys()) - set(channels))
            raise DataError(
                f"Sample {index} channels do not match the configured sensors "
                f"(missing: {missing}, unexpected: {extra})",
                context={"sample": index},
            )
        values = [sample[name] for name in channels]
    else:
        values = list(sample)
        if len(values) != len(channels):
            raise DataError(
                f"Sample {index} has {len(values)} channels, expected {len(channels)}",
                context={"sample": index},
            )

    try:
        vector = np.array(values, dtype=float)
    except (TypeError, ValueError):
        raise DataError(f"Sample {index} contains non-numeric values", context={"sample": index})
    if not np.all(np.isfinite(vector)):
        raise DataError(f"Sample {index} contains non-finite values", context={"sample": index})
    return vector


@dataclass(frozen=True)
class StressComponent:
    """One interpolation contributing to the node stress.

    Attributes:
        interpolant: Unit-load response model
        channels: Sensor names in interpolant coordinate order
        scale: Scale factor of the interpolated response
        name: Interpolation name, for messages
    """
    interpolant: Interpolant
    channels: Tuple[str, ...]
    scale: float = 1.0
    name: str = ""

    def __post_init__(self):
        if len(self.channels) != self.interpolant.dimension:
            raise ConfigurationError(
                f"{len(self.channels)} sensor channels configured for a "
                f"{self.interpolant.dimension}-dimensional interpolant"
                + (f" '{self.name}'" if self.name else "")
            )


def superpose_stress(
    samples: Iterable[Mapping[str, float]],
    components: Sequence[StressComponent],
    criterion: Optional[StressCriterion] = None,
) -> Iterator[np.ndarray]:
    """
    Stream node stresses as the sum of several interpolated responses.

    Every sample must carry exactly the union of the components' sensor
    channels. The components are evaluated on their own channels, scaled
    and summed before the criterion is applied.

    Yields:
        ``criterion(Σ scale_k · interpolant_k(sample))`` per sample
    """
    if not components:
        raise ConfigurationError("No interpolation configured for stress reconstruction")
    all_channels: List[str] = []
    for component in components:
        all_channels.extend(c for c in component.channels if c not in all_channels)

    for index, sample in enumerate(samples):
        vector = sample_vector(sample, all_channels, index)
        values = dict(zip(all_channels, vector))
        response = None
        for component in components:
            query = [values[name] for name in component.channels]
            part = component.scale * component.interpolant.evaluate(query)
            response = part if response is None else response + part
        if criterion is not None:
            response = criterion(response)
        yield response


def reconstruct_stress(
    samples: Iterable[Sample],
    interpolant: Interpolant,
    channels: Sequence[str],
    scale: float = 1.0,
    criterion: Optional[StressCriterion] = None,
) -> Iterator[np.ndarray]:
    """
    Stream node stresses for a load time series.

    Args:
        samples: Raw samples, pulled one at a time
        interpolant: Unit-load response model
        channels: Sensor names in interpolant coordinate order
        scale: Scale factor applied to every stress value
        criterion: Reduction of stress tensors to scalar channels; when
            None the interpolated response is used as is

    Yields:
        ``criterion(scale · interpolant.evaluate(sample))`` per sample. All
        criteria are positively homogeneous, so for ``scale > 0`` this equals
        ``scale · criterion(...)``.
    """
    component = StressComponent(interpolant, tuple(channels), scale)
    for index, sample in enumerate(samples):
        response = scale * interpolant.evaluate(sample_vector(sample, component.channels, index))
        if criterion is not None:
            response = criterion(response)
        yield response


def node_stress_history(
    samples: Iterable[Sample],
    interpolant: Interpolant,
    channels: Sequence[str],
    node: int = 0,
    scale: float = 1.0,
    criterion: Optional[StressCriterion] = None,
    channel: int = 0,
) -> Iterator[float]:
    """Scalar stress history of one node (and stress channel)."""
    for stresses in reconstruct_stress(samples, interpolant, channels, scale, criterion):
        arr = np.atleast_1d(stresses)
        if arr.ndim == 1:
            yield float(arr[node])
        else:
            yield float(arr[node, channel])

"""
Interpolation of unit-load stress responses.

An ``Interpolant`` is built once per run from a set of sample points
(load-channel coordinates with their stress response) and is then
evaluated for every sample of every load case. Interpolants are immutable
and safe to share between worker threads.

Strategies are a closed set of named variants (``InterpolationMethod``).
Each one is a ``InterpolationStrategy`` subclass registered in the
``InterpolationFactory``; call sites only ever go through
``build_interpolant``.

Usage:
    points = [
        InterpolationPoint((1.0, 0.0), response_fx),
        InterpolationPoint((0.0, 1.0), response_fy),
    ]
    interpolant = build_interpolant(points, InterpolationMethod.LINEAR)
    stress = interpolant.evaluate([120.0, -35.0])
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Type
import logging

import numpy as np

from fatigue.core.errors import (
    ConfigurationError,
    DataError,
    DegenerateBasisError,
)


logger = logging.getLogger(__name__)


class InterpolationMethod(str, Enum):
    LINEAR = "LINEAR"
    NEAREST = "NEAREST"


@dataclass(frozen=True)
class InterpolationPoint:
    """A sample point of the response model.

    Attributes:
        coordinates: Load vector, one component per load channel
        response: Stress response for this load vector (any shape, e.g.
            ``(n_nodes, 6)`` stress tensors)
        label: Optional source label (file name) for messages
    """
    coordinates: Tuple[float, ...]
    response: np.ndarray = field(compare=False)
    label: Optional[str] = None


class Interpolant(ABC):
    """Queryable response model."""

    def __init__(self, dimension: int, response_shape: Tuple[int, ...]):
        self.dimension = dimension
        self.response_shape = response_shape

    def _as_query(self, query: Sequence[float]) -> np.ndarray:
        q = np.asarray(query, dtype=float)
        if q.ndim != 1 or q.shape[0] != self.dimension:
            raise DataError(
                f"Query has {q.size} components, interpolant expects {self.dimension}",
                context={"expected": self.dimension, "got": int(q.size)},
            )
        return q

    @abstractmethod
    def evaluate(self, query: Sequence[float]) -> np.ndarray:
        """Return the response for a load vector."""


class InterpolationStrategy(ABC):
    """Builds an interpolant from sample points."""

    method: InterpolationMethod

    @abstractmethod
    def build(self, points: Sequence[InterpolationPoint], dimension: int) -> Interpolant:
        pass


class LinearInterpolant(Interpolant):
    """Response as a linear combination of the load components.

    ``response(q) = Σ q[i]·coefficients[i]``; for unit-axis samples the
    coefficients are the sample responses themselves.
    """

    def __init__(self, coefficients: np.ndarray, response_shape: Tuple[int, ...]):
        super().__init__(coefficients.shape[0], response_shape)
        self.coefficients = coefficients
        self.coefficients.setflags(write=False)

    def evaluate(self, query: Sequence[float]) -> np.ndarray:
        q = self._as_query(query)
        return (q @ self.coefficients).reshape(self.response_shape)


class LinearStrategy(InterpolationStrategy):
    """Least-squares linear model through the origin (superposition)."""

    method = InterpolationMethod.LINEAR

    def __init__(self, tolerance: Optional[float] = None):
        self.tolerance = tolerance

    def build(self, points: Sequence[InterpolationPoint], dimension: int) -> Interpolant:
        coords, responses, shape = _stack_points(points, dimension)

        rank = int(np.linalg.matrix_rank(coords))
        if rank < dimension:
            raise DegenerateBasisError(
                f"Interpolation points span {rank} of {dimension} load dimensions",
                context={"rank": rank, "dimension": dimension},
            )

        coefficients, _, _, _ = np.linalg.lstsq(coords, responses, rcond=None)

        if self.tolerance is not None and len(points) > dimension:
            fitted = coords @ coefficients
            scale = max(float(np.max(np.abs(responses))), 1e-300)
            misfit = float(np.max(np.abs(fitted - responses))) / scale
            if misfit > self.tolerance:
                logger.warning(
                    f"Linear interpolation reproduces sample points only to "
                    f"{misfit:.3g} relative error (tolerance {self.tolerance:g})"
                )

        return LinearInterpolant(coefficients, shape)


class NearestInterpolant(Interpolant):
    """Response of the nearest sample point (Euclidean distance)."""

    def __init__(self, coords: np.ndarray, responses: np.ndarray, response_shape: Tuple[int, ...]):
        super().__init__(coords.shape[1], response_shape)
        self.coords = coords
        self.responses = responses
        self.responses.setflags(write=False)

    def evaluate(self, query: Sequence[float]) -> np.ndarray:
        q = self._as_query(query)
        distances = np.linalg.norm(self.coords - q, axis=1)
        # argmin returns the first minimum: ties go to declaration order
        return self.responses[int(np.argmin(distances))].reshape(self.response_shape)


class NearestStrategy(InterpolationStrategy):

    method = InterpolationMethod.NEAREST

    def __init__(self, tolerance: Optional[float] = None):
        self.tolerance = tolerance

    def build(self, points: Sequence[InterpolationPoint], dimension: int) -> Interpolant:
        coords, responses, shape = _stack_points(points, dimension)
        return NearestInterpolant(coords, responses, shape)


def _stack_points(
    points: Sequence[InterpolationPoint],
    dimension: int,
) -> Tuple[np.ndarray, np.ndarray, Tuple[int, ...]]:
    """Validate sample points and stack them into matrices."""
    if not points:
        raise ConfigurationError("No interpolation points provided")

    shape = np.shape(points[0].response)
    seen: Dict[Tuple[float, ...], str] = {}
    for idx, point in enumerate(points):
        label = point.label or f"point {idx}"
        if len(point.coordinates) != dimension:
            raise ConfigurationError(
                f"Interpolation point '{label}' has {len(point.coordinates)} "
                f"coordinates, dimension is {dimension}"
            )
        key = tuple(float(c) for c in point.coordinates)
        if key in seen:
            raise ConfigurationError(
                f"Duplicate interpolation coordinates {list(key)} "
                f"in '{seen[key]}' and '{label}'"
            )
        seen[key] = label
        if np.shape(point.response) != shape:
            raise ConfigurationError(
                f"Interpolation point '{label}' response has shape "
                f"{np.shape(point.response)}, expected {shape}"
            )

    coords = np.array([p.coordinates for p in points], dtype=float)
    responses = np.array(
        [np.asarray(p.response, dtype=float).ravel() for p in points]
    )
    if not np.all(np.isfinite(responses)):
        raise ConfigurationError("Interpolation responses contain non-finite values")
    return coords, responses, shape


class InterpolationFactory:
    """
    Registry of interpolation strategies.

    Usage:
        InterpolationFactory.register(InterpolationMethod.LINEAR, LinearStrategy)
        strategy = InterpolationFactory.get("LINEAR", tolerance=0.01)
    """

    _strategies: Dict[InterpolationMethod, Type[InterpolationStrategy]] = {}

    @classmethod
    def register(
        cls,
        method: InterpolationMethod,
        strategy_class: Type[InterpolationStrategy],
    ) -> None:
        if not issubclass(strategy_class, InterpolationStrategy):
            raise TypeError(
                f"Strategy class must inherit from InterpolationStrategy, "
                f"got {strategy_class.__name__}"
            )
        if method in cls._strategies:
            logger.warning(
                f"Interpolation method '{method.value}' is already registered. "
                f"Overwriting with {strategy_class.__name__}"
            )
        cls._strategies[method] = strategy_class
        logger.debug(f"Registered interpolation '{method.value}' -> {strategy_class.__name__}")

    @classmethod
    def get(cls, method, **kwargs) -> InterpolationStrategy:
        """
        Get a strategy instance by method.

        Raises:
            ConfigurationError: If the method is unknown or not registered
        """
        try:
            method = InterpolationMethod(method)
        except ValueError:
            raise ConfigurationError(
                f"Unknown interpolation method: '{method}'. "
                f"Available methods: {', '.join(cls.list_methods())}"
            )
        if method not in cls._strategies:
            raise ConfigurationError(
                f"Interpolation method '{method.value}' is not registered"
            )
        return cls._strategies[method](**kwargs)

    @classmethod
    def list_methods(cls) -> List[str]:
        return [m.value for m in cls._strategies]

    @classmethod
    def register_all(cls) -> None:
        cls.register(InterpolationMethod.LINEAR, LinearStrategy)
        cls.register(InterpolationMethod.NEAREST, NearestStrategy)
        logger.info(f"Registered {len(cls._strategies)} interpolation methods")


def build_interpolant(
    points: Sequence[InterpolationPoint],
    method=InterpolationMethod.LINEAR,
    dimension: Optional[int] = None,
    tolerance: Optional[float] = None,
) -> Interpolant:
    """
    Build an interpolant from sample points.

    Args:
        points: Sample points
        method: Interpolation method (default: LINEAR)
        dimension: Load space dimension (default: taken from the first point)
        tolerance: Relative misfit above which a non-linear sample set is
            reported (LINEAR only)

    Returns:
        Interpolant

    Raises:
        ConfigurationError: On invalid points or unknown method
        DegenerateBasisError: If LINEAR points do not span the load space
    """
    if dimension is None:
        if not points:
            raise ConfigurationError("No interpolation points provided")
        dimension = len(points[0].coordinates)
    strategy = InterpolationFactory.get(method, tolerance=tolerance)
    return strategy.build(points, dimension)


InterpolationFactory.register_all()

"""
Rainflow cycle counting for stress time histories.

The counter is written as a pure fold: ``rainflow_step`` takes an immutable
``RainflowState`` and one stress value and returns the next state together
with the cycles closed by that value. ``rainflow_finish`` turns the final
state into residual cycles. Nothing is buffered beyond the pending stack of
turning points, so arbitrarily long histories can be streamed, and the
state can be inspected or stored at any point.

Counting rule (three-point method):

    The stack holds unclosed turning points. For the three most recent
    entries A, B, C (oldest to newest):

        Y = |B − A|   (enclosed range)
        X = |C − B|   (neighbouring range)

        • Y ≤ X → count Y as a full cycle with mean (A + B)/2, remove A
                   and B, re-check.
        • Y > X → stop and wait for the next turning point.

At the end of the history the stack holds the residual, handled by a
``ResidualPolicy``.

References:
    ASTM E1049-85 (2017), "Standard Practices for Cycle Counting in
    Fatigue Analysis", DOI: 10.1520/E1049-85R17
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple
import math
import warnings
import logging

from fatigue.core.errors import DomainError

logger = logging.getLogger(__name__)


class ResidualPolicy(str, Enum):
    """Treatment of unclosed turning points at the end of a history.

    HALF_CYCLES: every adjacent residual pair counts as a half cycle
        (damage weight 0.5).
    REPEAT: the residual is counted a second time as if the history were
        repeated; only full cycles from that pass are kept.
    """
    HALF_CYCLES = "HALF_CYCLES"
    REPEAT = "REPEAT"


@dataclass(frozen=True)
class Cycle:
    """Represents a counted cycle.

    Attributes:
        range: Peak-to-peak stress range
        mean: Mean stress of the cycle
        count: Cycle count (0.5 for half cycles, 1.0 for full)
        min_val: Minimum value of the cycle
        max_val: Maximum value of the cycle
    """
    range: float
    mean: float
    count: float
    min_val: float
    max_val: float

    @classmethod
    def between(cls, a: float, b: float, count: float = 1.0) -> "Cycle":
        return cls(
            range=abs(b - a),
            mean=(a + b) / 2.0,
            count=count,
            min_val=min(a, b),
            max_val=max(a, b),
        )

    def __repr__(self) -> str:
        return (f"Cycle(range={self.range:.4g}, mean={self.mean:.4g}, "
                f"count={self.count:.4g}, min={self.min_val:.4g}, "
                f"max={self.max_val:.4g})")


@dataclass(frozen=True)
class RainflowState:
    """Pending state of a streaming rainflow count.

    Attributes:
        stack: Unclosed turning points, oldest first
        pending: Last sample seen; becomes a turning point once the
            loading direction reverses (or the history ends)
        direction: +1 rising, -1 falling, 0 before the first change
    """
    stack: Tuple[float, ...] = ()
    pending: Optional[float] = None
    direction: int = 0


@dataclass
class RainflowResult:
    """Complete rainflow counting result."""
    cycles: List[Cycle]
    residual: Optional[List[float]] = None
    reversals: Optional[List[float]] = None


def _advance(
    pending: Optional[float],
    direction: int,
    value: float,
) -> Tuple[Optional[float], int, Optional[float]]:
    """
    Turning point detection for one new sample.

    Equal consecutive values are a single point; a monotonic run collapses
    to its last value.

    Returns:
        Tuple of (new pending value, new direction, emitted turning point
        or None)
    """
    if pending is None:
        return value, 0, None
    if value == pending:
        return pending, direction, None

    step = 1 if value > pending else -1
    if direction == 0:
        # the first distinct value makes the start point a turning point
        return value, step, pending
    if step == direction:
        return value, direction, None
    return value, step, pending


def _push(stack: Tuple[float, ...], point: float) -> Tuple[Tuple[float, ...], List[Cycle]]:
    """Push a turning point and close every cycle it completes."""
    stack = stack + (point,)
    closed: List[Cycle] = []
    while len(stack) >= 3:
        a, b, c = stack[-3], stack[-2], stack[-1]
        if abs(b - a) <= abs(c - b):
            closed.append(Cycle.between(a, b, count=1.0))
            stack = stack[:-3] + (c,)
        else:
            break
    return stack, closed


def rainflow_step(state: RainflowState, value: float) -> Tuple[RainflowState, List[Cycle]]:
    """
    Feed one stress value into the count.

    Args:
        state: Current state (not modified)
        value: Next stress value

    Returns:
        Tuple of (next state, cycles closed by this value)

    Raises:
        DomainError: If the value is not finite
    """
    value = float(value)
    if not math.isfinite(value):
        raise DomainError(f"Non-finite stress value {value} in rainflow input")

    pending, direction, turning = _advance(state.pending, state.direction, value)
    if turning is None:
        if pending == state.pending and direction == state.direction:
            return state, []
        return RainflowState(state.stack, pending, direction), []

    stack, closed = _push(state.stack, turning)
    return RainflowState(stack, pending, direction), closed


def rainflow_finish(
    state: RainflowState,
    policy: ResidualPolicy = ResidualPolicy.HALF_CYCLES,
) -> Tuple[List[Cycle], Tuple[float, ...]]:
    """
    Close the count at the end of a history.

    The last sample is always a turning point. The remaining stack is the
    residual, converted to cycles according to ``policy``.

    Returns:
        Tuple of (cycles from the end of history and residual, residual)
    """
    stack = state.stack
    closed: List[Cycle] = []
    if state.pending is not None:
        stack, closed = _push(stack, state.pending)

    if policy == ResidualPolicy.HALF_CYCLES:
        for a, b in zip(stack, stack[1:]):
            closed.append(Cycle.between(a, b, count=0.5))
    elif policy == ResidualPolicy.REPEAT:
        closed.extend(_count_repeated_residual(stack))
    else:
        raise ValueError(f"Unknown residual policy: {policy}")

    return closed, stack


def _count_repeated_residual(residual: Tuple[float, ...]) -> List[Cycle]:
    """Count the residual followed by itself; keep only full cycles."""
    if len(residual) < 2:
        return []
    state = RainflowState()
    closed: List[Cycle] = []
    for value in residual + residual:
        state, cycles = rainflow_step(state, value)
        closed.extend(cycles)
    if state.pending is not None:
        _, cycles = _push(state.stack, state.pending)
        closed.extend(cycles)
    return closed


def rainflow_counting(
    data: Iterable[float],
    residual_policy: ResidualPolicy = ResidualPolicy.HALF_CYCLES,
) -> RainflowResult:
    """
    Perform rainflow cycle counting on a complete history.

    Args:
        data: Stress values in time order
        residual_policy: Treatment of the residual (default: half cycles)

    Returns:
        RainflowResult containing cycles, residual and reversals.
    """
    values = [float(v) for v in data]
    if not values:
        warnings.warn("Empty data provided to rainflow_counting")
        return RainflowResult(cycles=[], residual=[], reversals=[])

    state = RainflowState()
    cycles: List[Cycle] = []
    for value in values:
        state, closed = rainflow_step(state, value)
        cycles.extend(closed)

    closed, residual = rainflow_finish(state, residual_policy)
    cycles.extend(closed)

    return RainflowResult(
        cycles=cycles,
        residual=list(residual),
        reversals=find_peaks_and_valleys(values),
    )


def find_peaks_and_valleys(data: Iterable[float]) -> List[float]:
    """
    Extract peak and valley points from time series.

    Consecutive equal values are merged and monotonic runs collapse to
    their end point, so only reversals (and the two endpoints) remain.

    Args:
        data: Stress values

    Returns:
        List of peak and valley values

    Examples:
        >>> find_peaks_and_valleys([0, 2, 5, 3, -1, 2, 4, 1])
        [0.0, 5.0, -1.0, 4.0, 1.0]
    """
    points: List[float] = []
    pending: Optional[float] = None
    direction = 0
    for value in data:
        pending, direction, turning = _advance(pending, direction, float(value))
        if turning is not None:
            points.append(turning)
    if pending is not None:
        points.append(pending)
    return points


def calculate_equivalent_constant_amplitude(
    cycles: List[Cycle],
    exponent: float = 3.0
) -> float:
    """
    Calculate equivalent constant amplitude stress range.

    Based on: (Σ n_i * ΔS_i^m / Σ n_i)^(1/m) where m is the S-N exponent

    Args:
        cycles: List of Cycle objects
        exponent: S-N curve exponent (default: 3.0 for steel)

    Returns:
        Equivalent constant amplitude range
    """
    if not cycles:
        return 0.0

    total_cycles = sum(c.count for c in cycles)

    if total_cycles == 0:
        return 0.0

    weighted_sum = sum(c.count * (c.range ** exponent) for c in cycles)
    return (weighted_sum / total_cycles) ** (1 / exponent)

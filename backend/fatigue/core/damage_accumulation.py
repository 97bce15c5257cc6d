"""
Linear damage accumulation using Miner's rule.

Total damage = Σ (w · n_i / N_i)

    w:   occurrence weight of the load case (its frequency)
    n_i: cycle count (1.0 full cycle, 0.5 residual half cycle)
    N_i: allowable cycles from the S-N curve at the design stress range

Per cycle the stress range goes through a fixed chain:

    1. mean stress correction      -> effective range
    2. partial safety factors      -> design range = effective · γ
       with γ = gmfat · gf_fat · gf_ext (all factors act on stress)
    3. cutoffs                     -> saturate above cutoff.max,
                                      skip below cutoff.min
    4. S-N curve                   -> N
    5. Miner                       -> damage += w · n / N

Damage is kept per load case, rolled up per family and as a total. Every
roll-up is summed in sorted load-case order with ``math.fsum`` so the
result does not depend on the order in which parallel load cases finish.

References:
    - Miner, M.A. (1945). "Cumulative damage in fatigue"
      Journal of Applied Mechanics, 12(3), A159-A164.
    - DNV-RP-C203, "Fatigue design of offshore steel structures"
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
import logging
import math

import numpy as np

from fatigue.core.errors import ConfigurationError, DomainError
from fatigue.core.mean_stress import MeanStressCorrection
from fatigue.core.rainflow import Cycle
from fatigue.core.sn_curve import SNCurve


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SafetyFactors:
    """Global partial safety factors, each in [1.0, 2.0]."""
    gmre: float = 1.0
    gmrm: float = 1.0
    gmfat: float = 1.0

    def __post_init__(self):
        for name in ("gmre", "gmrm", "gmfat"):
            value = getattr(self, name)
            if not 1.0 <= value <= 2.0:
                raise ConfigurationError(
                    f"{name} must be between 1.0 and 2.0, got {value}"
                )


@dataclass(frozen=True)
class LoadCase:
    """A recorded load time series and how often it occurs.

    Attributes:
        id: Unique identifier
        fam: Family group the damage is summed into
        file: Time series file
        frequency: Occurrences over the design basis (occurrence weight)
        gf_ext: External load safety factor
        gf_fat: Fatigue safety factor of this load case
    """
    id: str
    fam: int
    file: str
    frequency: float
    gf_ext: float = 1.0
    gf_fat: float = 1.0

    def __post_init__(self):
        if not math.isfinite(self.frequency) or self.frequency < 0:
            raise ConfigurationError(
                f"Load case '{self.id}': frequency must be non-negative, got {self.frequency}"
            )
        for name in ("gf_ext", "gf_fat"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(
                    f"Load case '{self.id}': {name} must be positive, got {value}"
                )


@dataclass(frozen=True)
class DamageModel:
    """Immutable bundle of everything a cycle needs to become damage."""
    curve: SNCurve
    correction: MeanStressCorrection = field(default_factory=MeanStressCorrection)
    safety: SafetyFactors = field(default_factory=SafetyFactors)

    def stress_factor(self, load_case: LoadCase) -> float:
        return self.safety.gmfat * load_case.gf_fat * load_case.gf_ext

    def design_range(self, cycle: Cycle, load_case: LoadCase) -> float:
        """Effective range after mean stress correction and safety factors."""
        effective = self.correction.effective_range(cycle.range, cycle.mean)
        return effective * self.stress_factor(load_case)

    def cycle_damage(self, cycle: Cycle, load_case: LoadCase) -> float:
        """
        Damage contribution of a single cycle.

        Returns:
            float: ``frequency · count / N``, 0.0 for ranges below cutoff.min
            or not positive

        Raises:
            DomainError: If the design range or N is not finite
        """
        if cycle.count <= 0:
            return 0.0
        design = self.design_range(cycle, load_case)
        if not math.isfinite(design):
            raise DomainError(
                f"Non-finite design stress range for cycle {cycle!r}",
                context={"load_case": load_case.id},
            )
        clipped = self.curve.clip(design)
        if clipped is None:
            return 0.0
        n_allow = self.curve.cycles_to_failure(clipped)
        return load_case.frequency * cycle.count / n_allow


def calculate_miner_damage(
    cycles: Iterable[Cycle],
    model: DamageModel,
    load_case: LoadCase,
) -> float:
    """
    Calculate cumulative damage of a cycle multiset with Miner's rule.

    Args:
        cycles: Counted cycles, consumed once
        model: S-N curve, mean stress correction and safety factors
        load_case: Owning load case (weight and safety factors)

    Returns:
        Total damage of the cycles

    Examples:
        >>> curve = SNCurve(3, 5, 5e6, 52.0, 440.0, 1.0)
        >>> lc = LoadCase("lc1", fam=1, file="lc1.csv", frequency=1.0)
        >>> calculate_miner_damage([Cycle.between(0.0, 52.0)], DamageModel(curve), lc)
        2e-07
    """
    return math.fsum(model.cycle_damage(c, load_case) for c in cycles)


class DamageAccumulator:
    """
    Running Miner sums of one load case for every node and stress channel.

    Cycles arrive interleaved per sample; each (node, channel) slot is
    summed in arrival order, which is the fixed sample order of the load
    case, so repeated runs give identical totals.
    """

    def __init__(self, model: DamageModel, load_case: LoadCase, n_nodes: int, n_channels: int = 1):
        self.model = model
        self.load_case = load_case
        self.damage = np.zeros((n_nodes, n_channels))
        self.cycle_count = 0

    def add(self, node: int, channel: int, cycles: Sequence[Cycle]) -> None:
        if not cycles:
            return
        self.cycle_count += len(cycles)
        self.damage[node, channel] += calculate_miner_damage(cycles, self.model, self.load_case)

    def result(self) -> "LoadCaseDamage":
        return LoadCaseDamage(
            load_case=self.load_case.id,
            fam=self.load_case.fam,
            damage=self.damage.copy(),
            cycle_count=self.cycle_count,
        )


@dataclass
class LoadCaseDamage:
    """Damage of one load case, shape (n_nodes, n_channels)."""
    load_case: str
    fam: int
    damage: np.ndarray
    cycle_count: int = 0


@dataclass
class NodeDamage:
    """Damage roll-up of one node.

    Attributes:
        node: Node id
        load_cases: Damage per load case id
        families: Damage per family
        total_damage: Sum over all load cases
        life: 1 / total_damage, None if the node sees no damage
        utilization: total_damage / allowable damage
        is_critical: True if damage exceeds the allowable damage
            (with the configured error tolerance)
        critical_channel: Governing stress channel (critical plane index)
    """
    node: int
    load_cases: Dict[str, float]
    families: Dict[str, float]
    total_damage: float
    life: Optional[float]
    utilization: float
    is_critical: bool
    critical_channel: int = 0

    def __repr__(self) -> str:
        status = "CRITICAL" if self.is_critical else "OK"
        return (f"NodeDamage(node={self.node}, total={self.total_damage:.4g}, "
                f"status={status})")


def fatigue_life(damage: float) -> Optional[float]:
    """Life in units of the design basis; None when there is no damage."""
    if damage <= 0:
        return None
    life = 1.0 / damage
    return life if math.isfinite(life) else None


def is_critical(damage: float, dadm: float = 1.0, error: float = 0.0) -> bool:
    return damage > dadm * (1.0 + error)


def aggregate_damage(
    results: Mapping[str, LoadCaseDamage],
    node_ids: Sequence[int],
    dadm: float = 1.0,
    error: float = 0.0,
) -> List[NodeDamage]:
    """
    Roll load-case damage up per node, family and total.

    For several stress channels (critical plane search) the channel with
    the largest total damage governs the node; load case and family
    damage are reported on that channel.

    Args:
        results: Load case damage keyed by load case id
        node_ids: Node ids in row order of the damage arrays
        dadm: Allowable damage
        error: Relative tolerance on the allowable damage

    Returns:
        List of NodeDamage in node order
    """
    if dadm <= 0:
        raise ConfigurationError(f"Allowable damage must be positive, got {dadm}")

    ordered = [results[key] for key in sorted(results)]
    n_nodes = len(node_ids)
    for lc in ordered:
        if lc.damage.shape[0] != n_nodes:
            raise DomainError(
                f"Load case '{lc.load_case}' has damage for {lc.damage.shape[0]} "
                f"nodes, expected {n_nodes}"
            )
    n_channels = ordered[0].damage.shape[1] if ordered else 1

    nodes: List[NodeDamage] = []
    for row, node_id in enumerate(node_ids):
        channel_totals = [
            math.fsum(lc.damage[row, ch] for lc in ordered)
            for ch in range(n_channels)
        ]
        channel = int(np.argmax(channel_totals)) if ordered else 0

        load_cases = {lc.load_case: float(lc.damage[row, channel]) for lc in ordered}
        grouped: Dict[str, List[float]] = defaultdict(list)
        for lc in ordered:
            grouped[str(lc.fam)].append(float(lc.damage[row, channel]))
        families = {fam: math.fsum(values) for fam, values in sorted(grouped.items())}

        total = math.fsum(load_cases.values())
        nodes.append(NodeDamage(
            node=int(node_id),
            load_cases=load_cases,
            families=families,
            total_damage=total,
            life=fatigue_life(total),
            utilization=total / dadm,
            is_critical=is_critical(total, dadm, error),
            critical_channel=channel,
        ))
        logger.debug(f"Node {node_id}: damage {total:.6g} on channel {channel}")

    return nodes


def governing_node(nodes: Sequence[NodeDamage]) -> Optional[NodeDamage]:
    """Node with the largest total damage (first one on ties)."""
    best: Optional[NodeDamage] = None
    for node in nodes:
        if best is None or node.total_damage > best.total_damage:
            best = node
    return best

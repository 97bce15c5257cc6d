"""
Fatigue run orchestration.

``run(config)`` prepares the immutable inputs of a run (interpolants,
S-N curve, safety factors, load cases), then processes every load case in
its own pipeline:

    time series -> stress reconstruction -> rainflow -> Miner damage

Pipelines share nothing mutable and run on a thread pool. Their results
are collected by load case id and reduced in sorted id order, so the
totals are identical no matter which pipeline finishes first.
"""
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import os

from fatigue.core.damage_accumulation import (
    DamageAccumulator,
    DamageModel,
    LoadCase,
    LoadCaseDamage,
    NodeDamage,
    SafetyFactors,
    aggregate_damage,
    governing_node,
)
from fatigue.core.errors import ConfigurationError, DataError, EngineError
from fatigue.core.expressions import evaluate_expressions
from fatigue.core.interpolation import InterpolationPoint, build_interpolant
from fatigue.core.mean_stress import MeanStressCorrection
from fatigue.core.rainflow import RainflowState, ResidualPolicy, rainflow_finish, rainflow_step
from fatigue.core.sn_curve import SNCurve
from fatigue.core.stress import StressComponent, StressCriterion, superpose_stress
from fatigue.io.readers import Sensor, read_sensor_file, read_time_series, read_unit_stress_file
from fatigue.schemas.config import FatigueConfig


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunPlan:
    """Immutable inputs shared by all load case pipelines."""
    components: Tuple[StressComponent, ...]
    criterion: StressCriterion
    model: DamageModel
    load_cases: Tuple[LoadCase, ...]
    node_ids: Tuple[int, ...]
    sensors: Dict[str, Sensor]
    residual_policy: ResidualPolicy = ResidualPolicy.HALF_CYCLES
    header: int = 1
    delimiter: str = ","
    dadm: float = 1.0
    error: float = 0.0

    @property
    def channels(self) -> List[str]:
        names: List[str] = []
        for component in self.components:
            names.extend(c for c in component.channels if c not in names)
        return names


@dataclass
class Failure:
    """A load case or expression that could not be computed."""
    kind: str
    message: str
    load_case: Optional[str] = None
    expression: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_error(cls, error: EngineError, load_case: Optional[str] = None) -> "Failure":
        return cls(
            kind=error.kind,
            message=error.message,
            load_case=load_case,
            expression=error.context.get("expression"),
            context={k: v for k, v in error.context.items() if k not in ("load_case", "expression")},
        )


@dataclass
class RunResult:
    """Outcome of a fatigue run.

    Attributes:
        name: Run name
        status: ``completed``, ``partial`` (some load cases failed) or
            ``failed`` (no load case succeeded)
        nodes: Damage per node
        load_cases: Load case results by id (successful ones only)
        failures: Failed load cases and expressions
        expressions: Evaluated expression values
    """
    name: str
    status: str
    nodes: List[NodeDamage] = field(default_factory=list)
    load_cases: Dict[str, LoadCaseDamage] = field(default_factory=dict)
    failures: List[Failure] = field(default_factory=list)
    expressions: Dict[str, float] = field(default_factory=dict)
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    @property
    def governing(self) -> Optional[NodeDamage]:
        return governing_node(self.nodes)

    def to_record(self) -> Dict[str, Any]:
        """JSON-serialisable result record."""
        gov = self.governing
        return {
            "name": self.name,
            "status": self.status,
            "nodes": [asdict(node) for node in self.nodes],
            "governing_node": gov.node if gov else None,
            "total_damage": gov.total_damage if gov else 0.0,
            "life": gov.life if gov else None,
            "failures": [
                {
                    "load_case": f.load_case,
                    "expression": f.expression,
                    "kind": f.kind,
                    "message": f.message,
                }
                for f in self.failures
            ],
            "expressions": dict(self.expressions),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


def build_damage_model(config: FatigueConfig) -> DamageModel:
    fatigue = config.material.fatigue
    curve = SNCurve(
        m1=fatigue.slope.m1,
        m2=fatigue.slope.m2,
        knee_cycle=fatigue.knee.cycle,
        knee_stress=fatigue.knee.stress,
        cutoff_max=fatigue.cutoff.max,
        cutoff_min=fatigue.cutoff.min,
    )
    mean = config.solution.mean
    correction = MeanStressCorrection(
        method=mean.mean,
        postfix=mean.postfix,
        sensitivity=mean.number,
        ultimate_stress=config.material.ultimate_stress,
    )
    sf = config.safety_factor
    return DamageModel(curve, correction, SafetyFactors(sf.gmre, sf.gmrm, sf.gmfat))


def build_components(config: FatigueConfig, node_ids: Sequence[int]) -> List[StressComponent]:
    """Read unit stress files and build one interpolant per interpolation."""
    tolerance = config.solution.damage.error or None
    components = []
    for interp in config.timeseries.interpolations:
        points = [
            InterpolationPoint(
                coordinates=tuple(point.coordinates),
                response=read_unit_stress_file(
                    config.resolve(interp.path, point.file),
                    header=interp.parse_config.header,
                    delimiter=interp.parse_config.delimiter,
                    nodes=node_ids,
                ),
                label=point.file,
            )
            for point in interp.points
        ]
        interpolant = build_interpolant(
            points, interp.method, dimension=interp.dimension, tolerance=tolerance
        )
        components.append(StressComponent(interpolant, tuple(interp.sensor), interp.scale, interp.name))
        logger.info(
            f"Built {interp.method.value} interpolation '{interp.name}' from "
            f"{len(points)} points for {len(node_ids)} nodes"
        )
    return components


def prepare(config: FatigueConfig) -> RunPlan:
    """
    Build the immutable run inputs.

    Raises:
        ConfigurationError: On invalid inputs, before any load case runs
    """
    node_ids = tuple(config.node_ids)
    ts = config.timeseries
    criteria = config.solution.stress_criteria
    load_cases = tuple(
        LoadCase(
            id=lc.id,
            fam=lc.fam,
            file=str(config.resolve(ts.path, lc.file)),
            frequency=lc.frequency,
            gf_ext=lc.gf_ext,
            gf_fat=lc.gf_fat,
        )
        for lc in ts.loadcases
    )
    return RunPlan(
        components=tuple(build_components(config, node_ids)),
        criterion=StressCriterion(criteria.method, criteria.number),
        model=build_damage_model(config),
        load_cases=load_cases,
        node_ids=node_ids,
        sensors=read_sensor_file(config.resolve(ts.sensorfile)),
        residual_policy=config.solution.residual_policy,
        header=ts.parse_config.header,
        delimiter=ts.parse_config.delimiter,
        dadm=config.solution.damage.dadm,
        error=config.solution.damage.error,
    )


def process_load_case(plan: RunPlan, load_case: LoadCase) -> LoadCaseDamage:
    """
    Run the damage pipeline of one load case.

    Raises:
        EngineError: With ``load_case`` in its context
    """
    try:
        samples = read_time_series(
            load_case.file, plan.channels, plan.sensors,
            header=plan.header, delimiter=plan.delimiter,
        )
        n_nodes, n_channels = len(plan.node_ids), plan.criterion.channels
        accumulator = DamageAccumulator(plan.model, load_case, n_nodes, n_channels)
        states = [[RainflowState() for _ in range(n_channels)] for _ in range(n_nodes)]

        n_samples = 0
        for stresses in superpose_stress(samples, plan.components, plan.criterion):
            n_samples += 1
            for node in range(n_nodes):
                row = states[node]
                for ch in range(n_channels):
                    row[ch], closed = rainflow_step(row[ch], stresses[node, ch])
                    accumulator.add(node, ch, closed)

        for node in range(n_nodes):
            for ch in range(n_channels):
                closed, _ = rainflow_finish(states[node][ch], plan.residual_policy)
                accumulator.add(node, ch, closed)
    except EngineError as e:
        raise e.with_context(load_case=load_case.id)
    except OSError as e:
        raise DataError(f"Cannot read load case file: {e}", context={"load_case": load_case.id})

    if n_samples == 0:
        logger.warning(f"Load case '{load_case.id}' has no samples")
    result = accumulator.result()
    logger.info(
        f"Load case '{load_case.id}': {n_samples} samples, "
        f"{result.cycle_count} cycles, max damage {result.damage.max(initial=0.0):.4g}"
    )
    return result


def _status(n_total: int, n_failed: int) -> str:
    if n_failed == 0:
        return "completed"
    if n_failed < n_total:
        return "partial"
    return "failed"


def run(
    config: FatigueConfig,
    fail_fast: bool = True,
    max_workers: Optional[int] = None,
    name: Optional[str] = None,
) -> RunResult:
    """
    Execute a fatigue run.

    Args:
        config: Validated run configuration
        fail_fast: Abort on the first failing load case; otherwise failed
            load cases are reported and the rest are aggregated
        max_workers: Thread pool size (default: CPU count)
        name: Run name for the result record

    Returns:
        RunResult

    Raises:
        ConfigurationError: On invalid inputs (in any mode)
        EngineError: The first load case error in fail-fast mode
    """
    result = RunResult(name=name or "fatigue-run", status="completed")
    failures: List[Failure] = []
    analysed = config.solution.run_type == "FAT" and config.solution.mode == "STRESS"

    if analysed:
        plan = prepare(config)
        workers = max_workers or os.cpu_count() or 1
        logger.info(
            f"Starting run '{result.name}': {len(plan.load_cases)} load cases, "
            f"{len(plan.node_ids)} nodes, {workers} workers"
        )

        executor = ThreadPoolExecutor(max_workers=workers)
        try:
            futures: Dict[str, Future] = {
                lc.id: executor.submit(process_load_case, plan, lc) for lc in plan.load_cases
            }
            for lc_id in sorted(futures):
                try:
                    result.load_cases[lc_id] = futures[lc_id].result()
                except EngineError as e:
                    logger.error(f"Load case '{lc_id}' failed: {e}")
                    if fail_fast:
                        raise
                    failures.append(Failure.from_error(e, load_case=lc_id))
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        if result.load_cases:
            result.nodes = aggregate_damage(result.load_cases, plan.node_ids, plan.dadm, plan.error)
        result.status = _status(len(plan.load_cases), len(failures))
    else:
        logger.info(
            f"Run type {config.solution.run_type}/{config.solution.mode}: no damage analysis"
        )

    ts = config.timeseries
    if ts.expressions is not None:
        try:
            result.expressions = evaluate_expressions(ts.parameters, ts.variables, ts.expressions.order)
        except EngineError as e:
            if fail_fast or isinstance(e, ConfigurationError):
                raise
            logger.error(f"Expression evaluation failed: {e}")
            failures.append(Failure.from_error(e))
            if result.status == "completed":
                result.status = "partial"

    result.failures = failures
    result.finished_at = datetime.utcnow()
    gov = result.governing
    logger.info(
        f"Run '{result.name}' {result.status}"
        + (f": governing node {gov.node}, damage {gov.total_damage:.4g}" if gov else "")
    )
    return result

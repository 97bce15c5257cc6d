"""
Pydantic schemas for the fatigue run configuration (YAML).
"""
from pathlib import Path
from typing import Dict, List, Literal, Optional
import re

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from fatigue.core.interpolation import InterpolationMethod
from fatigue.core.mean_stress import MeanStressMethod, MeanStressPostfix
from fatigue.core.rainflow import ResidualPolicy
from fatigue.core.stress import StressCriterionMethod


_NAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class StressCriteriaConfig(BaseModel):
    """Reduction of stress tensors to scalar stress."""
    method: StressCriterionMethod = Field(default=StressCriterionMethod.NONE)
    number: Optional[int] = Field(default=None, description="Number of planes for SXXCRIT")

    @model_validator(mode="after")
    def check_number(self):
        if self.method == StressCriterionMethod.SXXCRIT and (self.number is None or self.number <= 0):
            raise ValueError("number must be greater than 0 for method SXXCRIT")
        return self


class MeanConfig(BaseModel):
    """Mean stress correction."""
    mean: MeanStressMethod = Field(default=MeanStressMethod.NONE)
    postfix: MeanStressPostfix = Field(default=MeanStressPostfix.NONE)
    number: float = Field(default=0.0, ge=0.0, le=1.0, description="Mean stress sensitivity M")


class NodeConfig(BaseModel):
    """Range of node ids to analyse."""
    model_config = ConfigDict(populate_by_name=True)

    from_: int = Field(..., ge=0, alias="from")
    to: int = Field(..., ge=0)
    path: str = Field(default="NONE")

    @model_validator(mode="after")
    def check_range(self):
        if self.to < self.from_:
            raise ValueError(f"node.to ({self.to}) must not be smaller than node.from ({self.from_})")
        return self


class DamageConfig(BaseModel):
    error: float = Field(default=0.0, ge=0.0, le=1.0, description="Relative damage tolerance")
    dadm: float = Field(default=1.0, gt=0.0, le=1.0, description="Allowable damage")


class SolutionConfig(BaseModel):
    run_type: Literal["FAT", "NONE"] = "FAT"
    mode: Literal["STRESS", "NONE"] = "STRESS"
    output: Literal["JSON"] = "JSON"
    stress_criteria: StressCriteriaConfig = Field(default_factory=StressCriteriaConfig)
    mean: MeanConfig = Field(default_factory=MeanConfig)
    node: NodeConfig
    damage: DamageConfig = Field(default_factory=DamageConfig)
    residual_policy: ResidualPolicy = Field(default=ResidualPolicy.HALF_CYCLES)


class SlopeConfig(BaseModel):
    m1: float = Field(..., gt=0)
    m2: float = Field(..., gt=0)


class KneeConfig(BaseModel):
    cycle: float = Field(..., gt=0)
    stress: float = Field(..., gt=0)


class CutoffConfig(BaseModel):
    max: float = Field(..., gt=0)
    min: float = Field(..., ge=0)


class FatigueCurveConfig(BaseModel):
    slope: SlopeConfig
    knee: KneeConfig
    cutoff: CutoffConfig

    @model_validator(mode="after")
    def check_knee(self):
        if not self.cutoff.min < self.knee.stress < self.cutoff.max:
            raise ValueError(
                f"knee.stress ({self.knee.stress}) must lie strictly between "
                f"cutoff.min ({self.cutoff.min}) and cutoff.max ({self.cutoff.max})"
            )
        return self


class MaterialConfig(BaseModel):
    name: str = Field(..., min_length=1)
    youngs_modulus: float = Field(..., gt=0)
    poissons_ratio: float = Field(..., ge=0, lt=0.5)
    yield_stress: float = Field(..., gt=0)
    ultimate_stress: float = Field(..., gt=0)
    fatigue: FatigueCurveConfig


class SafetyFactorConfig(BaseModel):
    gmre: float = Field(default=1.0, ge=1.0, le=2.0)
    gmrm: float = Field(default=1.0, ge=1.0, le=2.0)
    gmfat: float = Field(default=1.0, ge=1.0, le=2.0)


class ParseConfig(BaseModel):
    """Layout of a delimited text file."""
    header: int = Field(default=0, ge=0, description="Number of header lines")
    delimiter: str = Field(default=",", min_length=1)


class PointConfig(BaseModel):
    file: str = Field(..., min_length=1)
    coordinates: List[float] = Field(..., min_length=1)


class InterpolationConfig(BaseModel):
    name: str = Field(..., min_length=1)
    method: InterpolationMethod = Field(default=InterpolationMethod.LINEAR)
    path: str = Field(..., min_length=1, description="Directory of the unit stress files")
    parse_config: ParseConfig = Field(default_factory=lambda: ParseConfig(header=1, delimiter=" "))
    scale: float = Field(default=1.0, gt=0)
    dimension: int = Field(..., ge=1)
    sensor: List[str] = Field(..., min_length=1)
    points: List[PointConfig] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_dimension(self):
        if len(self.sensor) != self.dimension:
            raise ValueError(
                f"Interpolation '{self.name}': dimension is {self.dimension}, "
                f"but {len(self.sensor)} sensors are listed"
            )
        if len(set(self.sensor)) != len(self.sensor):
            raise ValueError(f"Interpolation '{self.name}': duplicate sensor names")
        for point in self.points:
            if len(point.coordinates) != self.dimension:
                raise ValueError(
                    f"Interpolation '{self.name}': point '{point.file}' has "
                    f"{len(point.coordinates)} coordinates, expected {self.dimension}"
                )
        return self


class LoadCaseConfig(BaseModel):
    """A load case; ``name`` defaults to the file stem."""
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "loadcase"))
    fam: int = Field(..., ge=0)
    file: str = Field(..., min_length=1)
    frequency: float = Field(..., ge=0)
    gf_ext: float = Field(default=1.0, gt=0)
    gf_fat: float = Field(default=1.0, gt=0)

    @property
    def id(self) -> str:
        return self.name or Path(self.file).stem


class ExpressionsConfig(BaseModel):
    order: List[str] = Field(..., min_length=1)


class TimeSeriesConfig(BaseModel):
    path: str = Field(..., min_length=1, description="Directory of the load case files")
    sensorfile: str = Field(..., min_length=1)
    parse_config: ParseConfig = Field(default_factory=lambda: ParseConfig(header=1, delimiter=","))
    interpolations: List[InterpolationConfig] = Field(..., min_length=1)
    loadcases: List[LoadCaseConfig] = Field(..., min_length=1)
    parameters: Dict[str, float] = Field(default_factory=dict)
    variables: Dict[str, str] = Field(default_factory=dict)
    expressions: Optional[ExpressionsConfig] = None

    @field_validator("variables")
    @classmethod
    def check_variable_names(cls, value: Dict[str, str]) -> Dict[str, str]:
        for name, expression in value.items():
            if not _NAME.match(name):
                raise ValueError(f"Invalid variable name: {name}")
            if not expression.strip():
                raise ValueError(f"Variable expression is empty for: {name}")
        return value

    @model_validator(mode="after")
    def check_unique_names(self):
        ids = [lc.id for lc in self.loadcases]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate load case ids: {', '.join(duplicates)}")
        names = [i.name for i in self.interpolations]
        if len(set(names)) != len(names):
            raise ValueError("Duplicate interpolation names")
        return self


class FatigueConfig(BaseModel):
    """Complete run configuration."""
    solution: SolutionConfig
    material: MaterialConfig
    safety_factor: SafetyFactorConfig = Field(default_factory=SafetyFactorConfig)
    timeseries: TimeSeriesConfig
    base_dir: Path = Field(default=Path("."), exclude=True,
                           description="Directory relative paths are resolved against")

    def resolve(self, *parts: str) -> Path:
        path = Path(*parts)
        return path if path.is_absolute() else self.base_dir / path

    @property
    def node_ids(self) -> List[int]:
        return list(range(self.solution.node.from_, self.solution.node.to + 1))

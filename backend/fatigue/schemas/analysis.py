"""
Pydantic schemas for fatigue analysis runs.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class AnalysisRunRequest(BaseModel):
    """Request to execute a fatigue run."""
    config_path: str = Field(..., min_length=1, description="Path of the YAML run configuration")
    name: Optional[str] = Field(default=None, description="Run name (default: config file stem)")
    fail_fast: Optional[bool] = Field(
        default=None,
        description="Abort on the first failing load case (default from settings)")


class NodeDamageSchema(BaseModel):
    """Damage roll-up of one node."""
    node: int
    load_cases: Dict[str, float] = Field(..., description="Damage per load case id")
    families: Dict[str, float] = Field(..., description="Damage per family")
    total_damage: float
    life: Optional[float] = Field(None, description="1 / total damage; null without damage")
    utilization: float = Field(..., description="Total damage / allowable damage")
    is_critical: bool
    critical_channel: int = Field(0, description="Governing stress channel (critical plane)")


class FailureSchema(BaseModel):
    """A load case or expression that failed."""
    load_case: Optional[str] = None
    expression: Optional[str] = None
    kind: str
    message: str


class AnalysisResultResponse(BaseModel):
    """Result record of a fatigue run."""
    id: Optional[int] = Field(None, description="Stored run id")
    name: str
    status: str = Field(..., description="completed, partial or failed")
    nodes: List[NodeDamageSchema] = Field(default_factory=list)
    governing_node: Optional[int] = None
    total_damage: float = 0.0
    life: Optional[float] = None
    failures: List[FailureSchema] = Field(default_factory=list)
    expressions: Dict[str, float] = Field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class AnalysisRunResponse(BaseModel):
    """Stored analysis run."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    config_path: str
    status: str
    governing_node: Optional[int] = None
    total_damage: Optional[float] = None
    life: Optional[float] = None
    error: Optional[str] = None
    created_at: datetime


class AnalysisRunDetail(AnalysisRunResponse):
    """Stored analysis run including the full result record."""
    result: Optional[Dict[str, Any]] = None

"""
Pydantic schemas package.
"""
from fatigue.schemas.config import FatigueConfig
from fatigue.schemas.rainflow import (
    RainflowRequest,
    RainflowResponse,
    CycleCount,
    DataPoint,
)
from fatigue.schemas.expressions import (
    ExpressionRequest,
    ExpressionResponse,
)
from fatigue.schemas.analysis import (
    AnalysisRunRequest,
    AnalysisResultResponse,
    AnalysisRunResponse,
    AnalysisRunDetail,
    NodeDamageSchema,
    FailureSchema,
)

__all__ = [
    "FatigueConfig",
    "RainflowRequest",
    "RainflowResponse",
    "CycleCount",
    "DataPoint",
    "ExpressionRequest",
    "ExpressionResponse",
    "AnalysisRunRequest",
    "AnalysisResultResponse",
    "AnalysisRunResponse",
    "AnalysisRunDetail",
    "NodeDamageSchema",
    "FailureSchema",
]

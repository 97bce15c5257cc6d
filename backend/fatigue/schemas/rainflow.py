"""
Pydantic schemas for Rainflow cycle counting.
"""
from pydantic import BaseModel, Field
from typing import List, Optional

from fatigue.core.rainflow import ResidualPolicy


class DataPoint(BaseModel):
    """Single data point for time-series analysis."""
    time: Optional[float] = Field(default=None, description="Time in seconds")
    value: float = Field(..., description="Stress value")


class CycleCount(BaseModel):
    """Individual cycle count from rainflow analysis."""
    stress_range: float = Field(..., description="Stress range")
    mean_value: float = Field(..., description="Mean stress")
    cycles: float = Field(..., description="Number of cycles (0.5 for half cycles)")


class RainflowRequest(BaseModel):
    """Request schema for rainflow cycle counting."""
    data_points: List[DataPoint] = Field(..., description="Time-series data points")
    residual_policy: Optional[ResidualPolicy] = Field(
        default=None, description="HALF_CYCLES or REPEAT (default from settings)")


class RainflowResponse(BaseModel):
    """Response schema for rainflow analysis."""
    cycles: List[CycleCount] = Field(..., description="Cycle count results")
    total_cycles: float = Field(..., description="Total number of cycles")
    max_range: float = Field(..., description="Maximum stress range")
    residual: List[float] = Field(default_factory=list, description="Unclosed turning points")
    reversals: List[float] = Field(default_factory=list, description="Peaks and valleys")
    summary: dict = Field(default_factory=dict, description="Summary statistics")

"""
Rainflow cycle counting endpoint.
"""
from fastapi import APIRouter, HTTPException, status
import numpy as np
import logging

from fatigue.api.errors import engine_http_error
from fatigue.config import get_settings
from fatigue.core.errors import EngineError
from fatigue.core.rainflow import ResidualPolicy, rainflow_counting
from fatigue.schemas.rainflow import CycleCount, RainflowRequest, RainflowResponse


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rainflow", tags=["rainflow"])


@router.post("/count", response_model=RainflowResponse)
async def count_cycles(request: RainflowRequest):
    """
    Perform rainflow cycle counting on a stress history.

    Implements the ASTM E1049 three-point rainflow counting method.
    Returns cycles, residual, reversals and summary statistics.
    """
    values = [dp.value for dp in request.data_points]
    if len(values) < 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least 2 data points required for rainflow counting"
        )

    policy = request.residual_policy or ResidualPolicy(get_settings().default_residual_policy)
    try:
        result = rainflow_counting(values, residual_policy=policy)
    except EngineError as e:
        raise engine_http_error(e)

    cycles = [
        CycleCount(stress_range=c.range, mean_value=c.mean, cycles=c.count)
        for c in result.cycles
    ]
    ranges = np.array([c.range for c in result.cycles])
    total_cycles = float(sum(c.count for c in result.cycles))
    max_range = float(ranges.max()) if ranges.size else 0.0

    summary = {
        "total_cycles": total_cycles,
        "unique_cycles": len(result.cycles),
        "max_range": max_range,
        "mean_range": float(np.mean(ranges)) if ranges.size else 0.0,
        "std_range": float(np.std(ranges)) if ranges.size > 1 else 0.0,
        "residual_points": len(result.residual or []),
        "residual_policy": policy.value,
    }
    logger.debug(f"Counted {len(cycles)} cycles from {len(values)} points")

    return RainflowResponse(
        cycles=cycles,
        total_cycles=total_cycles,
        max_range=max_range,
        residual=result.residual or [],
        reversals=result.reversals or [],
        summary=summary,
    )

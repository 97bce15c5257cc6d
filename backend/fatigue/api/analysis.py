"""
Fatigue analysis endpoints.

Provides endpoints for:
- Executing a fatigue run from a YAML configuration
- Listing and fetching stored runs
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pathlib import Path
from typing import List
import logging

from fatigue.api.errors import engine_http_error
from fatigue.config import get_settings
from fatigue.core.engine import run
from fatigue.core.errors import EngineError
from fatigue.db.crud import analysis_run_crud
from fatigue.db.database import get_db
from fatigue.io.config_loader import load_config
from fatigue.schemas.analysis import (
    AnalysisResultResponse,
    AnalysisRunDetail,
    AnalysisRunRequest,
    AnalysisRunResponse,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.post("/run", response_model=AnalysisResultResponse)
def run_analysis(request: AnalysisRunRequest, db: Session = Depends(get_db)):
    """
    Execute a fatigue run and store its outcome.

    Engine errors (invalid configuration, sensor data mismatch, numerical
    domain violations) are returned as 422 and stored as failed runs.
    """
    settings = get_settings()
    name = request.name or Path(request.config_path).stem
    fail_fast = settings.fail_fast if request.fail_fast is None else request.fail_fast

    try:
        config = load_config(request.config_path)
        result = run(config, fail_fast=fail_fast, max_workers=settings.max_workers, name=name)
    except EngineError as e:
        logger.error(f"Run '{name}' failed: {e}")
        analysis_run_crud.create_failed(db, name, request.config_path, str(e))
        raise engine_http_error(e)

    stored = analysis_run_crud.create_from_result(db, request.config_path, result)
    return AnalysisResultResponse(id=stored.id, **result.to_record())


@router.get("/runs", response_model=List[AnalysisRunResponse])
def list_runs(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    """List stored runs, newest first."""
    return analysis_run_crud.get_multi(db, skip=skip, limit=limit)


@router.get("/runs/{run_id}", response_model=AnalysisRunDetail)
def get_run(run_id: int, db: Session = Depends(get_db)):
    """Get a stored run with its full result record."""
    stored = analysis_run_crud.get(db, run_id)
    if stored is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Analysis run {run_id} not found"
        )
    return stored

"""
Expression evaluation endpoint.
"""
from fastapi import APIRouter
import logging

from fatigue.api.errors import engine_http_error
from fatigue.core.errors import EngineError
from fatigue.core.expressions import evaluate_expressions
from fatigue.schemas.expressions import ExpressionRequest, ExpressionResponse


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/expressions", tags=["expressions"])


@router.post("/evaluate", response_model=ExpressionResponse)
async def evaluate(request: ExpressionRequest):
    """
    Evaluate expressions in the given order.

    References must be parameters or names earlier in the order; the whole
    order is checked before anything is evaluated.
    """
    try:
        values = evaluate_expressions(request.parameters, request.variables, request.order)
    except EngineError as e:
        logger.warning(f"Expression evaluation failed: {e}")
        raise engine_http_error(e)
    return ExpressionResponse(values=values)

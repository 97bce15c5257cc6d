"""
Translation of engine errors to HTTP errors.
"""
from fastapi import HTTPException, status

from fatigue.core.errors import EngineError


def engine_http_error(error: EngineError) -> HTTPException:
    """422 with the error kind, message and context as detail."""
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=error.to_dict(),
    )

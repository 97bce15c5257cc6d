"""
Pydantic schemas for expression evaluation.
"""
from pydantic import BaseModel, Field
from typing import Dict, List


class ExpressionRequest(BaseModel):
    """Parameters, expressions and the order to evaluate them in."""
    parameters: Dict[str, float] = Field(default_factory=dict, description="Constants by name")
    variables: Dict[str, str] = Field(default_factory=dict, description="Expression text by name")
    order: List[str] = Field(..., min_length=1, description="Evaluation order")


class ExpressionResponse(BaseModel):
    values: Dict[str, float] = Field(..., description="Evaluated values in evaluation order")

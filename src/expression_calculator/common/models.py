"""Pydantic models for evaluation requests and results."""
from typing import Annotated, Dict, Literal, Union

from pydantic import BaseModel, Field, field_validator


class EvaluationRequest(BaseModel):
    """Represents one expression to evaluate with its variable values."""

    expression: str = Field(..., description="Arithmetic expression as a string")
    variables: Dict[str, float] = Field(default_factory=dict, description="Variable name to value")

    @field_validator("expression")
    def expression_must_not_be_empty(cls, v: str) -> str:
        """Ensure that the expression is not empty."""
        if not v.strip():
            raise ValueError("Expression cannot be empty")
        return v

    @field_validator("variables")
    def names_must_be_alphabetic(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Ensure that every variable name is a run of letters."""
        for name in v:
            if not name.isalpha():
                raise ValueError(f"Invalid variable name: {name!r}")
        return v


class EvaluationSuccess(BaseModel):
    """Result of an expression evaluated without error."""

    status: Literal["ok"] = "ok"
    expression: str = Field(..., description="Original arithmetic expression")
    result: float = Field(..., description="Evaluated numeric result of the expression")


class EvaluationFailure(BaseModel):
    """Error raised while evaluating an expression."""

    status: Literal["error"] = "error"
    expression: str = Field(..., description="Original arithmetic expression")
    error: str = Field(..., description="Error message")
    error_type: str = Field(..., description="Name of the exception class")


EvaluationResult = Annotated[Union[EvaluationSuccess, EvaluationFailure], Field(discriminator="status")]

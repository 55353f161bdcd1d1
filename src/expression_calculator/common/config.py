"""Evaluator configuration."""
from pydantic import BaseModel, ConfigDict, Field


class EvaluatorConfig(BaseModel):
    """
    Switches for the stricter parsing variants.

    The defaults keep the historical behaviour:
        - parentheses are checked by net count only, so ``")("`` passes
        - operators of equal precedence drain right to left at the end of
          the scan, so ``2-3+4`` evaluates to ``-5``
    """

    # Make the Pydantic instance immutable (read-only) so a shared config
    # cannot change between two evaluations
    model_config = ConfigDict(frozen=True)

    strict_parentheses: bool = Field(
        default=False,
        description="Reject a closing parenthesis that closes nothing",
    )
    left_associative: bool = Field(
        default=False,
        description="Apply operators of equal precedence from left to right",
    )


DEFAULT_CONFIG = EvaluatorConfig()

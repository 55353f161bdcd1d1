"""Sources of variable values used during substitution."""
from collections.abc import Callable, Mapping
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from expression_calculator.common.errors import UnboundVariableError


# A value source is any callable returning the value of one variable name
ValueSource = Callable[[str], float]


class MappingValueSource(BaseModel):
    """Serve variable values from a pre-built mapping."""

    model_config = ConfigDict(frozen=True)

    values: Dict[str, float] = Field(default_factory=dict, description="Variable name to value")

    def __call__(self, name: str) -> float:
        """
        Return the bound value of a variable.

        :param str name: Variable name

        :return: Bound value
        :rtype: float
        :raises UnboundVariableError: If the name has no value
        """
        try:
            return self.values[name]
        except KeyError:
            raise UnboundVariableError(name) from None


class InteractiveValueSource(BaseModel):
    """
    Ask the user for each variable value.

    Each call blocks until one line is read. The answer is parsed with
    ``float()``, so a malformed answer raises ``ValueError`` and an exhausted
    input raises ``EOFError``; neither is handled here.
    """

    model_config = ConfigDict(frozen=True)

    prompt_template: str = Field(
        default="Enter the value for variable {name}: ",
        description="Prompt shown before reading a value",
    )
    reader: Optional[Callable[[str], str]] = Field(default=None, description="Function reading one line, input() if unset")

    def __call__(self, name: str) -> float:
        read = self.reader or input
        return float(read(self.prompt_template.format(name=name)))


def as_value_source(source: Union[None, Mapping[str, float], ValueSource]) -> ValueSource:
    """
    Normalize the accepted value source forms into a callable.

    :param source: None for interactive input, a mapping of values, or a callable

    :return: Callable returning the value of a variable name
    :rtype: ValueSource
    :raises TypeError: If the source is none of the accepted forms
    """
    if source is None:
        return InteractiveValueSource()
    if isinstance(source, Mapping):
        return MappingValueSource(values=dict(source))
    if callable(source):
        return source
    raise TypeError(f"Unsupported value source: {type(source).__name__}")


def collect_bindings(names, source=None) -> Dict[str, float]:
    """
    Request one value per variable name, in sorted order.

    :param names: Distinct variable names
    :param source: Value source, see ``as_value_source``

    :return: Variable binding
    :rtype: Dict[str, float]
    """
    value_source = as_value_source(source)
    return {name: value_source(name) for name in sorted(names)}

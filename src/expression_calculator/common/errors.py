"""Exceptions raised while evaluating arithmetic expressions."""


class ExpressionError(Exception):
    """Base class for every expression evaluation failure."""


class InvalidSyntaxError(ExpressionError, ValueError):
    """Parentheses in the expression are not balanced."""


class DivisionByZeroError(ExpressionError, ZeroDivisionError):
    """Right operand of a division is exactly zero."""

    def __init__(self, message: str = "Division by zero!"):
        super().__init__(message)


class InvalidOperatorError(ExpressionError, ValueError):
    """Operator symbol has no arithmetic operation attached."""

    def __init__(self, operator_symbol: str):
        self.operator_symbol = operator_symbol
        super().__init__(f"Invalid operator: {operator_symbol}")


class MalformedExpressionError(ExpressionError, ValueError):
    """Operands or parentheses do not line up with the operators."""


class UnboundVariableError(ExpressionError, LookupError):
    """No value was supplied for a variable of the expression."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No value bound for variable {name!r}")

"""Parse and evaluate arithmetic expressions with variables."""
from collections.abc import Callable as ABCCallable, Mapping
import math
import operator
import re
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from expression_calculator.common.config import DEFAULT_CONFIG, EvaluatorConfig
from expression_calculator.common.errors import (
    DivisionByZeroError,
    ExpressionError,
    InvalidOperatorError,
    InvalidSyntaxError,
    MalformedExpressionError,
)
from expression_calculator.common.logger import logger
from expression_calculator.common.models import EvaluationFailure, EvaluationResult, EvaluationSuccess
from expression_calculator.common.value_source import ValueSource, collect_bindings


# Type alias for operator functions (taking two floats, returning a float)
OperatorFn: ABCCallable[[float, float], float] = Callable[[float, float], float]


def _divide(a: float, b: float) -> float:
    if b == 0:
        raise DivisionByZeroError()
    return a / b


# Mapping of operator symbols to (precedence, function)
OPERATORS: Dict[str, Tuple[int, OperatorFn]] = {
    "+": (1, operator.add),
    "-": (1, operator.sub),
    "*": (2, operator.mul),
    "/": (2, _divide),
}

OPEN_PAREN = "("
CLOSE_PAREN = ")"

_WHITESPACE = re.compile(r"\s+")


class ExpressionParser:
    """
    Parse and evaluate arithmetic expressions containing variables.

    Design constraints:
        - No eval(), no dynamic code execution
        - No state kept between two calls

    Algorithm:
        1. Strip whitespace and check parenthesis balance
        2. Extract variable names (maximal runs of letters)
        3. Ask the value source for each variable and substitute the values as text
        4. Evaluate the numeric expression in one scan with an operand stack and an operator stack

    Known limitations, kept on purpose with the default configuration:
        - The balance check counts parentheses only, ``")("`` is accepted.
        - Substitution is plain text replacement, one variable after the other,
          so a name contained in another name (``x`` and ``xy``) corrupts it.
        - Equal precedence operators are not popped before a push; they are
          applied last pushed first, so ``2-3+4`` gives ``-5``.

    Examples:
        - ``ExpressionParser.evaluate("2+2*2")`` returns ``6.0``
        - ``ExpressionParser.evaluate("(2+x)*4", {"x": 2})`` returns ``16.0``
    """

    @staticmethod
    def strip_whitespace(expr: str) -> str:
        """
        Remove every whitespace character from an expression.

        :param str expr: Raw expression

        :return: Expression without whitespace
        :rtype: str
        """
        return _WHITESPACE.sub("", expr)

    @staticmethod
    def is_valid(expr: str, strict: bool = False) -> bool:
        """
        Check that the parentheses of an expression are balanced.

        Only the final balance is checked unless ``strict`` is set, in which
        case a closing parenthesis without a matching opening one also fails.

        :param str expr: Expression to check
        :param bool strict: Also reject a balance that drops below zero

        :return: True if the expression passes the check
        :rtype: bool
        """
        balance = 0
        for ch in expr:
            if ch == OPEN_PAREN:
                balance += 1
            elif ch == CLOSE_PAREN:
                balance -= 1
                if strict and balance < 0:
                    return False
        return balance == 0

    @staticmethod
    def extract_variables(expr: str) -> Set[str]:
        """
        Collect the distinct variable names of an expression.

        A name is a maximal run of alphabetic characters; any other character
        ends the current run.

        :param str expr: Expression to scan

        :return: Set of variable names
        :rtype: Set[str]
        """
        variables: Set[str] = set()
        buffer: List[str] = []
        for ch in expr:
            if ch.isalpha():
                buffer.append(ch)
            elif buffer:
                variables.add("".join(buffer))
                buffer.clear()
        if buffer:
            variables.add("".join(buffer))
        return variables

    @staticmethod
    def substitute(expr: str, bindings: Mapping) -> str:
        """
        Replace each variable by the decimal text of its value.

        Variables are replaced one at a time, in the iteration order of
        ``bindings``, each over the already partially substituted text.

        :param str expr: Expression containing variables
        :param Mapping bindings: Variable name to numeric value

        :return: Purely numeric expression
        :rtype: str
        """
        for name, value in bindings.items():
            expr = expr.replace(name, repr(float(value)))
        return expr

    @staticmethod
    def has_higher_precedence(top: str, incoming: str, left_associative: bool = False) -> bool:
        """
        Tell whether the operator on the stack must be applied before pushing another one.

        :param str top: Operator on top of the stack
        :param str incoming: Operator about to be pushed
        :param bool left_associative: Also pop operators of equal precedence

        :return: True if ``top`` must be applied first
        :rtype: bool
        """
        if top not in OPERATORS:
            # Grouping marker
            return False
        if left_associative:
            return OPERATORS[top][0] >= OPERATORS[incoming][0]
        return OPERATORS[top][0] > OPERATORS[incoming][0]

    @staticmethod
    def apply_operator(a: float, b: float, op: str) -> float:
        """
        Apply a binary operator to two operands.

        :param float a: Left operand
        :param float b: Right operand
        :param str op: Operator symbol

        :return: Result of ``a op b``
        :rtype: float
        :raises DivisionByZeroError: If ``op`` is ``/`` and ``b`` is zero
        :raises InvalidOperatorError: If ``op`` is not a known operator
        """
        if op not in OPERATORS:
            raise InvalidOperatorError(op)
        return OPERATORS[op][1](a, b)

    @staticmethod
    def _process_operator(operands: List[float], operators: List[str]) -> None:
        op = operators.pop()
        if len(operands) < 2:
            raise MalformedExpressionError(f"Invalid expression (not enough operands for {op!r})")
        b: float = operands.pop()
        a: float = operands.pop()
        operands.append(ExpressionParser.apply_operator(a, b, op))

    @staticmethod
    def calculate(expr: str, left_associative: bool = False) -> float:
        """
        Evaluate a purely numeric expression with two stacks.

        :param str expr: Expression made of numbers, operators and parentheses
        :param bool left_associative: Apply operators of equal precedence from left to right

        :return: Computed result
        :rtype: float
        :raises DivisionByZeroError: On division by zero
        :raises InvalidOperatorError: If a "(" is never closed
        :raises MalformedExpressionError: If an operator lacks operands or a ")" closes nothing
        :raises ValueError: If a number cannot be parsed
        """
        operands: List[float] = []
        operators: List[str] = []

        i = 0
        while i < len(expr):
            ch = expr[i]
            if ch == OPEN_PAREN:
                operators.append(ch)
            elif ch == CLOSE_PAREN:
                while operators and operators[-1] != OPEN_PAREN:
                    ExpressionParser._process_operator(operands, operators)
                if not operators:
                    raise MalformedExpressionError(f"Invalid expression (unmatched ')' at {i}): {expr}")
                # Discard the grouping marker
                operators.pop()
            elif ch in OPERATORS:
                while operators and ExpressionParser.has_higher_precedence(operators[-1], ch, left_associative):
                    ExpressionParser._process_operator(operands, operators)
                operators.append(ch)
            else:
                # Number: ASCII digits and decimal points, float() rejects bad runs
                end = i
                while end < len(expr) and ("0" <= expr[end] <= "9" or expr[end] == "."):
                    end += 1
                operands.append(float(expr[i:end]))
                i = end
                continue
            i += 1

        # An unmatched "(" reaching this loop fails as an invalid operator
        while operators:
            ExpressionParser._process_operator(operands, operators)

        if not operands:
            raise MalformedExpressionError(f"Invalid expression (no operand): {expr}")

        # Operands left below the top one (e.g. "2(3)") are ignored
        return operands[-1]

    @staticmethod
    def _evaluate(
        expr: str,
        values: Union[None, Mapping, ValueSource],
        config: EvaluatorConfig,
    ) -> float:
        expr = ExpressionParser.strip_whitespace(expr)

        if not ExpressionParser.is_valid(expr, strict=config.strict_parentheses):
            raise InvalidSyntaxError(f"Unbalanced parentheses: {expr}")

        variables = ExpressionParser.extract_variables(expr)
        bindings: Dict[str, float] = {}
        if variables:
            logger.debug(f"Variables found in {expr!r}: {sorted(variables)}")
            bindings = collect_bindings(variables, values)

        numeric = ExpressionParser.substitute(expr, bindings)
        logger.debug(f"Substituted expression: {numeric}")

        result = ExpressionParser.calculate(numeric, left_associative=config.left_associative)
        logger.debug(f"{expr} = {result}")
        return result

    @staticmethod
    def evaluate(
        expr: str,
        values: Union[None, Mapping, ValueSource] = None,
        config: Optional[EvaluatorConfig] = None,
    ) -> float:
        """
        Evaluate an arithmetic expression that may contain variables.

        Values are requested only when the expression passes the parenthesis
        check; an expression failing it is logged and yields ``nan``.

        :param str expr: Arithmetic expression string
        :param values: Mapping of variable values, a callable returning the value
            of a name, or None to prompt interactively
        :param EvaluatorConfig config: Parsing switches, defaults to the historical behaviour

        :return: Computed result, ``nan`` if the parentheses are unbalanced
        :rtype: float
        :raises DivisionByZeroError: On division by zero
        :raises UnboundVariableError: If a mapping lacks a variable
        :raises ValueError: If the expression is otherwise malformed
        """
        try:
            return ExpressionParser._evaluate(expr, values, config or DEFAULT_CONFIG)
        except InvalidSyntaxError as exc:
            logger.error(f"Error: Invalid expression! {exc}")
            return math.nan

    @staticmethod
    def try_evaluate(
        expr: str,
        values: Union[None, Mapping, ValueSource] = None,
        config: Optional[EvaluatorConfig] = None,
    ) -> EvaluationResult:
        """
        Evaluate an expression and report failures as a value instead of raising.

        Invalid syntax, arithmetic faults, unbound variables and malformed
        numbers all produce an ``EvaluationFailure``.

        :param str expr: Arithmetic expression string
        :param values: Same as for ``evaluate``
        :param EvaluatorConfig config: Parsing switches

        :return: Tagged success or failure
        :rtype: EvaluationResult
        """
        try:
            result = ExpressionParser._evaluate(expr, values, config or DEFAULT_CONFIG)
        except (ExpressionError, ValueError) as exc:
            return EvaluationFailure(expression=expr, error=str(exc), error_type=type(exc).__name__)
        return EvaluationSuccess(expression=expr, result=result)

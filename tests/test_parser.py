"""Test class ExpressionParser."""
import logging
import math

import pytest

from expression_calculator.common.config import EvaluatorConfig
from expression_calculator.common.errors import (
    DivisionByZeroError,
    InvalidOperatorError,
    MalformedExpressionError,
    UnboundVariableError,
)
from expression_calculator.common.models import EvaluationFailure, EvaluationSuccess
from expression_calculator.common.parser import ExpressionParser


def test_strip_whitespace():
    """strip_whitespace removes spaces, tabs and newlines."""
    assert ExpressionParser.strip_whitespace(" ( 2 + x ) *\t4\n") == "(2+x)*4"


@pytest.mark.parametrize("expr,expected", [
    ("(2+3)", True),
    ("((1))", True),
    ("", True),
    ("(2+3", False),
    ("2+3)", False),
    (")(", True),  # net balance only, not structural
])
def test_is_valid(expr, expected):
    """is_valid compares the number of opening and closing parentheses."""
    assert ExpressionParser.is_valid(expr) == expected


@pytest.mark.parametrize("expr,expected", [
    (")(", False),
    ("(1)+(2)", True),
    ("(()", False),
])
def test_is_valid_strict(expr, expected):
    """Strict mode also rejects a closing parenthesis that closes nothing."""
    assert ExpressionParser.is_valid(expr, strict=True) == expected


@pytest.mark.parametrize("expr,expected", [
    ("2+x*3", {"x"}),
    ("(a+b)*a", {"a", "b"}),
    ("abc", {"abc"}),
    ("Xx*x", {"Xx", "x"}),
    ("x2+y", {"x", "y"}),
    ("x2y", {"x", "y"}),
    ("2+3", set()),
])
def test_extract_variables(expr, expected):
    """Variables are maximal runs of letters, digits split them."""
    assert ExpressionParser.extract_variables(expr) == expected


def test_substitute():
    """Each variable is replaced by the decimal text of its value."""
    assert ExpressionParser.substitute("2+x*3", {"x": 2}) == "2+2.0*3"
    assert ExpressionParser.substitute("a/b+a", {"a": 1.5, "b": 3}) == "1.5/3.0+1.5"


def test_substitute_overlapping_names_known_limitation():
    """A shorter name replaced first corrupts a longer name containing it."""
    assert ExpressionParser.substitute("x+xy", {"x": 1, "xy": 2}) == "1.0+1.0y"


@pytest.mark.parametrize("top,incoming,expected", [
    ("*", "+", True),
    ("/", "-", True),
    ("+", "*", False),
    ("+", "-", False),
    ("*", "/", False),
    ("(", "+", False),
])
def test_has_higher_precedence(top, incoming, expected):
    """Only * and / on the stack take precedence over an incoming + or -."""
    assert ExpressionParser.has_higher_precedence(top, incoming) == expected


def test_has_higher_precedence_left_associative():
    """Left associative mode also pops operators of equal precedence."""
    assert ExpressionParser.has_higher_precedence("+", "-", left_associative=True)
    assert ExpressionParser.has_higher_precedence("*", "/", left_associative=True)
    assert not ExpressionParser.has_higher_precedence("+", "*", left_associative=True)


def test_apply_operator_unknown():
    """An unknown operator symbol raises InvalidOperatorError."""
    with pytest.raises(InvalidOperatorError, match="Invalid operator: %"):
        ExpressionParser.apply_operator(1.0, 2.0, "%")


@pytest.mark.parametrize("expr,expected", [
    ("3+4", 7.0),
    ("10-2", 8.0),
    ("3*5", 15.0),
    ("10/4", 2.5),
    ("1.5*2", 3.0),
    ("2+2*2", 6.0),  # tests precedence
    ("2*3+4", 10.0),
    ("(2+2)*2", 8.0),
    ("((1))", 1.0),
    ("10+2*(5+3-1)", 24.0),
    ("5-8", -3.0),
])
def test_calculate_valid(expr, expected):
    """calculate returns correct result for numeric expressions."""
    assert ExpressionParser.calculate(expr) == expected


@pytest.mark.parametrize("expr,expected", [
    ("2-3+4", -5.0),
    ("10-2-3", 11.0),
    ("8/2*2", 2.0),
])
def test_calculate_equal_precedence_drains_last_first(expr, expected):
    """Operators of equal precedence are applied last pushed first by default."""
    assert ExpressionParser.calculate(expr) == expected


@pytest.mark.parametrize("expr,expected", [
    ("2-3+4", 3.0),
    ("10-2-3", 5.0),
    ("8/2*2", 8.0),
    ("2+2*2", 6.0),
])
def test_calculate_left_associative(expr, expected):
    """Left associative mode applies operators of equal precedence left to right."""
    assert ExpressionParser.calculate(expr, left_associative=True) == expected


@pytest.mark.parametrize("expr", ["2/0", "2/(1-1)", "1+4/0.0"])
def test_calculate_division_by_zero(expr):
    """Division by zero raises with a fixed message."""
    with pytest.raises(DivisionByZeroError) as exc_info:
        ExpressionParser.calculate(expr)
    assert str(exc_info.value) == "Division by zero!"
    assert isinstance(exc_info.value, ZeroDivisionError)


@pytest.mark.parametrize("expr", [
    "-2",     # Leading minus is a binary operator
    "2+",     # Trailing operator
    ")(",     # Closing parenthesis with nothing open
    "()",     # Group without operand
])
def test_calculate_malformed(expr):
    """Operands and operators that do not line up raise MalformedExpressionError."""
    with pytest.raises(MalformedExpressionError):
        ExpressionParser.calculate(expr)


@pytest.mark.parametrize("expr", ["1.2.3+1", "2+.", "2+a", "\u0663+1"])  # Arabic-Indic three
def test_calculate_bad_number(expr):
    """A run that is not a valid float raises ValueError from float()."""
    with pytest.raises(ValueError):
        ExpressionParser.calculate(expr)


def test_evaluate_simple_expression():
    """An expression without variables needs no value source."""
    assert ExpressionParser.evaluate("2+2*2") == 6.0


def test_evaluate_with_variables():
    """Variables are substituted before the calculation."""
    assert ExpressionParser.evaluate("2+x*3", {"x": 2}) == 8.0
    assert ExpressionParser.evaluate("(2 + x) * 4", {"x": 2}) == 16.0


def test_evaluate_with_callable_source():
    """A callable value source is asked once per distinct variable."""
    calls = []

    def source(name):
        calls.append(name)
        return {"a": 3.0, "b": 4.0}[name]

    assert ExpressionParser.evaluate("a*b+a", source) == 15.0
    assert calls == ["a", "b"]


def test_evaluate_interactive(monkeypatch):
    """Without a source, values are read from input() in sorted name order."""
    prompts = []
    answers = iter(["3", "4"])

    def fake_input(prompt):
        prompts.append(prompt)
        return next(answers)

    monkeypatch.setattr("builtins.input", fake_input)

    assert ExpressionParser.evaluate("b-a") == 1.0
    assert prompts == [
        "Enter the value for variable a: ",
        "Enter the value for variable b: ",
    ]


def test_evaluate_interactive_malformed_value(monkeypatch):
    """A value that is not a number propagates a ValueError."""
    monkeypatch.setattr("builtins.input", lambda prompt: "two")
    with pytest.raises(ValueError):
        ExpressionParser.evaluate("x+1")


def test_evaluate_invalid_syntax_returns_nan(caplog):
    """Unbalanced parentheses yield nan and no value is requested."""
    calls = []

    def source(name):
        calls.append(name)
        return 1.0

    with caplog.at_level(logging.ERROR, logger="expression_calculator"):
        result = ExpressionParser.evaluate("(2+x*3", source)

    assert math.isnan(result)
    assert calls == []
    assert "Invalid expression" in caplog.text


def test_evaluate_division_by_zero():
    """Division by zero propagates out of evaluate."""
    with pytest.raises(DivisionByZeroError, match="^Division by zero!$"):
        ExpressionParser.evaluate("2/0")


def test_evaluate_unbound_variable():
    """A mapping without the variable raises UnboundVariableError."""
    with pytest.raises(UnboundVariableError):
        ExpressionParser.evaluate("x+y", {"x": 1})


def test_evaluate_negative_value_known_limitation():
    """A negative value becomes a binary minus without left operand."""
    with pytest.raises(MalformedExpressionError):
        ExpressionParser.evaluate("2*x", {"x": -1})


def test_evaluate_is_repeatable():
    """The same expression and bindings always give the same result."""
    results = {ExpressionParser.evaluate("(a+1)/b", {"a": 5, "b": 4}) for _ in range(3)}
    assert results == {1.5}


def test_evaluate_strict_config():
    """Strict parentheses turn a misordered pair into invalid syntax."""
    config = EvaluatorConfig(strict_parentheses=True)
    assert math.isnan(ExpressionParser.evaluate(")2+3(", config=config))
    with pytest.raises(MalformedExpressionError):
        ExpressionParser.evaluate(")2+3(")


def test_evaluate_left_associative_config():
    """The left associative switch reaches the calculation."""
    config = EvaluatorConfig(left_associative=True)
    assert ExpressionParser.evaluate("x-3+4", {"x": 2}, config) == 3.0
    assert ExpressionParser.evaluate("x-3+4", {"x": 2}) == -5.0


def test_try_evaluate_success():
    """try_evaluate wraps the result in an EvaluationSuccess."""
    outcome = ExpressionParser.try_evaluate("(2+x)*4", {"x": 2})
    assert isinstance(outcome, EvaluationSuccess)
    assert outcome.status == "ok"
    assert outcome.result == 16.0
    assert outcome.expression == "(2+x)*4"


@pytest.mark.parametrize("expr,values,error_type", [
    ("2/0", None, "DivisionByZeroError"),
    ("(2+3", None, "InvalidSyntaxError"),
    ("x+y", {"x": 1}, "UnboundVariableError"),
    ("1.2.3", None, "ValueError"),
    ("2+", None, "MalformedExpressionError"),
])
def test_try_evaluate_failure(expr, values, error_type):
    """try_evaluate reports every evaluation error as an EvaluationFailure."""
    outcome = ExpressionParser.try_evaluate(expr, values)
    assert isinstance(outcome, EvaluationFailure)
    assert outcome.status == "error"
    assert outcome.error_type == error_type
    assert outcome.error


def test_calculate_unclosed_group_is_invalid_operator():
    """A "(" left on the stack at the end is applied as an operator and rejected."""
    with pytest.raises(InvalidOperatorError, match=r"^Invalid operator: \($"):
        ExpressionParser.calculate("2*(3")


@pytest.mark.parametrize("expr,expected", [
    ("2(3)", 3.0),
    ("2(3+4)", 7.0),
])
def test_calculate_extra_operands_return_top(expr, expected):
    """Operands left below the result are dropped, the top one is returned."""
    assert ExpressionParser.calculate(expr) == expected


def test_evaluate_extra_operands_return_top():
    """An implicit product is not computed: 2(x) yields the value of x."""
    assert ExpressionParser.evaluate("2(x)", {"x": 3}) == 3.0

"""
Command line entrypoint.

Two modes:
- Evaluate a single expression given as argument, prompting for
  variables that have no ``--var`` binding
- Evaluate a batch file (text or archive) given with ``--file``, made of
  expressions and ``NAME = VALUE`` binding lines, and write one result
  line per expression next to the input
"""

import argparse
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, FilePath, ValidationError, model_validator

from expression_calculator.common.config import EvaluatorConfig
from expression_calculator.common.errors import ExpressionError
from expression_calculator.common.loader import load_requests
from expression_calculator.common.logger import logger
from expression_calculator.common.models import EvaluationRequest, EvaluationSuccess
from expression_calculator.common.parser import ExpressionParser
from expression_calculator.common.value_source import InteractiveValueSource, ValueSource


class CliArgs(BaseModel):
    """
    Pydantic model used to validate CLI arguments.

    Attributes
    ----------
    expression : str, optional
        Expression to evaluate.
    file_path : FilePath, optional
        Path to a file containing one expression per line.
    variables : dict
        Values bound with ``--var NAME=VALUE``.
    strict : bool
        Reject a closing parenthesis that closes nothing.
    left_associative : bool
        Apply operators of equal precedence from left to right.
    """

    expression: Optional[str] = None
    file_path: Optional[FilePath] = None
    variables: Dict[str, float] = {}
    strict: bool = False
    left_associative: bool = False

    @model_validator(mode="after")
    def exactly_one_input(self) -> "CliArgs":
        """Ensure that either an expression or a file is given, not both."""
        if (self.expression is None) == (self.file_path is None):
            raise ValueError("Provide exactly one of an expression or --file")
        return self

    @property
    def config(self) -> EvaluatorConfig:
        """Build the evaluator configuration selected by the switches."""
        return EvaluatorConfig(strict_parentheses=self.strict, left_associative=self.left_associative)


def parse_variable(binding: str) -> tuple:
    """
    Split a ``NAME=VALUE`` binding.

    :param str binding: Raw command line binding

    :return: Tuple of (name, value text)
    :rtype: tuple
    :raises argparse.ArgumentTypeError: If the binding has no ``=`` or an empty name
    """
    name, sep, value = binding.partition("=")
    name = name.strip()
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"Expected NAME=VALUE, got {binding!r}")
    return name, value.strip()


def parse_args(argv: Optional[List[str]] = None) -> CliArgs:
    """
    Parse and validate command-line arguments.

    :param argv: Arguments to parse, defaults to ``sys.argv[1:]``

    :return: Validated CLI arguments
    :rtype: CliArgs
    """
    parser = argparse.ArgumentParser(
        description="Evaluate arithmetic expressions with variables"
    )
    parser.add_argument("expression", nargs="?", help="Expression to evaluate, e.g. '(2 + x) * 4'")
    parser.add_argument("--file", dest="file_path", help="Batch file or archive of expressions and NAME = VALUE lines")
    parser.add_argument(
        "--var",
        dest="variables",
        action="append",
        type=parse_variable,
        default=[],
        metavar="NAME=VALUE",
        help="Bind a variable, may be repeated",
    )
    parser.add_argument("--strict", action="store_true", help="Reject ')' closing nothing")
    parser.add_argument(
        "--left-associative",
        action="store_true",
        help="Apply operators of equal precedence from left to right",
    )

    args = parser.parse_args(argv)

    try:
        cli_args = CliArgs(
            expression=args.expression,
            file_path=args.file_path,
            variables=dict(args.variables),
            strict=args.strict,
            left_associative=args.left_associative,
        )
        if cli_args.expression is not None:
            # Rejects blank expressions and non alphabetic variable names
            EvaluationRequest(expression=cli_args.expression, variables=cli_args.variables)
    except ValidationError as exc:
        parser.error(str(exc))

    return cli_args


def build_output_path(input_path: Path) -> Path:
    """
    Construct the results file path based on the input file.

    - Preserves the original folder
    - Replaces dots in extensions with underscores
    - Appends '_results.txt' at the end

    Examples
    --------
    input: resources/operations.7z
    output: resources/operations_7z_results.txt

    :param input_path: Path to the input file
    :return: Path to the output file
    """
    suffix_safe = "".join(input_path.suffixes).replace(".", "_")
    stem = input_path.name[: len(input_path.name) - len("".join(input_path.suffixes))]
    return input_path.with_name(f"{stem}{suffix_safe}_results.txt")


def build_value_source(variables: Dict[str, float]) -> ValueSource:
    """
    Serve bound variables first, then prompt for the others.

    :param dict variables: Values bound on the command line

    :return: Value source for ``ExpressionParser``
    :rtype: ValueSource
    """
    prompt = InteractiveValueSource()

    def lookup(name: str) -> float:
        if name in variables:
            return variables[name]
        return prompt(name)

    return lookup


def evaluate_file(
    input_path: Path,
    output_path: Path,
    variables: Dict[str, float],
    config: Optional[EvaluatorConfig] = None,
) -> int:
    """
    Evaluate each expression of a batch file and write one result line per expression.

    Lines are written as ``<expr> = <result>`` or ``<expr> -> ERROR: <message>``
    and flushed immediately.

    :param Path input_path: Batch text file or archive
    :param Path output_path: Path where results will be written
    :param dict variables: Bindings in effect before the first line of the file
    :param EvaluatorConfig config: Parsing switches

    :return: Number of expressions that failed
    :rtype: int
    :raises ValueError: If the file cannot be read or a binding line is malformed
    """
    requests = load_requests(input_path, variables)
    logger.info(f"Evaluating {len(requests)} expressions from {input_path}")

    failures = 0
    with output_path.open("w", encoding="utf-8") as f_out:
        for index, request in enumerate(requests, start=1):
            outcome = ExpressionParser.try_evaluate(request.expression, request.variables, config)
            if isinstance(outcome, EvaluationSuccess):
                f_out.write(f"{request.expression} = {outcome.result}\n")
            else:
                failures += 1
                logger.error(f"Expression {index} failed: {outcome.error_type}: {outcome.error}")
                f_out.write(f"{request.expression} -> ERROR: {outcome.error}\n")
            f_out.flush()

    logger.info(f"Results written to {output_path} ({failures} failed)")
    return failures


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main function of the ``expression-calculator`` command.
    """
    cli_args = parse_args(argv)

    if cli_args.file_path is not None:
        input_path = Path(cli_args.file_path)
        try:
            evaluate_file(input_path, build_output_path(input_path), cli_args.variables, cli_args.config)
        except ValueError as exc:
            logger.error(f"Could not read {input_path}: {exc}")
            raise SystemExit(1)
        return

    values = build_value_source(cli_args.variables)
    try:
        result = ExpressionParser.evaluate(cli_args.expression, values, cli_args.config)
    except (ExpressionError, ValueError) as exc:
        logger.error(f"Could not evaluate {cli_args.expression!r}: {exc}")
        raise SystemExit(1)

    print(result)


if __name__ == "__main__":
    main()

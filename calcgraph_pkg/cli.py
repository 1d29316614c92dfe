"""Command line interface: one-shot evaluation flags and an interactive REPL."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from . import api
from .config import DEFAULT_RESOLUTION, MAX_PRECISION, MIN_PRECISION, VERSION
from .logging_config import get_logger, setup_logging
from .types import EvalResult, GraphResult, SolveResult

logger = get_logger("cli")

PROMPT = "calcgraph> "

HELP_TEXT = """\
Enter an expression to evaluate it, e.g. 2 + 3 * 4 or sin(pi/2).
An equation such as 2*x + 1 = 5 is solved for x.

Commands:
  let NAME VALUE   bind a variable for later expressions
  vars             list bound variables
  help             show this text
  quit, exit       leave
"""


def parse_variables(assignments: list[str] | None) -> dict[str, str]:
    """Turn ["x=2", "y=0.5"] into {"x": "2", "y": "0.5"}."""
    variables: dict[str, str] = {}
    for item in assignments or []:
        name, sep, value = item.partition("=")
        name, value = name.strip(), value.strip()
        if not sep or not name or not value:
            raise ValueError(f"Invalid variable binding {item!r}, expected NAME=VALUE")
        variables[name] = value
    return variables


def print_result(result: EvalResult | SolveResult | GraphResult, output_format: str = "human") -> None:
    if output_format == "json":
        print(json.dumps(result.to_dict()))
        return

    if not result.ok:
        print(f"Error: {result.error}")
        return

    if isinstance(result, SolveResult):
        for value in result.exact or []:
            print(f"Solution: {value}")
    elif isinstance(result, GraphResult):
        if result.graph is not None:
            points = result.graph["points"]
            print(f"{len(points)} points ({result.graph['function_type']})")
            for point in points:
                print(f"{point['x']:.6g}\t{point['y']:.6g}")
        for special in result.special_points or []:
            print(special["description"])
    else:
        print(result.display if result.display is not None else result.result)


def _run_once(args: argparse.Namespace, variables: dict[str, Any]) -> EvalResult | SolveResult | GraphResult:
    expression = args.eval_expr.strip()
    if args.solve:
        return api.solve_equation(expression, args.solve)
    if args.diff:
        return api.diff(expression, args.diff)
    if args.integrate:
        bounds = tuple(args.bounds) if args.bounds else None
        return api.integrate_expr(expression, args.integrate, bounds)
    if args.simplify:
        return api.simplify_expr(expression)
    if args.special_points:
        domain = tuple(args.domain) if args.domain else (-10.0, 10.0)
        return api.special_points(expression, domain)
    if args.plot:
        domain = tuple(args.domain) if args.domain else None
        return api.plot(expression, args.plot, domain, args.resolution)
    return api.evaluate(expression, variables, args.precision, args.notation)


def repl_loop(output_format: str = "human", precision: int | None = None) -> None:
    """Interactive loop; ends on quit, exit, EOF or Ctrl+C."""
    variables: dict[str, str] = {}
    print("calcgraph - type 'help' for commands, 'quit' to exit.")
    while True:
        try:
            line = input(PROMPT).strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not line:
            continue
        command = line.lower()
        if command in ("quit", "exit"):
            break
        if command == "help":
            print(HELP_TEXT)
            continue
        if command == "vars":
            for name, value in sorted(variables.items()):
                print(f"{name} = {value}")
            continue
        if command.startswith("let "):
            parts = line.split()
            if len(parts) != 3:
                print("Usage: let NAME VALUE")
                continue
            variables[parts[1]] = parts[2]
            continue

        if "=" in line:
            print_result(api.solve_equation(line), output_format)
        else:
            print_result(api.evaluate(line, variables, precision), output_format)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="calcgraph",
        description="Decimal calculator with function sampling and analysis",
    )
    parser.add_argument(
        "-e",
        "--eval",
        type=str,
        help="Evaluate one expression and exit (non-interactive)",
        dest="eval_expr",
    )
    parser.add_argument(
        "--var",
        action="append",
        metavar="NAME=VALUE",
        help="Bind a variable (repeatable)",
    )
    parser.add_argument(
        "-p", "--precision", type=int, help="Set result precision (significant digits)"
    )
    parser.add_argument(
        "--notation",
        choices=["standard", "exponential"],
        help="Display notation for evaluated results",
    )
    parser.add_argument("--simplify", action="store_true", help="Simplify instead of evaluating")
    parser.add_argument("--diff", metavar="VAR", help="Differentiate with respect to VAR")
    parser.add_argument("--integrate", metavar="VAR", help="Integrate with respect to VAR")
    parser.add_argument(
        "--bounds", nargs=2, type=float, metavar=("A", "B"), help="Definite integral bounds"
    )
    parser.add_argument("--solve", metavar="VAR", help="Solve a linear equation for VAR")
    parser.add_argument("--plot", choices=["2d", "polar"], help="Sample the expression as a graph")
    parser.add_argument(
        "--domain", nargs=2, type=float, metavar=("A", "B"), help="Sampling domain"
    )
    parser.add_argument(
        "--resolution", type=int, default=DEFAULT_RESOLUTION, help="Sampling steps"
    )
    parser.add_argument(
        "--special-points",
        action="store_true",
        help="Report zeros and extrema of y = f(x) over the domain",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["json", "human"],
        default="human",
        help="Output format: json (machine-readable) or human (human-readable)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: $CALCGRAPH_LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--log-file", type=str, help="Write logs to file")
    parser.add_argument("-v", "--version", action="store_true", help="Show program version")
    return parser


def main_entry(argv: list[str] | None = None) -> int:
    """
    Main entry point for the calcgraph CLI.

    Args:
        argv: Optional command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for errors)
    """
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)

    if args.version:
        print(VERSION)
        return 0

    if args.precision is not None and not MIN_PRECISION <= args.precision <= MAX_PRECISION:
        print(f"Error: precision must be between {MIN_PRECISION} and {MAX_PRECISION}")
        return 1

    if args.eval_expr is None:
        repl_loop(args.format, args.precision)
        return 0

    if not args.eval_expr.strip():
        print("Error: Empty input. Please enter an expression or equation.")
        return 1

    try:
        variables = parse_variables(args.var)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    result = _run_once(args, variables)
    print_result(result, args.format)
    if not result.ok:
        logger.debug("Command failed: %s", result.error)
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main_entry())

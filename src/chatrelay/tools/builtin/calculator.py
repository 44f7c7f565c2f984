"""Arithmetic evaluation for the `calculate` tool.

Evaluation is two-pass: innermost parenthesised groups are reduced first
(optionally wrapped by sqrt, sin or cos), then multiplication/division
and finally addition/subtraction, each left to right.
"""

import math
import re
from typing import Any

from ...errors import ToolError, ToolErrorKind
from ..base import BaseTool, require_str

_NUM = r"-?\d+(?:\.\d+)?"
_GROUP = re.compile(r"(sqrt|sin|cos)?\(([^()]+)\)")
_MUL_DIV = re.compile(rf"({_NUM})([*/])({_NUM})")
_ADD_SUB = re.compile(rf"({_NUM})([+-])({_NUM})")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?(?:e[+-]?\d+)?")

_FUNCTIONS = {"sqrt": math.sqrt, "sin": math.sin, "cos": math.cos}


def format_number(value: float) -> str:
    """Shortest text for a float; integral values drop the fraction."""
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def _substitute(expr: str, match: re.Match[str], value: float) -> str:
    text = format_number(value)
    start, end = match.span()
    # Keep a binary operator when the folded left operand carried it
    if expr[start] == "-" and start > 0 and expr[start - 1].isdigit() and not text.startswith("-"):
        text = "+" + text
    return expr[:start] + text + expr[end:]


def _to_float(text: str, expression: str) -> float:
    if not _NUMBER.fullmatch(text):
        raise ToolError(ToolErrorKind.INVALID_EXPRESSION, f"cannot evaluate '{expression}'")
    return float(text)


def _evaluate_flat(expr: str, expression: str) -> float:
    """Evaluate an expression without parentheses."""
    while match := _MUL_DIV.search(expr):
        left, op, right = float(match[1]), match[2], float(match[3])
        if op == "*":
            value = left * right
        else:
            if right == 0:
                raise ToolError(ToolErrorKind.DIVISION_BY_ZERO)
            value = left / right
        expr = _substitute(expr, match, value)

    while match := _ADD_SUB.search(expr):
        left, op, right = float(match[1]), match[2], float(match[3])
        value = left + right if op == "+" else left - right
        expr = _substitute(expr, match, value)

    return _to_float(expr, expression)


def evaluate_expression(expression: str) -> float:
    """Evaluate an arithmetic expression.

    Supports +, -, *, /, parentheses and sqrt/sin/cos of a group.

    Raises:
        ToolError: DIVISION_BY_ZERO or INVALID_EXPRESSION
    """
    expr = expression.replace(" ", "")
    if not expr:
        raise ToolError(ToolErrorKind.INVALID_EXPRESSION, "empty expression")

    while "(" in expr:
        match = _GROUP.search(expr)
        if match is None:
            raise ToolError(ToolErrorKind.INVALID_EXPRESSION, f"unbalanced parentheses in '{expression}'")
        value = _evaluate_flat(match[2], expression)
        if match[1]:
            try:
                value = _FUNCTIONS[match[1]](value)
            except ValueError as e:
                raise ToolError(ToolErrorKind.INVALID_EXPRESSION, f"{match[1]}({format_number(value)}): {e}") from e
        expr = _substitute(expr, match, value)

    return _evaluate_flat(expr, expression)


class CalculatorTool(BaseTool):
    """Evaluates arithmetic expressions."""

    @property
    def name(self) -> str:
        return "calculate"

    @property
    def description(self) -> str:
        return "Perform mathematical calculations and solve equations"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "expression": {
                    "type": "string",
                    "description": "Mathematical expression to calculate (supports +, -, *, /, parentheses, sqrt, sin, cos)"
                }
            },
            "required": ["expression"]
        }

    async def run(self, arguments: dict[str, Any]) -> str:
        expression = require_str(arguments, "expression")
        result = evaluate_expression(expression)
        return f"Calculation: {expression} = {format_number(result)}"

"""Filter expression parsing and SQL compilation.

Filters use a Mongo-like syntax:

    {"a": 1}                        -> (a = $p1)
    {"a": {"$gt": 1}}               -> (a > $p1)
    {"a": 1, "b": 2}                -> (a = $p1) AND (b = $p2)
    {"$or": [{"a": 1}, {"b": 2}]}   -> ((a = $p1) OR (b = $p2))

Parsing produces a small tree (Value, Comparison, Logical, Conjunction) and is
free of side effects. Compilation walks the tree and allocates parameters in
left-to-right order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Union

from litetable.errors import InvalidExpressionSyntaxError
from litetable.params import ParameterBinder

BINARY_OPERATORS = {
    "$eq": "=",
    "$gt": ">",
    "$lt": "<",
    "$ge": ">=",
    "$le": "<=",
}

LOGICAL_OPERATORS = {
    "$and": " AND ",
    "$or": " OR ",
}

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


@dataclass(frozen=True)
class Value:
    value: Any


@dataclass(frozen=True)
class Comparison:
    column: str
    operator: str
    operand: Value


@dataclass(frozen=True)
class Logical:
    operator: str
    operands: tuple[Expression, ...]


@dataclass(frozen=True)
class Conjunction:
    """Several fields in one filter object, implicitly ANDed."""
    terms: tuple[Expression, ...]


Expression = Union[Comparison, Logical, Conjunction]


def is_value(expression: Any) -> bool:
    """True for scalars usable as a comparison operand."""
    if isinstance(expression, str):
        return not expression.startswith("$")
    return isinstance(expression, (bool, int, float, bytes, date))


def _check_column(column: str, expression: Any) -> None:
    if not _IDENTIFIER.match(column):
        raise InvalidExpressionSyntaxError(expression, f"invalid column name {column!r}")


def parse(expression: Any) -> Expression:
    """Parse a filter object into an expression tree."""
    if not isinstance(expression, Mapping) or not expression:
        raise InvalidExpressionSyntaxError(expression)

    if len(expression) > 1:
        return Conjunction(tuple(parse({key: value}) for key, value in expression.items()))

    (left, right), = expression.items()
    if not isinstance(left, str):
        raise InvalidExpressionSyntaxError(expression)

    # Implicit equals comparison
    if is_value(right):
        _check_column(left, expression)
        return Comparison(left, "=", Value(right))

    if left in LOGICAL_OPERATORS:
        if not isinstance(right, (list, tuple)) or not right:
            raise InvalidExpressionSyntaxError(expression, f"{left} expects a non-empty list")
        return Logical(LOGICAL_OPERATORS[left], tuple(parse(operand) for operand in right))

    if left.startswith("$"):
        raise InvalidExpressionSyntaxError(expression, f"unknown operator {left}")

    if isinstance(right, Mapping):
        if len(right) != 1:
            raise InvalidExpressionSyntaxError(right)
        (op, operand), = right.items()
        if op not in BINARY_OPERATORS:
            raise InvalidExpressionSyntaxError(right, f"unknown operator {op}")
        if not is_value(operand):
            raise InvalidExpressionSyntaxError(operand)
        _check_column(left, expression)
        return Comparison(left, BINARY_OPERATORS[op], Value(operand))

    raise InvalidExpressionSyntaxError(expression)


def to_sql(node: Expression, binder: ParameterBinder) -> str:
    """Render an expression tree, binding operands through binder."""
    if isinstance(node, Comparison):
        placeholder = binder.add_param(node.operand.value)
        return f"({node.column} {node.operator} {placeholder})"
    if isinstance(node, Logical):
        return "(" + node.operator.join(to_sql(op, binder) for op in node.operands) + ")"
    if isinstance(node, Conjunction):
        return " AND ".join(to_sql(term, binder) for term in node.terms)
    raise TypeError(f"Not an expression node: {node!r}")


def compile_filter(expression: Any,
                   binder: ParameterBinder | None = None) -> tuple[str, dict[str, Any]]:
    """Compile a filter object to a SQL boolean expression and its parameters."""
    if binder is None:
        binder = ParameterBinder()
    sql = to_sql(parse(expression), binder)
    return sql, binder.params

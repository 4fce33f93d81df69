"""Restricted expression evaluation for control and data tools.

Conditions such as ``score > 50 and status == "open"`` are parsed with
:mod:`ast` and walked node by node.  Only literals, names bound in the
evaluation context, boolean/comparison/arithmetic operators and subscripts are
accepted; attribute access, calls and comprehensions are rejected.
"""

from __future__ import annotations

import ast
import logging
import operator
from typing import Any, Mapping, Sequence

logger = logging.getLogger(__name__)

_BINARY = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_COMPARE = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}

# JavaScript-flavoured spellings that generated workflows tend to use
_ALIASES = {"true": True, "false": False, "null": None}

_MAX_DEPTH = 64


def _eval(node: ast.AST, names: Mapping[str, Any], depth: int = 0) -> Any:
    if depth > _MAX_DEPTH:
        raise ValueError("expression too deeply nested")
    depth += 1

    if isinstance(node, ast.Expression):
        return _eval(node.body, names, depth)
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name):
        if node.id in names:
            return names[node.id]
        if node.id in _ALIASES:
            return _ALIASES[node.id]
        raise ValueError(f"unknown name {node.id}")
    if isinstance(node, ast.BoolOp):
        values = node.values
        if isinstance(node.op, ast.And):
            return all(_eval(v, names, depth) for v in values)
        return any(_eval(v, names, depth) for v in values)
    if isinstance(node, ast.UnaryOp):
        operand = _eval(node.operand, names, depth)
        if isinstance(node.op, ast.Not):
            return not operand
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.UAdd):
            return +operand
        raise ValueError("unsupported unary operator")
    if isinstance(node, ast.BinOp):
        op = _BINARY.get(type(node.op))
        if op is None:
            raise ValueError("unsupported binary operator")
        return op(_eval(node.left, names, depth), _eval(node.right, names, depth))
    if isinstance(node, ast.Compare):
        left = _eval(node.left, names, depth)
        for op_node, comparator in zip(node.ops, node.comparators):
            op = _COMPARE.get(type(op_node))
            if op is None:
                raise ValueError("unsupported comparison")
            right = _eval(comparator, names, depth)
            if not op(left, right):
                return False
            left = right
        return True
    if isinstance(node, ast.Subscript):
        target = _eval(node.value, names, depth)
        if not isinstance(target, (Mapping, Sequence)):
            raise ValueError("subscript target must be a mapping or sequence")
        return target[_eval(node.slice, names, depth)]
    if isinstance(node, (ast.List, ast.Tuple)):
        return [_eval(elt, names, depth) for elt in node.elts]

    raise ValueError(f"unsupported expression: {type(node).__name__}")


def evaluate(expression: str, names: Mapping[str, Any]) -> Any:
    """Evaluate ``expression`` with ``names`` as its only variables.

    Raises:
        ValueError: If the expression is malformed or uses disallowed syntax.
    """
    normalized = expression.replace("===", "==").replace("!==", "!=")
    normalized = normalized.replace("&&", " and ").replace("||", " or ")
    try:
        tree = ast.parse(normalized.strip(), mode="eval")
    except SyntaxError as exc:
        raise ValueError(f"invalid expression: {expression}") from exc
    return _eval(tree, names)


def evaluate_condition(condition: Any, context: Any) -> bool:
    """Evaluate ``condition`` to a bool, treating any failure as ``False``."""
    if isinstance(condition, bool):
        return condition
    if not isinstance(condition, str):
        return bool(condition)
    names = context if isinstance(context, Mapping) else {"item": context}
    try:
        return bool(evaluate(condition, names))
    except (ValueError, TypeError, KeyError, IndexError, ZeroDivisionError) as exc:
        logger.warning(f"Error evaluating condition {condition!r}: {exc}")
        return False

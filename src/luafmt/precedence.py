"""Operator ranks used to decide where parentheses are required."""

from __future__ import annotations

from luafmt.ast_nodes import BinaryExpr, LogicalExpr, UnaryExpr

# Tightest first
_LEVELS: list[tuple[str, ...]] = [
    ("^",),
    ("unary",),
    ("*", "/", "%"),
    ("+", "-"),
    ("..",),
    ("<", ">", "<=", ">=", "~=", "=="),
    ("and",),
    ("or",),
]

# Operator -> rank (higher binds tighter)
PRECEDENCE: dict[str, int] = {
    op: len(_LEVELS) - i for i, level in enumerate(_LEVELS) for op in level
}

UNARY_PRECEDENCE = PRECEDENCE["unary"]

RIGHT_ASSOCIATIVE = frozenset({"..", "^"})

# Regrouping a chain of one of these yields the same value
ASSOCIATIVE = frozenset({"+", "*", "and", "or"})


def rank(node: object) -> int | None:
    """Rank of an operator expression, or None for operands that never need parentheses."""
    if isinstance(node, (BinaryExpr, LogicalExpr)):
        return PRECEDENCE[node.op]
    if isinstance(node, UnaryExpr):
        return UNARY_PRECEDENCE
    return None

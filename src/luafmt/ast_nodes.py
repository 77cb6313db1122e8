"""AST node definitions for Lua source."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from luafmt.source import Span

# ── Comments ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Comment:
    value: str  # content without the delimiters, whitespace kept
    raw: str    # full source text, ``--`` or ``--[[`` style
    span: Span


# ── Literals ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class NumberLit:
    raw: str
    span: Span


@dataclass(frozen=True)
class StringLit:
    raw: str
    span: Span


@dataclass(frozen=True)
class BooleanLit:
    raw: str
    span: Span


@dataclass(frozen=True)
class NilLit:
    raw: str
    span: Span


@dataclass(frozen=True)
class VarargLit:
    raw: str
    span: Span


# ── Expressions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class IdentifierExpr:
    name: str
    span: Span


@dataclass(frozen=True)
class MemberExpr:
    base: Expr
    indexer: str  # "." or ":"
    member: IdentifierExpr
    span: Span


@dataclass(frozen=True)
class IndexExpr:
    base: Expr
    index: Expr
    span: Span


@dataclass(frozen=True)
class CallExpr:
    base: Expr
    args: list[Expr]
    span: Span


@dataclass(frozen=True)
class StringCallExpr:
    base: Expr
    argument: StringLit
    span: Span


@dataclass(frozen=True)
class TableCallExpr:
    base: Expr
    argument: TableConstructor
    span: Span


@dataclass(frozen=True)
class BinaryExpr:
    op: str
    left: Expr
    right: Expr
    span: Span


@dataclass(frozen=True)
class LogicalExpr:
    op: str  # "and" or "or"
    left: Expr
    right: Expr
    span: Span


@dataclass(frozen=True)
class UnaryExpr:
    op: str  # "not", "-" or "#"
    operand: Expr
    span: Span


@dataclass(frozen=True)
class ParenExpr:
    """Parentheses that truncate a call or ``...`` to a single value."""

    expr: Expr
    span: Span


@dataclass(frozen=True)
class TableKey:
    key: Expr
    value: Expr
    span: Span


@dataclass(frozen=True)
class TableKeyString:
    key: IdentifierExpr
    value: Expr
    span: Span


@dataclass(frozen=True)
class TableValue:
    value: Expr
    span: Span


TableField = Union[TableKey, TableKeyString, TableValue]


@dataclass(frozen=True)
class TableConstructor:
    fields: list[TableField | Comment]
    span: Span


@dataclass(frozen=True)
class FunctionDef:
    """Named, local, method or anonymous function.

    ``name`` is None for function expressions; for ``function a.b:c()``
    it is the MemberExpr chain ``a.b:c``.
    """

    name: IdentifierExpr | MemberExpr | None
    is_local: bool
    params: list[IdentifierExpr | VarargLit]
    body: list[Stmt | Comment]
    span: Span


Expr = Union[
    NumberLit, StringLit, BooleanLit, NilLit, VarargLit,
    IdentifierExpr, MemberExpr, IndexExpr,
    CallExpr, StringCallExpr, TableCallExpr,
    BinaryExpr, LogicalExpr, UnaryExpr, ParenExpr,
    TableConstructor, FunctionDef,
]

Call = Union[CallExpr, StringCallExpr, TableCallExpr]


# ── Statements ───────────────────────────────────────────────────


@dataclass(frozen=True)
class LabelStmt:
    label: str
    span: Span


@dataclass(frozen=True)
class GotoStmt:
    label: str
    span: Span


@dataclass(frozen=True)
class BreakStmt:
    span: Span


@dataclass(frozen=True)
class ReturnStmt:
    arguments: list[Expr]
    span: Span


@dataclass(frozen=True)
class DoStmt:
    body: list[Stmt | Comment]
    span: Span


@dataclass(frozen=True)
class AssignStmt:
    targets: list[Expr]
    values: list[Expr]
    span: Span


@dataclass(frozen=True)
class LocalStmt:
    names: list[IdentifierExpr]
    values: list[Expr]
    span: Span


@dataclass(frozen=True)
class CallStmt:
    call: Call
    span: Span


@dataclass(frozen=True)
class IfClause:
    condition: Expr
    body: list[Stmt | Comment]
    span: Span


@dataclass(frozen=True)
class ElseifClause:
    condition: Expr
    body: list[Stmt | Comment]
    span: Span


@dataclass(frozen=True)
class ElseClause:
    body: list[Stmt | Comment]
    span: Span


Clause = Union[IfClause, ElseifClause, ElseClause]


@dataclass(frozen=True)
class IfStmt:
    clauses: list[Clause]
    span: Span


@dataclass(frozen=True)
class WhileStmt:
    condition: Expr
    body: list[Stmt | Comment]
    span: Span


@dataclass(frozen=True)
class RepeatStmt:
    body: list[Stmt | Comment]
    condition: Expr
    span: Span


@dataclass(frozen=True)
class NumericForStmt:
    variable: IdentifierExpr
    start: Expr
    stop: Expr
    step: Expr | None
    body: list[Stmt | Comment]
    span: Span


@dataclass(frozen=True)
class GenericForStmt:
    names: list[IdentifierExpr]
    iterators: list[Expr]
    body: list[Stmt | Comment]
    span: Span


Stmt = Union[
    LabelStmt, GotoStmt, BreakStmt, ReturnStmt, DoStmt,
    AssignStmt, LocalStmt, CallStmt, FunctionDef,
    IfStmt, WhileStmt, RepeatStmt, NumericForStmt, GenericForStmt,
]


# ── Root ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Chunk:
    body: list[Stmt | Comment]
    span: Span
    shebang: str | None = None


def is_node(value: object) -> bool:
    """True for AST nodes and comments, False for spans and scalars."""
    return hasattr(value, "__dataclass_fields__") and hasattr(value, "span")

"""AST-walking pretty-printer for Lua source code.

Produces canonical formatting for .lua files. The tree comes from
``parse_source``, which repairs ``if`` clause spans and reattaches the
lexer's comments, so comments print in place like any other statement
or table field.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace

from luafmt import layout
from luafmt.ast_nodes import (
    AssignStmt,
    BinaryExpr,
    BooleanLit,
    BreakStmt,
    CallExpr,
    CallStmt,
    Chunk,
    Comment,
    DoStmt,
    ElseClause,
    ElseifClause,
    FunctionDef,
    GenericForStmt,
    GotoStmt,
    IdentifierExpr,
    IfClause,
    IfStmt,
    IndexExpr,
    LabelStmt,
    LocalStmt,
    LogicalExpr,
    MemberExpr,
    NilLit,
    NumberLit,
    NumericForStmt,
    ParenExpr,
    RepeatStmt,
    ReturnStmt,
    StringCallExpr,
    StringLit,
    TableCallExpr,
    TableConstructor,
    TableKey,
    TableKeyString,
    TableValue,
    UnaryExpr,
    VarargLit,
    WhileStmt,
)
from luafmt.comments import attach_comments
from luafmt.config import FormatOptions
from luafmt.errors import LiteralRoundTripError, UnsupportedNodeError
from luafmt.layout import tabs
from luafmt.lexer import Lexer
from luafmt.literals import long_bracket, normalize_number, normalize_string, parse_number
from luafmt.parser import Parser
from luafmt.precedence import ASSOCIATIVE, PRECEDENCE, RIGHT_ASSOCIATIVE, UNARY_PRECEDENCE, rank
from luafmt.ranges import repair_ranges

logger = logging.getLogger(__name__)

# Prefix expressions that can be indexed or called without parentheses
_BARE_BASES = (
    IdentifierExpr, MemberExpr, IndexExpr,
    CallExpr, StringCallExpr, TableCallExpr, ParenExpr,
)


class LuaFormatter:
    """Format a comment-attached Lua Chunk back to canonical source text."""

    def __init__(self, options: FormatOptions | None = None) -> None:
        self.options = options or FormatOptions()

    # ── Public API ─────────────────────────────────────────────

    def format(self, chunk: Chunk) -> str:
        """Format a chunk. The result has no trailing newline."""
        return self._format(chunk, 0)

    # ── Dispatch ───────────────────────────────────────────────

    def _format(self, node: object, indent: int) -> str:
        match node:
            case Chunk(body=body, shebang=shebang):
                text = self._format_sequence(body, indent)
                if shebang is not None:
                    return f"{shebang}\n{text}" if text else shebang
                return text
            case Comment():
                return self._format_comment(node, indent)

            # Statements
            case LabelStmt(label=label):
                return f"::{label}::"
            case GotoStmt(label=label):
                return f"goto {label}"
            case BreakStmt():
                return "break"
            case ReturnStmt(arguments=arguments):
                if not arguments:
                    return "return"
                return f"return {self._format_list(arguments, indent)}"
            case DoStmt(body=body):
                return f"do{self._format_block(body, indent)}end"
            case AssignStmt(targets=targets, values=values):
                return f"{self._format_list(targets, indent)} = {self._format_list(values, indent)}"
            case LocalStmt(names=names, values=values):
                text = f"local {self._format_list(names, indent)}"
                if values:
                    text += f" = {self._format_list(values, indent)}"
                return text
            case CallStmt(call=call):
                return self._format(call, indent)
            case FunctionDef():
                return self._format_function(node, indent)
            case IfStmt(clauses=clauses):
                return self._format_if(clauses, indent)
            case IfClause() | ElseifClause() | ElseClause():
                return self._format_clause(node, indent, trailing=True)
            case WhileStmt(condition=condition, body=body):
                return f"while {self._format(condition, indent)} do{self._format_block(body, indent)}end"
            case RepeatStmt(body=body, condition=condition):
                return f"repeat{self._format_block(body, indent)}until {self._format(condition, indent)}"
            case NumericForStmt(variable=variable, start=start, stop=stop, step=step, body=body):
                bounds = [start, stop] if step is None else [start, stop, step]
                head = f"for {variable.name} = {self._format_list(bounds, indent)} do"
                return f"{head}{self._format_block(body, indent)}end"
            case GenericForStmt(names=names, iterators=iterators, body=body):
                head = f"for {self._format_list(names, indent)} in {self._format_list(iterators, indent)} do"
                return f"{head}{self._format_block(body, indent)}end"

            # Tables
            case TableConstructor(fields=fields):
                texts = [self._format(f, indent + 1) for f in fields]
                return layout.table(fields, texts, indent, inline=self.options.inline.table)
            case TableKey(key=key, value=value):
                return f"[{self._format(key, indent)}] = {self._format(value, indent)}"
            case TableKeyString(key=key, value=value):
                return f"{key.name} = {self._format(value, indent)}"
            case TableValue(value=value):
                return self._format(value, indent)

            # Prefix expressions
            case IdentifierExpr(name=name):
                return name
            case MemberExpr(base=base, indexer=indexer, member=member):
                return f"{self._format_base(base, indent)}{indexer}{member.name}"
            case IndexExpr(base=base, index=index):
                return f"{self._format_base(base, indent)}[{self._format(index, indent)}]"
            case CallExpr(base=base, args=[StringLit() | TableConstructor() as argument]):
                return self._format_base(base, indent) + self._format(argument, indent)
            case CallExpr(base=base, args=args):
                return f"{self._format_base(base, indent)}({self._format_list(args, indent)})"
            case StringCallExpr(base=base, argument=argument) | TableCallExpr(base=base, argument=argument):
                return self._format_base(base, indent) + self._format(argument, indent)
            case ParenExpr(expr=expr):
                return f"({self._format(expr, indent)})"

            # Operators
            case BinaryExpr() | LogicalExpr():
                return self._format_binary(node, indent)
            case UnaryExpr():
                return self._format_unary(node, indent)

            # Literals
            case NumberLit(raw=raw):
                return self._format_number(raw)
            case StringLit(raw=raw):
                return normalize_string(raw, self.options.string_style)
            case BooleanLit(raw=raw) | NilLit(raw=raw) | VarargLit(raw=raw):
                return raw

        raise UnsupportedNodeError(type(node).__name__)

    # ── Blocks and sequences ───────────────────────────────────

    def _format_sequence(self, items: list, indent: int) -> str:
        breaks = layout.sequence_breaks(items, self.options.extra_newlines)
        parts: list[str] = []
        after_statement = False
        for i, item in enumerate(items):
            text = self._format(item, indent)
            # A leading "(" would continue the previous statement as a call
            if after_statement and text.startswith("("):
                text = ";" + text
            if i > 0:
                parts.append(("\n\n" if breaks[i] else "\n") + tabs(indent))
            parts.append(text)
            if not isinstance(item, Comment):
                after_statement = True
        return "".join(parts)

    def _format_block(self, body: list, indent: int, *, trailing: bool = True) -> str:
        text = self._format_sequence(body, indent + 1)
        return layout.block(body, text, indent, inline=self.options.inline.block, trailing=trailing)

    def _format_function(self, fd: FunctionDef, indent: int) -> str:
        head = "local function" if fd.is_local else "function"
        if fd.name is not None:
            head += " " + self._format(fd.name, indent)
        params = self._format_list(fd.params, indent)
        return f"{head}({params}){self._format_block(fd.body, indent)}end"

    def _format_if(self, clauses: list, indent: int) -> str:
        last = len(clauses) - 1
        parts = [
            self._format_clause(clause, indent, trailing=i == last)
            for i, clause in enumerate(clauses)
        ]
        return ("\n" + tabs(indent)).join(parts) + "end"

    def _format_clause(self, clause: IfClause | ElseifClause | ElseClause, indent: int,
                       *, trailing: bool) -> str:
        match clause:
            case IfClause(condition=condition):
                head = f"if {self._format(condition, indent)} then"
            case ElseifClause(condition=condition):
                head = f"elseif {self._format(condition, indent)} then"
            case _:
                head = "else"
        return head + self._format_block(clause.body, indent, trailing=trailing)

    # ── Expressions ────────────────────────────────────────────

    def _format_list(self, exprs: list, indent: int) -> str:
        return ", ".join(self._format(e, indent) for e in exprs)

    def _format_base(self, base: object, indent: int) -> str:
        text = self._format(base, indent)
        if isinstance(base, _BARE_BASES):
            return text
        return f"({text})"

    def _format_binary(self, expr: BinaryExpr | LogicalExpr, indent: int,
                       chained: bool = False) -> str:
        """Format ``left op right``, flattening chains of an associative operator.

        A chain of three or more operands prints as a left fold with every
        operand but the last grouped: ``(a + b + c) + d``. Inside that group
        (``chained``) equal-rank left operands are not wrapped again.
        """
        op = expr.op
        operands = _flatten(expr) if op in ASSOCIATIVE else [expr.left, expr.right]
        grouped = len(operands) > 2 and not chained

        texts = [self._format_operand(operands[0], op, indent, left=True,
                                      chained=chained or grouped)]
        texts.extend(self._format_operand(o, op, indent, left=False) for o in operands[1:])

        sep = f" {op} "
        if grouped:
            return f"({sep.join(texts[:-1])}){sep}{texts[-1]}"
        return sep.join(texts)

    def _format_operand(self, operand: object, op: str, indent: int, *,
                        left: bool, chained: bool = False) -> str:
        prec = PRECEDENCE[op]
        operand_prec = rank(operand)
        if operand_prec is None or operand_prec > prec:
            return self._format(operand, indent)

        if left:
            if operand_prec == prec and chained and op not in RIGHT_ASSOCIATIVE:
                return self._format_binary(operand, indent, chained=True)
        else:
            if isinstance(operand, UnaryExpr):
                return self._format(operand, indent)
            if operand_prec == prec and op in RIGHT_ASSOCIATIVE:
                return self._format(operand, indent)
        return f"({self._format(operand, indent)})"

    def _format_unary(self, expr: UnaryExpr, indent: int) -> str:
        operand = expr.operand
        text = self._format(operand, indent)
        if isinstance(operand, (BinaryExpr, LogicalExpr)) and rank(operand) < UNARY_PRECEDENCE:
            return f"{expr.op}({text})"
        if expr.op == "not" or isinstance(operand, UnaryExpr):
            return f"{expr.op} {text}"
        return f"{expr.op}{text}"

    # ── Literals and comments ──────────────────────────────────

    def _format_number(self, raw: str) -> str:
        normalized = normalize_number(raw)
        if parse_number(normalized) != parse_number(raw):
            raise LiteralRoundTripError(raw, normalized)
        return normalized

    def _format_comment(self, comment: Comment, indent: int) -> str:
        content = comment.value.strip()
        if not comment.raw.startswith("--[") or "\n" not in content:
            return f"-- {content}" if content else "--"

        # Multi-line block comment: re-indent every line one level deeper
        inner = tabs(indent + 1)
        body = inner + re.sub(r"\s*\n\s*", "\n" + inner, content) + "\n" + tabs(indent)
        return "--" + long_bracket(body)


def _flatten(expr: BinaryExpr | LogicalExpr) -> list:
    """Operands of a chain of ``expr.op``, left to right.

    Right-nested operands are pulled into the chain too, so ``a + (b + c)``
    prints as ``(a + b) + c``. That assumes ``+`` and ``*`` associate, which
    float rounding and ``__add``/``__mul`` metamethods do not guarantee; the
    canonical grouping is kept anyway.
    """
    operands = []
    for side in (expr.left, expr.right):
        if type(side) is type(expr) and side.op == expr.op:
            operands.extend(_flatten(side))
        else:
            operands.append(side)
    return operands


def parse_source(source: str, filename: str = "<stdin>") -> Chunk:
    """Lex and parse ``source``, then repair spans and reattach comments."""
    lexer = Lexer(source, filename)
    tokens = lexer.lex()
    logger.debug("%s: %d token(s), %d comment(s)", filename, len(tokens), len(lexer.comments))
    chunk = Parser(tokens, filename).parse()
    if lexer.shebang is not None:
        chunk = replace(chunk, shebang=lexer.shebang)
    return attach_comments(repair_ranges(chunk), lexer.comments)


def format_source(source: str, options: FormatOptions | None = None,
                  filename: str = "<stdin>") -> str:
    """Format Lua ``source`` text. The result has no trailing newline."""
    chunk = parse_source(source, filename)
    return LuaFormatter(options).format(chunk)

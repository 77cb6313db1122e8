"""Parser for Lua 5.2 source.

Transforms a token stream into an AST using a Pratt expression parser
for operators and recursive descent for statements. Every node carries a
span; clause nodes of an ``if`` statement only span their header
(``if cond then``, ``elseif cond then``, ``else``) and are widened later
by ``luafmt.ranges.repair_ranges``.
"""

from __future__ import annotations

from luafmt.ast_nodes import (
    AssignStmt,
    BinaryExpr,
    BooleanLit,
    BreakStmt,
    CallExpr,
    CallStmt,
    Chunk,
    Clause,
    DoStmt,
    ElseClause,
    ElseifClause,
    Expr,
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
    Stmt,
    StringCallExpr,
    StringLit,
    TableCallExpr,
    TableConstructor,
    TableField,
    TableKey,
    TableKeyString,
    TableValue,
    UnaryExpr,
    VarargLit,
    WhileStmt,
)
from luafmt.errors import Diagnostic, DiagnosticLabel, MalformedInputError, Severity
from luafmt.source import Span
from luafmt.tokens import BLOCK_END, Token, TokenKind

# ── Binding powers for Pratt parser ─────────────────────────────

# (left_bp, right_bp) for infix operators; right_bp < left_bp is right associative
_INFIX_BP: dict[TokenKind, tuple[int, int]] = {
    TokenKind.OR: (1, 2),
    TokenKind.AND: (3, 4),
    TokenKind.LESS: (5, 6),
    TokenKind.GREATER: (5, 6),
    TokenKind.LESS_EQUAL: (5, 6),
    TokenKind.GREATER_EQUAL: (5, 6),
    TokenKind.NOT_EQUAL: (5, 6),
    TokenKind.EQUAL: (5, 6),
    TokenKind.CONCAT: (9, 8),
    TokenKind.PLUS: (11, 12),
    TokenKind.MINUS: (11, 12),
    TokenKind.STAR: (13, 14),
    TokenKind.SLASH: (13, 14),
    TokenKind.PERCENT: (13, 14),
    TokenKind.CARET: (18, 17),
}

_PREFIX_BP = 15  # right bp for unary not, - and #

_UNARY_OPS = frozenset({TokenKind.NOT, TokenKind.MINUS, TokenKind.HASH})

_LOGICAL_OPS = frozenset({TokenKind.AND, TokenKind.OR})

# Parentheses around these change the result (truncation to one value)
_MULTI_VALUE = (CallExpr, StringCallExpr, TableCallExpr, VarargLit)


class Parser:
    """Parses a list of tokens into a Lua AST."""

    def __init__(self, tokens: list[Token], filename: str = "<stdin>") -> None:
        self.tokens = tokens
        self.pos = 0
        self.filename = filename
        self.diagnostics: list[Diagnostic] = []

    # ── Token access ─────────────────────────────────────────────

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _previous(self) -> Token:
        return self.tokens[self.pos - 1] if self.pos > 0 else self.tokens[0]

    def _at(self, kind: TokenKind) -> bool:
        return self._current().kind == kind

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _accept(self, kind: TokenKind) -> Token | None:
        if self._at(kind):
            return self._advance()
        return None

    def _expect(self, kind: TokenKind, what: str | None = None) -> Token:
        if self._current().kind == kind:
            return self._advance()
        tok = self._current()
        expected = what or kind.name
        near = tok.value or "<eof>"
        self._error(f"expected {expected} near {near!r}", tok.span)
        raise _ParseError

    def _error(self, message: str, span: Span) -> None:
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code="E200",
                message=message,
                labels=[DiagnosticLabel(span=span, message="")],
            )
        )

    def _span(self, start: Span, end: Span) -> Span:
        """Build a Span from a start span to an end span."""
        return Span(
            self.filename,
            start.start, end.end,
            start.start_line, start.start_col,
            end.end_line, end.end_col,
        )

    def _span_from(self, start: Span) -> Span:
        """Span from ``start`` through the last consumed token."""
        return self._span(start, self._previous().span)

    # ── Top-level parsing ────────────────────────────────────────

    def parse(self) -> Chunk:
        """Parse the entire token stream into a Chunk.

        Lua gives no useful recovery point inside a block, so the first
        syntax error aborts the parse.
        """
        try:
            body = self._parse_block()
            if not self._at(TokenKind.EOF):
                tok = self._current()
                self._error(f"'<eof>' expected near {tok.value!r}", tok.span)
        except _ParseError:
            pass
        except RecursionError:
            self._error("chunk has too many syntax levels", self._current().span)

        if self.diagnostics:
            raise MalformedInputError(self.diagnostics)
        end = self._current().span
        span = Span(self.filename, 0, end.end, 1, 1, end.end_line, end.end_col)
        return Chunk(body=body, span=span)

    def _parse_block(self) -> list[Stmt]:
        body: list[Stmt] = []
        while self._current().kind not in BLOCK_END:
            if self._accept(TokenKind.SEMICOLON):
                continue
            if self._at(TokenKind.RETURN):
                body.append(self._parse_return())
                break
            body.append(self._parse_statement())
        return body

    # ── Statements ───────────────────────────────────────────────

    def _parse_statement(self) -> Stmt:
        tok = self._current()
        match tok.kind:
            case TokenKind.DOUBLE_COLON:
                return self._parse_label()
            case TokenKind.BREAK:
                self._advance()
                return BreakStmt(tok.span)
            case TokenKind.GOTO:
                self._advance()
                label = self._expect(TokenKind.NAME, "<name>")
                return GotoStmt(label.value, self._span_from(tok.span))
            case TokenKind.DO:
                self._advance()
                body = self._parse_block()
                self._expect_end(tok)
                return DoStmt(body, self._span_from(tok.span))
            case TokenKind.WHILE:
                return self._parse_while()
            case TokenKind.REPEAT:
                return self._parse_repeat()
            case TokenKind.IF:
                return self._parse_if()
            case TokenKind.FOR:
                return self._parse_for()
            case TokenKind.FUNCTION:
                return self._parse_function_stmt()
            case TokenKind.LOCAL:
                return self._parse_local()
        return self._parse_expression_statement()

    def _expect_end(self, opener: Token) -> None:
        what = "'end'"
        if opener.span.start_line != self._current().span.start_line:
            what = f"'end' (to close {opener.value!r} at line {opener.span.start_line})"
        self._expect(TokenKind.END, what)

    def _parse_label(self) -> LabelStmt:
        start = self._advance().span
        name = self._expect(TokenKind.NAME, "<name>")
        self._expect(TokenKind.DOUBLE_COLON, "'::'")
        return LabelStmt(name.value, self._span_from(start))

    def _parse_return(self) -> ReturnStmt:
        start = self._advance().span
        arguments: list[Expr] = []
        if self._current().kind not in BLOCK_END and not self._at(TokenKind.SEMICOLON):
            arguments = self._parse_expression_list()
        self._accept(TokenKind.SEMICOLON)
        if self._current().kind not in BLOCK_END:
            tok = self._current()
            self._error(f"'<eof>' expected near {tok.value!r}", tok.span)
            raise _ParseError
        return ReturnStmt(arguments, self._span_from(start))

    def _parse_while(self) -> WhileStmt:
        opener = self._advance()
        condition = self._parse_expression(0)
        self._expect(TokenKind.DO, "'do'")
        body = self._parse_block()
        self._expect_end(opener)
        return WhileStmt(condition, body, self._span_from(opener.span))

    def _parse_repeat(self) -> RepeatStmt:
        opener = self._advance()
        body = self._parse_block()
        self._expect(TokenKind.UNTIL, "'until'")
        condition = self._parse_expression(0)
        return RepeatStmt(body, condition, self._span_from(opener.span))

    def _parse_if(self) -> IfStmt:
        opener = self._current()
        clauses: list[Clause] = []

        start = self._advance().span
        condition = self._parse_expression(0)
        self._expect(TokenKind.THEN, "'then'")
        header = self._span_from(start)
        clauses.append(IfClause(condition, self._parse_block(), header))

        while self._at(TokenKind.ELSEIF):
            start = self._advance().span
            condition = self._parse_expression(0)
            self._expect(TokenKind.THEN, "'then'")
            header = self._span_from(start)
            clauses.append(ElseifClause(condition, self._parse_block(), header))

        if self._at(TokenKind.ELSE):
            header = self._advance().span
            clauses.append(ElseClause(self._parse_block(), header))

        self._expect_end(opener)
        return IfStmt(clauses, self._span_from(opener.span))

    def _parse_for(self) -> NumericForStmt | GenericForStmt:
        opener = self._advance()
        first = self._parse_identifier()

        if self._accept(TokenKind.ASSIGN):
            start = self._parse_expression(0)
            self._expect(TokenKind.COMMA, "','")
            stop = self._parse_expression(0)
            step = None
            if self._accept(TokenKind.COMMA):
                step = self._parse_expression(0)
            self._expect(TokenKind.DO, "'do'")
            body = self._parse_block()
            self._expect_end(opener)
            return NumericForStmt(first, start, stop, step, body,
                                  self._span_from(opener.span))

        names = [first]
        while self._accept(TokenKind.COMMA):
            names.append(self._parse_identifier())
        self._expect(TokenKind.IN, "'=' or 'in'")
        iterators = self._parse_expression_list()
        self._expect(TokenKind.DO, "'do'")
        body = self._parse_block()
        self._expect_end(opener)
        return GenericForStmt(names, iterators, body, self._span_from(opener.span))

    def _parse_function_stmt(self) -> FunctionDef:
        opener = self._advance()
        name: IdentifierExpr | MemberExpr = self._parse_identifier()
        while self._at(TokenKind.DOT) or self._at(TokenKind.COLON):
            indexer = self._advance().value
            member = self._parse_identifier()
            name = MemberExpr(name, indexer, member, self._span(name.span, member.span))
            if indexer == ":":
                break
        return self._parse_function_body(opener, name, is_local=False)

    def _parse_local(self) -> FunctionDef | LocalStmt:
        opener = self._advance()
        if self._at(TokenKind.FUNCTION):
            self._advance()
            name = self._parse_identifier()
            return self._parse_function_body(opener, name, is_local=True)

        names = [self._parse_identifier()]
        while self._accept(TokenKind.COMMA):
            names.append(self._parse_identifier())
        values: list[Expr] = []
        if self._accept(TokenKind.ASSIGN):
            values = self._parse_expression_list()
        return LocalStmt(names, values, self._span_from(opener.span))

    def _parse_expression_statement(self) -> AssignStmt | CallStmt:
        start = self._current()
        expr = self._parse_suffixed_expression()

        if self._at(TokenKind.ASSIGN) or self._at(TokenKind.COMMA):
            targets = [expr]
            while self._accept(TokenKind.COMMA):
                targets.append(self._parse_suffixed_expression())
            for target in targets:
                if not isinstance(target, (IdentifierExpr, IndexExpr)) and not (
                        isinstance(target, MemberExpr) and target.indexer == "."):
                    self._error("syntax error: cannot assign to this expression", target.span)
                    raise _ParseError
            self._expect(TokenKind.ASSIGN, "'='")
            values = self._parse_expression_list()
            return AssignStmt(targets, values, self._span_from(start.span))

        if isinstance(expr, (CallExpr, StringCallExpr, TableCallExpr)):
            return CallStmt(expr, expr.span)

        tok = self._current()
        self._error(f"syntax error near {tok.value or '<eof>'!r}", start.span)
        raise _ParseError

    # ── Functions ────────────────────────────────────────────────

    def _parse_function_body(self, opener: Token, name: IdentifierExpr | MemberExpr | None,
                             *, is_local: bool) -> FunctionDef:
        self._expect(TokenKind.LPAREN, "'('")
        params: list[IdentifierExpr | VarargLit] = []
        if not self._at(TokenKind.RPAREN):
            while True:
                if self._at(TokenKind.ELLIPSIS):
                    tok = self._advance()
                    params.append(VarargLit(tok.value, tok.span))
                    break
                params.append(self._parse_identifier())
                if not self._accept(TokenKind.COMMA):
                    break
        self._expect(TokenKind.RPAREN, "')'")
        body = self._parse_block()
        self._expect_end(opener)
        return FunctionDef(name, is_local, params, body, self._span_from(opener.span))

    # ── Pratt expression parser ──────────────────────────────────

    def _parse_expression_list(self) -> list[Expr]:
        exprs = [self._parse_expression(0)]
        while self._accept(TokenKind.COMMA):
            exprs.append(self._parse_expression(0))
        return exprs

    def _parse_expression(self, min_bp: int) -> Expr:
        """Parse an expression using Pratt parsing with binding powers."""
        tok = self._current()
        if tok.kind in _UNARY_OPS:
            self._advance()
            operand = self._parse_expression(_PREFIX_BP)
            left: Expr = UnaryExpr(tok.value, operand, self._span(tok.span, operand.span))
        else:
            left = self._parse_simple_expression()

        while True:
            tok = self._current()
            if tok.kind not in _INFIX_BP:
                break
            left_bp, right_bp = _INFIX_BP[tok.kind]
            if left_bp < min_bp:
                break
            self._advance()
            right = self._parse_expression(right_bp)
            span = self._span(left.span, right.span)
            if tok.kind in _LOGICAL_OPS:
                left = LogicalExpr(tok.value, left, right, span)
            else:
                left = BinaryExpr(tok.value, left, right, span)

        return left

    def _parse_simple_expression(self) -> Expr:
        tok = self._current()
        match tok.kind:
            case TokenKind.NUMBER:
                self._advance()
                return NumberLit(tok.value, tok.span)
            case TokenKind.STRING:
                self._advance()
                return StringLit(tok.value, tok.span)
            case TokenKind.TRUE | TokenKind.FALSE:
                self._advance()
                return BooleanLit(tok.value, tok.span)
            case TokenKind.NIL:
                self._advance()
                return NilLit(tok.value, tok.span)
            case TokenKind.ELLIPSIS:
                self._advance()
                return VarargLit(tok.value, tok.span)
            case TokenKind.LBRACE:
                return self._parse_table()
            case TokenKind.FUNCTION:
                opener = self._advance()
                return self._parse_function_body(opener, None, is_local=False)
        return self._parse_suffixed_expression()

    def _parse_primary_expression(self) -> Expr:
        tok = self._current()
        if tok.kind == TokenKind.NAME:
            return self._parse_identifier()
        if tok.kind == TokenKind.LPAREN:
            self._advance()
            expr = self._parse_expression(0)
            self._expect(TokenKind.RPAREN, "')'")
            if isinstance(expr, _MULTI_VALUE):
                return ParenExpr(expr, self._span_from(tok.span))
            return expr
        self._error(f"unexpected symbol near {tok.value or '<eof>'!r}", tok.span)
        raise _ParseError

    def _parse_suffixed_expression(self) -> Expr:
        expr = self._parse_primary_expression()
        while True:
            tok = self._current()
            match tok.kind:
                case TokenKind.DOT:
                    self._advance()
                    member = self._parse_identifier()
                    expr = MemberExpr(expr, ".", member, self._span(expr.span, member.span))
                case TokenKind.LBRACKET:
                    self._advance()
                    index = self._parse_expression(0)
                    self._expect(TokenKind.RBRACKET, "']'")
                    expr = IndexExpr(expr, index, self._span_from(expr.span))
                case TokenKind.COLON:
                    self._advance()
                    member = self._parse_identifier()
                    method = MemberExpr(expr, ":", member, self._span(expr.span, member.span))
                    expr = self._parse_call_arguments(method)
                case TokenKind.LPAREN | TokenKind.STRING | TokenKind.LBRACE:
                    expr = self._parse_call_arguments(expr)
                case _:
                    return expr

    def _parse_call_arguments(self, base: Expr) -> Expr:
        tok = self._current()
        if tok.kind == TokenKind.STRING:
            self._advance()
            argument = StringLit(tok.value, tok.span)
            return StringCallExpr(base, argument, self._span(base.span, tok.span))
        if tok.kind == TokenKind.LBRACE:
            table = self._parse_table()
            return TableCallExpr(base, table, self._span(base.span, table.span))

        self._expect(TokenKind.LPAREN, "function arguments")
        args: list[Expr] = []
        if not self._at(TokenKind.RPAREN):
            args = self._parse_expression_list()
        self._expect(TokenKind.RPAREN, "')'")
        return CallExpr(base, args, self._span_from(base.span))

    # ── Tables ───────────────────────────────────────────────────

    def _parse_table(self) -> TableConstructor:
        start = self._expect(TokenKind.LBRACE, "'{'").span
        fields: list[TableField] = []
        while not self._at(TokenKind.RBRACE):
            fields.append(self._parse_field())
            if not (self._accept(TokenKind.COMMA) or self._accept(TokenKind.SEMICOLON)):
                break
        self._expect(TokenKind.RBRACE, "'}'")
        return TableConstructor(fields, self._span_from(start))

    def _parse_field(self) -> TableField:
        tok = self._current()
        if tok.kind == TokenKind.LBRACKET:
            self._advance()
            key = self._parse_expression(0)
            self._expect(TokenKind.RBRACKET, "']'")
            self._expect(TokenKind.ASSIGN, "'='")
            value = self._parse_expression(0)
            return TableKey(key, value, self._span(tok.span, value.span))

        if tok.kind == TokenKind.NAME and self.tokens[self.pos + 1].kind == TokenKind.ASSIGN:
            key = self._parse_identifier()
            self._advance()  # '='
            value = self._parse_expression(0)
            return TableKeyString(key, value, self._span(tok.span, value.span))

        value = self._parse_expression(0)
        return TableValue(value, value.span)

    # ── Names ────────────────────────────────────────────────────

    def _parse_identifier(self) -> IdentifierExpr:
        tok = self._expect(TokenKind.NAME, "<name>")
        return IdentifierExpr(tok.value, tok.span)


class _ParseError(Exception):
    """Internal exception that unwinds to ``Parser.parse``."""

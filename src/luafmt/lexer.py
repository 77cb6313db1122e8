"""Lexer for Lua source.

Produces a stream of tokens from source text. Comments do not become
tokens; they are collected in document order on ``Lexer.comments`` so the
formatter can reattach them to the tree later.
"""

from __future__ import annotations

from luafmt.ast_nodes import Comment
from luafmt.errors import Diagnostic, DiagnosticLabel, MalformedInputError, Severity
from luafmt.literals import skip_first_newline
from luafmt.source import Span
from luafmt.tokens import KEYWORDS, OPERATORS, Token, TokenKind

_WHITESPACE = frozenset(" \t\r\n\f\v")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_SIMPLE_ESCAPES = frozenset("abfnrtv\\\"'")


def _is_name_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == '_')


def _is_name_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == '_')


class Lexer:
    """Tokenizes Lua source code."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: list[Token] = []
        self.comments: list[Comment] = []
        self.shebang: str | None = None
        self.diagnostics: list[Diagnostic] = []

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list."""
        if self.source.startswith('#'):
            self._skip_shebang()
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in _WHITESPACE:
                self._advance()
            elif ch == '-' and self._peek(1) == '-':
                self._lex_comment()
            elif ch == '"' or ch == "'":
                self._lex_string()
            elif ch == '[' and self._long_bracket_level() is not None:
                self._lex_long_string()
            elif ch.isdigit() or (ch == '.' and self._peek(1).isdigit()):
                self._lex_number()
            elif _is_name_start(ch):
                self._lex_name()
            else:
                self._lex_operator_or_punct()

        self._emit(TokenKind.EOF, "", self.pos, self.line, self.col)

        if self.diagnostics:
            raise MalformedInputError(self.diagnostics)
        return self.tokens

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _make_span(self, start: int, start_line: int, start_col: int) -> Span:
        end_col = self.col - 1 if self.col > 1 else 1
        return Span(self.filename, start, self.pos, start_line, start_col, self.line, end_col)

    def _emit(self, kind: TokenKind, value: str, start: int, start_line: int, start_col: int) -> Token:
        tok = Token(kind, value, self._make_span(start, start_line, start_col))
        self.tokens.append(tok)
        return tok

    def _error(self, message: str, line: int, col: int, code: str = "E100") -> None:
        span = Span(self.filename, self.pos, self.pos, line, col, line, col)
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=code,
                message=message,
                labels=[DiagnosticLabel(span=span, message="")],
            )
        )

    def _skip_shebang(self) -> None:
        start = self.pos
        while self.pos < len(self.source) and self.source[self.pos] != '\n':
            self._advance()
        self.shebang = self.source[start:self.pos].rstrip('\r')

    # ── Long brackets ────────────────────────────────────────────

    def _long_bracket_level(self, offset: int = 0) -> int | None:
        """Level of a ``[==[`` opener at pos+offset, or None if there is none."""
        i = self.pos + offset
        if i >= len(self.source) or self.source[i] != '[':
            return None
        i += 1
        level = 0
        while i < len(self.source) and self.source[i] == '=':
            level += 1
            i += 1
        if i < len(self.source) and self.source[i] == '[':
            return level
        return None

    def _read_long_bracket(self, level: int, start_line: int, start_col: int) -> str | None:
        """Consume a long bracket of ``level`` and return its inner text."""
        for _ in range(level + 2):
            self._advance()
        closing = ']' + '=' * level + ']'
        end = self.source.find(closing, self.pos)
        if end == -1:
            self._error("unfinished long string or comment", start_line, start_col, "E101")
            while self.pos < len(self.source):
                self._advance()
            return None
        inner = self.source[self.pos:end]
        while self.pos < end + len(closing):
            self._advance()
        return inner

    # ── Comments ─────────────────────────────────────────────────

    def _lex_comment(self) -> None:
        start = self.pos
        start_line = self.line
        start_col = self.col
        self._advance()
        self._advance()

        level = self._long_bracket_level()
        if level is not None:
            inner = self._read_long_bracket(level, start_line, start_col)
            if inner is None:
                return
            value = skip_first_newline(inner)
        else:
            while self.pos < len(self.source) and self.source[self.pos] not in '\r\n':
                self._advance()
            value = self.source[start + 2:self.pos]

        raw = self.source[start:self.pos]
        self.comments.append(Comment(value, raw, self._make_span(start, start_line, start_col)))

    # ── Strings ──────────────────────────────────────────────────

    def _lex_long_string(self) -> None:
        start = self.pos
        start_line = self.line
        start_col = self.col
        level = self._long_bracket_level()
        if self._read_long_bracket(level, start_line, start_col) is None:
            return
        self._emit(TokenKind.STRING, self.source[start:self.pos], start, start_line, start_col)

    def _lex_string(self) -> None:
        start = self.pos
        start_line = self.line
        start_col = self.col
        quote = self._advance()

        while self.pos < len(self.source) and self.source[self.pos] != quote:
            ch = self.source[self.pos]
            if ch in '\r\n':
                break
            if ch == '\\':
                self._lex_escape_sequence()
            else:
                self._advance()

        if self.pos >= len(self.source) or self.source[self.pos] != quote:
            self._error("unfinished string", start_line, start_col, "E102")
            return

        self._advance()  # closing quote
        self._emit(TokenKind.STRING, self.source[start:self.pos], start, start_line, start_col)

    def _lex_escape_sequence(self) -> None:
        line = self.line
        col = self.col
        self._advance()  # backslash
        if self.pos >= len(self.source):
            self._error("unfinished string", line, col, "E102")
            return
        ch = self.source[self.pos]

        if ch in _SIMPLE_ESCAPES:
            self._advance()
        elif ch == '\n' or ch == '\r':
            self._advance()
            nxt = self._peek()
            if nxt in '\r\n' and nxt != ch:
                self._advance()
        elif ch == 'x':
            self._advance()
            for _ in range(2):
                if self._peek() not in _HEX_DIGITS:
                    self._error("hexadecimal digit expected", line, col, "E103")
                    return
                self._advance()
        elif ch == 'z':
            self._advance()
            while self.pos < len(self.source) and self.source[self.pos] in _WHITESPACE:
                self._advance()
        elif ch.isdigit():
            digits = []
            while len(digits) < 3 and self._peek().isdigit():
                digits.append(self._advance())
            if int(''.join(digits)) > 255:
                self._error("decimal escape too large", line, col, "E103")
        elif ch == 'u' and self._peek(1) == '{':
            self._advance()
            self._advance()
            digits = []
            while self._peek() in _HEX_DIGITS:
                digits.append(self._advance())
            if not digits or self._peek() != '}':
                self._error("malformed unicode escape", line, col, "E103")
                return
            self._advance()
        else:
            self._error(f"invalid escape sequence: \\{ch}", line, col, "E103")
            self._advance()

    # ── Numbers ──────────────────────────────────────────────────

    def _lex_number(self) -> None:
        start = self.pos
        start_line = self.line
        start_col = self.col

        if self.source[self.pos] == '0' and self._peek(1) in ('x', 'X'):
            self._advance()
            self._advance()
            digits = self._consume_while(_HEX_DIGITS)
            if self._peek() == '.':
                self._advance()
                digits += self._consume_while(_HEX_DIGITS)
            valid = digits > 0
            if self._peek() in ('p', 'P'):
                valid = self._lex_exponent() and valid
        else:
            digits = self._consume_while(frozenset("0123456789"))
            if self._peek() == '.':
                self._advance()
                digits += self._consume_while(frozenset("0123456789"))
            valid = digits > 0
            if self._peek() in ('e', 'E'):
                valid = self._lex_exponent() and valid

        # Lua reads "3x" or "0x1g" as one malformed numeral
        while self.pos < len(self.source) and (_is_name_char(self._peek()) or self._peek() == '.'):
            self._advance()
            valid = False

        text = self.source[start:self.pos]
        if not valid:
            self._error(f"malformed number near {text!r}", start_line, start_col, "E104")
            return
        self._emit(TokenKind.NUMBER, text, start, start_line, start_col)

    def _consume_while(self, chars: frozenset[str]) -> int:
        count = 0
        while self.pos < len(self.source) and self.source[self.pos] in chars:
            self._advance()
            count += 1
        return count

    def _lex_exponent(self) -> bool:
        self._advance()  # e / p
        if self._peek() in ('+', '-'):
            self._advance()
        return self._consume_while(frozenset("0123456789")) > 0

    # ── Names and keywords ───────────────────────────────────────

    def _lex_name(self) -> None:
        start = self.pos
        start_line = self.line
        start_col = self.col
        while self.pos < len(self.source) and _is_name_char(self.source[self.pos]):
            self._advance()
        word = self.source[start:self.pos]
        kind = KEYWORDS.get(word, TokenKind.NAME)
        self._emit(kind, word, start, start_line, start_col)

    # ── Operators and punctuation ────────────────────────────────

    def _lex_operator_or_punct(self) -> None:
        start = self.pos
        start_line = self.line
        start_col = self.col
        for text, kind in OPERATORS:
            if self.source.startswith(text, self.pos):
                for _ in text:
                    self._advance()
                self._emit(kind, text, start, start_line, start_col)
                return
        ch = self._advance()
        self._error(f"unexpected character: {ch!r}", start_line, start_col)


"""Token kinds and token representation for the Lua lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from luafmt.source import Span


class TokenKind(Enum):
    # Keywords
    AND = auto()
    BREAK = auto()
    DO = auto()
    ELSE = auto()
    ELSEIF = auto()
    END = auto()
    FALSE = auto()
    FOR = auto()
    FUNCTION = auto()
    GOTO = auto()
    IF = auto()
    IN = auto()
    LOCAL = auto()
    NIL = auto()
    NOT = auto()
    OR = auto()
    REPEAT = auto()
    RETURN = auto()
    THEN = auto()
    TRUE = auto()
    UNTIL = auto()
    WHILE = auto()

    # Literals
    NUMBER = auto()
    STRING = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    CARET = auto()
    HASH = auto()
    EQUAL = auto()
    NOT_EQUAL = auto()
    LESS = auto()
    GREATER = auto()
    LESS_EQUAL = auto()
    GREATER_EQUAL = auto()
    ASSIGN = auto()
    CONCAT = auto()
    ELLIPSIS = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    DOUBLE_COLON = auto()
    SEMICOLON = auto()
    COLON = auto()
    COMMA = auto()
    DOT = auto()

    # Identifiers
    NAME = auto()

    # Special
    EOF = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    span: Span


KEYWORDS: dict[str, TokenKind] = {
    "and": TokenKind.AND,
    "break": TokenKind.BREAK,
    "do": TokenKind.DO,
    "else": TokenKind.ELSE,
    "elseif": TokenKind.ELSEIF,
    "end": TokenKind.END,
    "false": TokenKind.FALSE,
    "for": TokenKind.FOR,
    "function": TokenKind.FUNCTION,
    "goto": TokenKind.GOTO,
    "if": TokenKind.IF,
    "in": TokenKind.IN,
    "local": TokenKind.LOCAL,
    "nil": TokenKind.NIL,
    "not": TokenKind.NOT,
    "or": TokenKind.OR,
    "repeat": TokenKind.REPEAT,
    "return": TokenKind.RETURN,
    "then": TokenKind.THEN,
    "true": TokenKind.TRUE,
    "until": TokenKind.UNTIL,
    "while": TokenKind.WHILE,
}

# Longest first: the lexer tries these in order.
OPERATORS: tuple[tuple[str, TokenKind], ...] = (
    ("...", TokenKind.ELLIPSIS),
    ("..", TokenKind.CONCAT),
    ("==", TokenKind.EQUAL),
    ("~=", TokenKind.NOT_EQUAL),
    ("<=", TokenKind.LESS_EQUAL),
    (">=", TokenKind.GREATER_EQUAL),
    ("::", TokenKind.DOUBLE_COLON),
    ("+", TokenKind.PLUS),
    ("-", TokenKind.MINUS),
    ("*", TokenKind.STAR),
    ("/", TokenKind.SLASH),
    ("%", TokenKind.PERCENT),
    ("^", TokenKind.CARET),
    ("#", TokenKind.HASH),
    ("<", TokenKind.LESS),
    (">", TokenKind.GREATER),
    ("=", TokenKind.ASSIGN),
    ("(", TokenKind.LPAREN),
    (")", TokenKind.RPAREN),
    ("{", TokenKind.LBRACE),
    ("}", TokenKind.RBRACE),
    ("[", TokenKind.LBRACKET),
    ("]", TokenKind.RBRACKET),
    (";", TokenKind.SEMICOLON),
    (":", TokenKind.COLON),
    (",", TokenKind.COMMA),
    (".", TokenKind.DOT),
)

# Tokens that close a block; a statement list stops at any of these.
BLOCK_END: frozenset[TokenKind] = frozenset({
    TokenKind.EOF,
    TokenKind.END,
    TokenKind.ELSE,
    TokenKind.ELSEIF,
    TokenKind.UNTIL,
})

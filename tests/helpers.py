"""Shared test helpers for the luafmt test suite."""

from __future__ import annotations

from luafmt.ast_nodes import Chunk
from luafmt.config import FormatOptions, InlineOptions
from luafmt.formatter import format_source
from luafmt.lexer import Lexer
from luafmt.parser import Parser


def parse(source: str) -> Chunk:
    """Lex and parse source without comment reattachment."""
    tokens = Lexer(source, "<test>").lex()
    return Parser(tokens, "<test>").parse()


def options(*, extra_newlines: bool = True, block: bool = True, table: bool = True,
            string_style: str = "auto") -> FormatOptions:
    return FormatOptions(
        extra_newlines=extra_newlines,
        inline=InlineOptions(block=block, table=table),
        string_style=string_style,
    )


def fmt(source: str, **kwargs) -> str:
    """Format source with default options, or the given overrides."""
    return format_source(source, options(**kwargs), "<test>")


def assert_stable(source: str, **kwargs) -> str:
    """Format twice, asserting the second pass changes nothing."""
    once = fmt(source, **kwargs)
    twice = fmt(once, **kwargs)
    assert twice == once, f"not idempotent:\n{once!r}\n{twice!r}"
    return once

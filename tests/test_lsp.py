"""Tests for the luafmt LSP server."""

from __future__ import annotations

from lsprotocol import types as lsp

from luafmt.config import FormatOptions, InlineOptions
from luafmt.errors import Diagnostic, DiagnosticLabel, Severity
from luafmt.lsp import (
    _SEVERITY_MAP,
    DocumentState,
    _analyze,
    _full_range,
    _parse_diag,
    _state,
    format_document,
    span_to_range,
)
from luafmt.source import Span

URI = "file:///tmp/luafmt-test/main.lua"


class TestSpanConversion:
    def test_span_to_range_basic(self):
        span = Span("test.lua", 0, 5, 1, 1, 1, 5)
        r = span_to_range(span)
        assert r.start.line == 0
        assert r.start.character == 0
        assert r.end.line == 0
        assert r.end.character == 5

    def test_span_to_range_multiline(self):
        span = Span("test.lua", 0, 0, 5, 3, 7, 10)
        r = span_to_range(span)
        assert (r.start.line, r.start.character) == (4, 2)
        assert (r.end.line, r.end.character) == (6, 10)


class TestSeverityMap:
    def test_error_maps(self):
        assert _SEVERITY_MAP[Severity.ERROR] == lsp.DiagnosticSeverity.Error


class TestParseDiag:
    def test_converts(self):
        span = Span("test.lua", 4, 5, 2, 3, 2, 3)
        diag = Diagnostic(Severity.ERROR, "E200", "unexpected symbol",
                          [DiagnosticLabel(span, "")])
        result = _parse_diag(diag)
        assert result.code == "E200"
        assert result.source == "luafmt"
        assert result.message == "[E200] unexpected symbol"
        assert result.range.start == lsp.Position(line=1, character=2)

    def test_without_labels(self):
        result = _parse_diag(Diagnostic(Severity.ERROR, "E100", "oops"))
        assert result.range.start == lsp.Position(line=0, character=0)


class TestFullRange:
    def test_trailing_newline(self):
        r = _full_range("a\nbc\n")
        assert r.end == lsp.Position(line=2, character=0)

    def test_no_trailing_newline(self):
        r = _full_range("a\nbc")
        assert r.end == lsp.Position(line=1, character=2)

    def test_astral_characters_count_as_two_units(self):
        r = _full_range("x = 1\n-- \U0001F600")
        assert r.end == lsp.Position(line=1, character=5)


class TestAnalyze:
    def test_valid_source_cached(self):
        ds = _analyze(URI, "x=1\n", FormatOptions())
        assert ds.chunk is not None
        assert ds.diagnostics == []
        assert _state[URI] is ds

    def test_syntax_error_diagnostics(self):
        ds = _analyze(URI, "if then\n", FormatOptions())
        assert ds.chunk is None
        assert len(ds.diagnostics) == 1
        assert ds.diagnostics[0].code == "E200"
        assert ds.diagnostics[0].severity == lsp.DiagnosticSeverity.Error


class TestFormatDocument:
    def test_whole_document_edit(self):
        ds = _analyze(URI, "x=1\n", FormatOptions())
        edits = format_document(ds)
        assert len(edits) == 1
        assert edits[0].new_text == "x = 1\n"
        assert edits[0].range.start == lsp.Position(line=0, character=0)
        assert edits[0].range.end == lsp.Position(line=1, character=0)

    def test_already_formatted(self):
        ds = _analyze(URI, "x = 1\n", FormatOptions())
        assert format_document(ds) is None

    def test_declines_on_syntax_error(self):
        ds = _analyze(URI, "x = = 1\n", FormatOptions())
        assert format_document(ds) is None

    def test_uses_document_options(self):
        options = FormatOptions(inline=InlineOptions(block=False))
        ds = _analyze(URI, "do x() end\n", options)
        edits = format_document(ds)
        assert edits[0].new_text == "do\n\tx()\nend\n"

    def test_empty_state(self):
        assert format_document(DocumentState()) is None

"""luafmt Language Server: pygls-based LSP for .lua files.

Provides parse diagnostics and whole-document formatting via stdio
transport.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer
from pygls.uris import to_fs_path

from luafmt import __version__
from luafmt.ast_nodes import Chunk
from luafmt.config import FormatOptions, options_for
from luafmt.errors import LuaFmtError, MalformedInputError, Severity
from luafmt.formatter import LuaFormatter, parse_source

logger = logging.getLogger(__name__)

# ── Conversion helpers ────────────────────────────────────────────

_SEVERITY_MAP = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
}


def span_to_range(span: object) -> lsp.Range:
    """Convert a 1-indexed luafmt Span to a 0-indexed LSP Range."""
    sl = getattr(span, "start_line", 1)
    sc = getattr(span, "start_col", 1)
    el = getattr(span, "end_line", sl)
    ec = getattr(span, "end_col", sc)
    return lsp.Range(
        start=lsp.Position(line=sl - 1, character=sc - 1),
        end=lsp.Position(line=el - 1, character=ec),
    )


def _parse_diag(d: object) -> lsp.Diagnostic:
    """Convert a luafmt Diagnostic to an LSP Diagnostic."""
    span_range = lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0))
    if hasattr(d, "labels") and d.labels:
        span_range = span_to_range(d.labels[0].span)
    sev = _SEVERITY_MAP.get(getattr(d, "severity", None), lsp.DiagnosticSeverity.Error)
    code = getattr(d, "code", "E000")
    msg = getattr(d, "message", str(d))
    return lsp.Diagnostic(
        range=span_range, severity=sev, source="luafmt",
        code=code, message=f"[{code}] {msg}",
    )


def _document_options(uri: str) -> FormatOptions:
    """Options from the luafmt.toml nearest the document, or the defaults."""
    path = to_fs_path(uri)
    if path is None:
        return FormatOptions()
    try:
        return options_for(Path(path).parent)
    except (OSError, ValueError) as e:
        logger.warning("ignoring config for %s: %s", uri, e)
        return FormatOptions()


def _full_range(source: str) -> lsp.Range:
    """Range covering the whole of ``source``.

    LSP characters are UTF-16 code units, so astral characters count twice.
    """
    lines = source.split("\n")
    last = len(lines[-1].encode("utf-16-le")) // 2
    return lsp.Range(
        start=lsp.Position(0, 0),
        end=lsp.Position(len(lines) - 1, last),
    )


# ── Per-document state ────────────────────────────────────────────


@dataclass
class DocumentState:
    """Cached parse results for a single open document."""

    source: str = ""
    chunk: Chunk | None = None
    options: FormatOptions = field(default_factory=FormatOptions)
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)


# ── Server ────────────────────────────────────────────────────────

server = LanguageServer(
    "luafmt-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_state: dict[str, DocumentState] = {}


def _analyze(uri: str, source: str, options: FormatOptions | None = None) -> DocumentState:
    """Parse the document, cache results, return state."""
    ds = DocumentState(source=source)
    ds.options = options if options is not None else _document_options(uri)
    try:
        ds.chunk = parse_source(source, uri)
    except MalformedInputError as e:
        ds.diagnostics = [_parse_diag(d) for d in e.diagnostics]
    _state[uri] = ds
    return ds


def format_document(ds: DocumentState) -> list[lsp.TextEdit] | None:
    """One whole-document edit, or None when there is nothing to change."""
    if ds.chunk is None:
        return None
    try:
        formatted = LuaFormatter(ds.options).format(ds.chunk) + "\n"
    except LuaFmtError as e:
        logger.warning("cannot format document: %s", e)
        return None

    if formatted == ds.source:
        return None
    return [lsp.TextEdit(range=_full_range(ds.source), new_text=formatted)]


# ── LSP Feature Handlers ─────────────────────────────────────────


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    source = params.text_document.text
    ds = _analyze(uri, source)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync: take last content change
    source = params.content_changes[-1].text if params.content_changes else ""
    previous = _state.get(uri)
    ds = _analyze(uri, source, previous.options if previous else None)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _state.pop(params.text_document.uri, None)


@server.feature(lsp.TEXT_DOCUMENT_FORMATTING)
def formatting(params: lsp.DocumentFormattingParams) -> list[lsp.TextEdit] | None:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return None
    return format_document(ds)


# ── Entry point ──────────────────────────────────────────────────


def main() -> None:
    """Start the luafmt language server on stdio."""
    server.start_io()

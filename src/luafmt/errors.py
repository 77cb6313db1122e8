"""Error types and Rust-style diagnostic rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from luafmt.source import Span


class Severity(Enum):
    ERROR = "error"


_RED = "\033[1;31m"
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass(frozen=True)
class DiagnosticLabel:
    """Marks the offending text of a diagnostic."""

    span: Span
    message: str


@dataclass
class Diagnostic:
    """One lexer or parser complaint about the input."""

    severity: Severity
    code: str
    message: str
    labels: list[DiagnosticLabel] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


class DiagnosticRenderer:
    """Render diagnostics as ``error[E200]: ...`` blocks with a source excerpt.

    The excerpt comes from text registered with ``add_source``; a label
    whose file was never registered is shown by location only.
    """

    def __init__(self, *, color: bool = True) -> None:
        self.color = color
        self._sources: dict[str, list[str]] = {}

    def add_source(self, filename: str, text: str) -> None:
        self._sources[filename] = text.splitlines()

    def _paint(self, code: str, text: str) -> str:
        if not self.color:
            return text
        return f"{code}{text}{_RESET}"

    def _line(self, filename: str, number: int) -> str | None:
        lines = self._sources.get(filename, [])
        if 1 <= number <= len(lines):
            return lines[number - 1]
        return None

    def render(self, diag: Diagnostic) -> str:
        out = [
            self._paint(_RED, f"{diag.severity.value}[{diag.code}]")
            + self._paint(_BOLD, f": {diag.message}")
        ]
        bar = self._paint(_BLUE, "     |")

        for label in diag.labels:
            span = label.span
            out.append(f"  {self._paint(_BLUE, '-->')} {span.file}:{span.start_line}:{span.start_col}")
            text = self._line(span.file, span.start_line)
            if text is None:
                continue
            out.append(bar)
            out.append(f"{self._paint(_BLUE, f'{span.start_line:>4} |')} {text}")

            # Spans over several lines are underlined to the end of the first
            if span.end_line == span.start_line:
                width = span.end_col - span.start_col + 1
            else:
                width = len(text) - span.start_col + 1
            marker = " " * (span.start_col - 1) + "^" * max(1, width)
            if label.message:
                marker += f" {label.message}"
            out.append(f"{bar} {self._paint(_RED, marker)}")

        out.extend(f"  {self._paint(_BLUE, '=')} note: {note}" for note in diag.notes)
        return "\n".join(out)


class LuaFmtError(Exception):
    """Base class for every error raised while formatting."""


class MalformedInputError(LuaFmtError):
    """The source text is not valid Lua; carries the lexer/parser diagnostics."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [d.message for d in diagnostics]
        super().__init__(f"{len(diagnostics)} error(s): {'; '.join(messages)}")


class UnsupportedNodeError(LuaFmtError):
    """The printer met a node class it has no rendering for."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"no formatter for node kind {kind}")


class LiteralRoundTripError(LuaFmtError):
    """A normalized numeric literal no longer reads back as the same value."""

    def __init__(self, raw: str, normalized: str) -> None:
        self.raw = raw
        self.normalized = normalized
        super().__init__(
            f"numeric literal {raw!r} normalized to {normalized!r}, "
            "which reads back as a different value"
        )

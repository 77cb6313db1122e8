"""Span tracking for tokens, nodes and diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Span:
    """A half-open offset range ``[start, end)`` within a source text.

    Offsets index the decoded source string. The line/column fields are
    1-indexed and only used for diagnostics; ``end_col`` is inclusive.
    """

    file: str
    start: int
    end: int
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __str__(self) -> str:
        return f"{self.file}:{self.start_line}:{self.start_col}"

    def contains(self, other: Span) -> bool:
        return self.start <= other.start and self.end >= other.end

    def with_end(self, end: int) -> Span:
        return replace(self, end=end)


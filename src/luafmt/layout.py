"""Inline vs. multi-line decisions for blocks, tables and statement lists."""

from __future__ import annotations

from luafmt.ast_nodes import Comment, FunctionDef

INLINE_WIDTH = 60
TABLE_INLINE_FIELDS = 3


def tabs(indent: int) -> str:
    return "\t" * indent


def fits_inline(text: str) -> bool:
    return len(text) <= INLINE_WIDTH and "\n" not in text


def block(body: list, text: str, indent: int, *, inline: bool = True,
          trailing: bool = True) -> str:
    """Lay out the rendered ``text`` of ``body`` between a header and its closer.

    ``text`` is the body already rendered at ``indent + 1``. Without
    ``trailing`` (interior ``if`` clauses) no spacing follows the body,
    because the next clause starts on its own line.
    """
    if not body:
        return " " if trailing else ""
    if inline and len(body) == 1 and not isinstance(body[0], Comment) and fits_inline(text):
        return f" {text} " if trailing else f" {text}"
    out = "\n" + tabs(indent + 1) + text
    if trailing:
        out += "\n" + tabs(indent)
    return out


def table_commas(fields: list) -> list[bool]:
    """Whether each field of a multi-line table is followed by a comma.

    A field takes a comma when some non-comment field comes after it, so a
    comment between two fields never swallows the separator.
    """
    commas = [False] * len(fields)
    seen_field = False
    for i in range(len(fields) - 1, -1, -1):
        if isinstance(fields[i], Comment):
            continue
        commas[i] = seen_field
        seen_field = True
    return commas


def table(fields: list, texts: list[str], indent: int, *, inline: bool = True) -> str:
    """Lay out table fields rendered at ``indent + 1``."""
    if not fields:
        return "{}"
    if (
        inline
        and len(fields) <= TABLE_INLINE_FIELDS
        and not any(isinstance(f, Comment) for f in fields)
        and all(fits_inline(t) for t in texts)
    ):
        return "{ " + ", ".join(texts) + " }"

    lines = [
        "\n" + tabs(indent + 1) + text + ("," if comma else "")
        for text, comma in zip(texts, table_commas(fields))
    ]
    return "{" + "".join(lines) + "\n" + tabs(indent) + "}"


def sequence_breaks(items: list, extra_newlines: bool = True) -> list[bool]:
    """Whether a blank line goes before each item of a statement list.

    Items are grouped as a run of comments plus the statement that follows
    them. With ``extra_newlines`` a blank line separates two neighbouring
    groups when either one ends in a function declaration.
    """
    breaks = [False] * len(items)
    if not extra_newlines:
        return breaks

    groups: list[tuple[int, bool]] = []  # (first index, is declaration)
    start = 0
    for i, item in enumerate(items):
        if not isinstance(item, Comment):
            groups.append((start, isinstance(item, FunctionDef)))
            start = i + 1
    if start < len(items):
        groups.append((start, False))  # trailing comments

    for (_, before), (first, after) in zip(groups, groups[1:]):
        if before or after:
            breaks[first] = True
    return breaks

"""Reattach the lexer's comment stream to the syntax tree.

Comments arrive as a flat list in document order. Each one is spliced into
the body (or field list) of the innermost container whose children do not
fully contain it, at the position that keeps document order. The tree is
rebuilt along the path to the insertion point; nothing is mutated in place.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace

from luafmt.ast_nodes import (
    Chunk,
    Comment,
    DoStmt,
    ElseClause,
    ElseifClause,
    FunctionDef,
    GenericForStmt,
    IfClause,
    NumericForStmt,
    RepeatStmt,
    TableConstructor,
    WhileStmt,
    is_node,
)

logger = logging.getLogger(__name__)

# Node kind -> the one field that may receive comments
COMMENT_SLOTS: dict[type, str] = {
    Chunk: "body",
    DoStmt: "body",
    FunctionDef: "body",
    IfClause: "body",
    ElseifClause: "body",
    ElseClause: "body",
    WhileStmt: "body",
    RepeatStmt: "body",
    NumericForStmt: "body",
    GenericForStmt: "body",
    TableConstructor: "fields",
}


def attach_comments(chunk: Chunk, comments: list[Comment]) -> Chunk:
    """Return ``chunk`` with every comment placed in some container slot."""
    for comment in comments:
        # Chunk.body is a slot, so the root always accepts the comment
        chunk = attach_comment(chunk, comment)
    logger.debug("attached %d comment(s)", len(comments))
    return chunk


def attach_comment(node, comment: Comment):
    """Place ``comment`` inside ``node``; return the new node, or None.

    Children whose span contains the comment are searched first, so the
    deepest container wins. When no child container takes it and this
    node's slot is the field being scanned, the comment is inserted there:
    directly before the child that encloses it (a comment inside an
    expression is hoisted in front of its statement), else before the
    first child that starts after it, else at the end.
    """
    slot = COMMENT_SLOTS.get(type(node))
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, list):
            index = _enclosing_index(value, comment)
            if index is not None:
                child = attach_comment(value[index], comment)
                if child is not None:
                    return replace(node, **{f.name: [*value[:index], child, *value[index + 1:]]})
            if f.name == slot:
                return replace(node, **{f.name: _insert(value, comment, index)})
        elif is_node(value) and value.span.contains(comment.span):
            child = attach_comment(value, comment)
            if child is not None:
                return replace(node, **{f.name: child})
    return None


def _enclosing_index(items: list, comment: Comment) -> int | None:
    for i, item in enumerate(items):
        if is_node(item) and item.span.contains(comment.span):
            return i
    return None


def _insert(items: list, comment: Comment, index: int | None) -> list:
    if index is None:
        index = next(
            (i for i, item in enumerate(items) if item.span.start >= comment.span.end),
            len(items),
        )
    return [*items[:index], comment, *items[index:]]

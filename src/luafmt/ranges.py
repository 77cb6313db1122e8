"""Span repair run before comments are reattached.

The parser gives ``if`` clauses a span that ends at their header keyword
(``then`` / ``else``), so a clause does not contain its own body. Comment
placement relies on containment, so each clause is widened to reach the
next clause, and the last one to the end of the whole statement.
"""

from __future__ import annotations

from dataclasses import fields, replace

from luafmt.ast_nodes import IfStmt, is_node


def repair_ranges(node):
    """Return ``node`` with every ``if`` clause span widened.

    The input tree is not modified; untouched subtrees are shared.
    Repairing an already repaired tree gives an equal tree.
    """
    changes = {}
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, list):
            repaired = [repair_ranges(item) if is_node(item) else item for item in value]
            if any(new is not old for new, old in zip(repaired, value)):
                changes[f.name] = repaired
        elif is_node(value):
            repaired = repair_ranges(value)
            if repaired is not value:
                changes[f.name] = repaired

    if isinstance(node, IfStmt):
        clauses = changes.get("clauses", node.clauses)
        widened = []
        for i, clause in enumerate(clauses):
            if i + 1 < len(clauses):
                end = clauses[i + 1].span.start - 1
            else:
                end = node.span.end
            if clause.span.end != end:
                clause = replace(clause, span=clause.span.with_end(end))
            widened.append(clause)
        if any(new is not old for new, old in zip(widened, node.clauses)):
            changes["clauses"] = widened

    if not changes:
        return node
    return replace(node, **changes)


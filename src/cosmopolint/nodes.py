"""
cosmopolint - Node kinds.

The checkers dispatch on a small closed set of kinds instead of testing
node types all over the traversal.
"""

from __future__ import annotations

import ast
from enum import Enum
from typing import Optional


class NodeKind(Enum):
    LITERAL = "literal"
    CALL = "call"
    IMPORT = "import"
    IDENTIFIER = "identifier"
    OTHER = "other"


def classify(node: ast.AST) -> NodeKind:
    """Return the kind the checkers care about for *node*."""
    if isinstance(node, (ast.Import, ast.ImportFrom)):
        return NodeKind.IMPORT
    if isinstance(node, ast.Call):
        return NodeKind.CALL
    if isinstance(node, ast.JoinedStr):
        return NodeKind.LITERAL
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return NodeKind.LITERAL
    if isinstance(node, (ast.Name, ast.Attribute)):
        return NodeKind.IDENTIFIER
    return NodeKind.OTHER


def span(node: ast.AST) -> tuple[int, int, int, int]:
    """(line, col, end_line, end_col); lines 1-based, columns 0-based UTF-8 byte offsets."""
    line = getattr(node, "lineno", 0)
    col = getattr(node, "col_offset", 0)
    end_line = getattr(node, "end_lineno", None) or line
    end_col = getattr(node, "end_col_offset", None)
    if end_col is None:
        end_col = col
    return line, col, end_line, end_col


def identifier_span(node: ast.AST) -> tuple[int, int, int, int]:
    """Span of the identifier itself.

    For ``a.b.attr`` this is only the trailing ``attr``, which ends where
    the whole attribute expression ends.
    """
    line, col, end_line, end_col = span(node)
    if isinstance(node, ast.Attribute):
        start = end_col - len(node.attr.encode("utf-8"))
        if start >= 0:
            return end_line, start, end_line, end_col
    return line, col, end_line, end_col


def callee_of(node: ast.Call) -> Optional[ast.expr]:
    """The callee expression if it is a name or attribute chain."""
    if isinstance(node.func, (ast.Name, ast.Attribute)):
        return node.func
    return None


def fstring_fields(node: ast.JoinedStr) -> list[ast.expr]:
    """Replacement-field expressions of an f-string, nested format specs included."""
    fields: list[ast.expr] = []
    for part in node.values:
        if isinstance(part, ast.FormattedValue):
            fields.append(part.value)
            if isinstance(part.format_spec, ast.JoinedStr):
                fields.extend(fstring_fields(part.format_spec))
    return fields

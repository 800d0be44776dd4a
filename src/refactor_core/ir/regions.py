"""Code regions: a single node or a contiguous run of sibling statements."""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass
from typing import Iterator, Sequence

from refactor_core.errors import RegionNotFoundError, SelectionError
from refactor_core.ir.nodes import Position, Span
from refactor_core.ir.scopes import SemanticModel

log = logging.getLogger(__name__)

_SELECTION_RE = re.compile(r"^\s*(\d+):(\d+)-(\d+):(\d+)\s*$")


@dataclass(frozen=True)
class Region:
    path: str
    span: Span | None
    nodes: tuple[ast.AST, ...] = ()

    @classmethod
    def from_node(cls, node: ast.AST, path: str) -> Region:
        return cls(path=path, span=Span.of(node), nodes=(node,))

    @classmethod
    def from_statements(cls, statements: Sequence[ast.stmt], path: str) -> Region:
        if not statements:
            return cls.empty(path)
        span = Span(Span.of(statements[0]).start, Span.of(statements[-1]).end)
        return cls(path=path, span=span, nodes=tuple(statements))

    @classmethod
    def empty(cls, path: str) -> Region:
        return cls(path=path, span=None, nodes=())

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    @property
    def statements(self) -> list[ast.stmt]:
        return [n for n in self.nodes if isinstance(n, ast.stmt)]


def parse_selection_range(selection: str) -> Span:
    """Parse "startLine:startColumn-endLine:endColumn" (all 1-based).

    The returned span uses 0-based columns like `ast` positions.
    """
    m = _SELECTION_RE.match(selection)
    if not m:
        raise SelectionError(selection)
    start_line, start_col, end_line, end_col = (int(g) for g in m.groups())
    if min(start_line, start_col, end_line, end_col) < 1:
        raise SelectionError(selection)
    start = Position(start_line, start_col - 1)
    end = Position(end_line, end_col - 1)
    if end < start:
        raise SelectionError(selection)
    return Span(start, end)


def select_statements(model: SemanticModel, span: Span) -> Region:
    """Statements of the innermost statement list that cover `span`."""
    statements = _select(model.tree.body, span)
    if not statements:
        raise RegionNotFoundError()
    log.debug(
        "Selection %s in %s covers %d statement(s) from line %d",
        span, model.path, len(statements), statements[0].lineno,
    )
    return Region.from_statements(statements, model.path)


def _select(stmts: list[ast.stmt], span: Span) -> list[ast.stmt]:
    hits = [s for s in stmts if _touches(Span.of(s), span)]
    if len(hits) != 1:
        return hits

    only = hits[0]
    if span.contains(Span.of(only)):
        return hits
    # Selection sits inside one compound statement: descend
    for inner in _child_lists(only):
        found = _select(inner, span)
        if found:
            return found
    return hits


def _touches(stmt_span: Span, span: Span) -> bool:
    if span.is_empty:
        return stmt_span.start <= span.start <= stmt_span.end
    return stmt_span.intersects(span)


def _child_lists(stmt: ast.stmt) -> Iterator[list[ast.stmt]]:
    for name in ("body", "orelse", "finalbody"):
        inner = getattr(stmt, name, None)
        if isinstance(inner, list) and inner and isinstance(inner[0], ast.stmt):
            yield inner
    for handler in getattr(stmt, "handlers", []):
        yield handler.body
    for case in getattr(stmt, "cases", []):
        yield case.body

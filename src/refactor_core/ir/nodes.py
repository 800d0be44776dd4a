"""Symbol, span and diagnostic dataclasses. Pure data, no logic."""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from enum import Enum


class SymbolKind(str, Enum):
    LOCAL = "local"
    PARAMETER = "parameter"
    SELF = "self"            # first parameter of an instance/class method
    FIELD = "field"
    PROPERTY = "property"
    METHOD = "method"
    CLASS = "class"
    FUNCTION = "function"
    GLOBAL = "global"
    IMPORT = "import"
    BUILTIN = "builtin"


# Kinds whose values live in a function frame
VARIABLE_KINDS = frozenset({SymbolKind.LOCAL, SymbolKind.PARAMETER})


@dataclass(frozen=True)
class Symbol:
    name: str
    kind: SymbolKind
    scope_id: str            # "file.py::Outer.method"
    declared_type: str = "Any"
    line: int = 0
    column: int = 0


@dataclass(frozen=True, order=True)
class Position:
    line: int                # 1-based
    column: int              # 0-based, like ast col_offset


@dataclass(frozen=True)
class Span:
    start: Position
    end: Position

    @classmethod
    def of(cls, node: ast.AST) -> Span:
        end_line = getattr(node, "end_lineno", None) or node.lineno
        end_col = getattr(node, "end_col_offset", None)
        if end_col is None:
            end_col = node.col_offset
        return cls(Position(node.lineno, node.col_offset), Position(end_line, end_col))

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end

    def contains(self, other: Span) -> bool:
        return self.start <= other.start and other.end <= self.end

    def intersects(self, other: Span) -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class Location:
    path: str
    span: Span

    @property
    def line(self) -> int:
        return self.span.start.line

    @property
    def column(self) -> int:
        return self.span.start.column

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


@dataclass(frozen=True)
class DiagnosticRecord:
    severity: str            # "error" | "warning"
    id: str                  # "E0602", "W0612", ...
    message: str
    path: str
    line: int
    column: int

    @property
    def key(self) -> tuple[str, str, str, int, int]:
        return (self.id, self.message, self.path, self.line, self.column)

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def __str__(self) -> str:
        return f"{self.id}: {self.message} at {self.path}:{self.line}:{self.column}"


@dataclass(frozen=True)
class MemberInfo:
    name: str
    kind: str                # "method" | "property" | "field"
    class_name: str
    line: int
    column: int
    is_static: bool = False
    declared_type: str = "Any"
    node: ast.AST | None = field(default=None, compare=False, repr=False)

    @property
    def is_public(self) -> bool:
        return not self.name.startswith("_") or _is_dunder(self.name)

    @property
    def span(self) -> Span:
        start = Position(self.line, self.column)
        return Span(start, Position(self.line, self.column + len(self.name)))


def _is_dunder(name: str) -> bool:
    return len(name) > 4 and name.startswith("__") and name.endswith("__")

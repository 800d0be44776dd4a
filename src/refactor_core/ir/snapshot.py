"""Immutable program snapshot: compilation units keyed by path."""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Mapping

if TYPE_CHECKING:
    from refactor_core.ir.scopes import SemanticModel

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompilationUnit:
    path: str                # relative path, "/" separated
    source: str

    @cached_property
    def _parsed(self) -> tuple[ast.Module | None, SyntaxError | None]:
        try:
            return ast.parse(self.source, filename=self.path), None
        except SyntaxError as exc:
            log.debug("Parse failed for %s: %s", self.path, exc)
            return None, exc

    @property
    def tree(self) -> ast.Module | None:
        return self._parsed[0]

    @property
    def syntax_error(self) -> SyntaxError | None:
        return self._parsed[1]

    @cached_property
    def model(self) -> SemanticModel | None:
        """Semantic model for the unit, or None when it does not parse."""
        if self.tree is None:
            return None
        from refactor_core.ir.scopes import SemanticModel
        return SemanticModel(self.tree, self.path)

    @property
    def module_name(self) -> str:
        return module_name_for(self.path)

    def with_source(self, source: str) -> CompilationUnit:
        return CompilationUnit(path=self.path, source=source)


@dataclass(frozen=True, eq=False)
class ProgramSnapshot:
    """Whole-program view. Never mutated; `with_unit` derives a new snapshot."""

    _units: Mapping[str, CompilationUnit] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_units", MappingProxyType(dict(self._units)))

    @classmethod
    def of(cls, units: Iterable[CompilationUnit]) -> ProgramSnapshot:
        return cls({u.path: u for u in units})

    @property
    def units(self) -> list[CompilationUnit]:
        return [self._units[p] for p in sorted(self._units)]

    @property
    def paths(self) -> list[str]:
        return sorted(self._units)

    def get_unit(self, path: str) -> CompilationUnit | None:
        return self._units.get(path)

    def with_unit(self, unit: CompilationUnit) -> ProgramSnapshot:
        """Return a new snapshot with `unit` substituted (or added) by path."""
        units = dict(self._units)
        units[unit.path] = unit
        return ProgramSnapshot(units)

    @cached_property
    def _by_module(self) -> dict[str, CompilationUnit]:
        return {u.module_name: u for u in self._units.values()}

    def module_unit(self, dotted_name: str) -> CompilationUnit | None:
        return self._by_module.get(dotted_name)

    def __contains__(self, path: object) -> bool:
        return path in self._units

    def __len__(self) -> int:
        return len(self._units)


def module_name_for(path: str) -> str:
    """pkg/mod.py -> pkg.mod, pkg/__init__.py -> pkg, src/ prefix dropped."""
    parts = [p for p in path.replace("\\", "/").split("/") if p and p != "."]
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1].endswith(".py"):
        parts[-1] = parts[-1][:-3]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)

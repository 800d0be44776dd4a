"""Compiler-style diagnostics for a program snapshot.

Errors:
  E0001  syntax error (parser or compiler stage)
  E0602  undefined variable
  E0611  no name in module (cross-unit `from m import x`)
Warnings:
  W0612  unused local variable
  W0611  unused import
"""

from __future__ import annotations

import ast
import logging
import threading

from refactor_core.config import AnalyzerSettings
from refactor_core.errors import OperationCancelled
from refactor_core.ir.nodes import DiagnosticRecord, SymbolKind
from refactor_core.ir.scopes import ScopeKind, SemanticModel
from refactor_core.ir.snapshot import CompilationUnit, ProgramSnapshot
from refactor_core.utils import snippet

log = logging.getLogger(__name__)


def compute_diagnostics(
    snapshot: ProgramSnapshot,
    *,
    settings: AnalyzerSettings | None = None,
    cancel: threading.Event | None = None,
) -> list[DiagnosticRecord]:
    """All diagnostics of every unit, in path then position order."""
    settings = settings or AnalyzerSettings()
    records: list[DiagnosticRecord] = []
    for unit in snapshot.units:
        if cancel is not None and cancel.is_set():
            raise OperationCancelled()
        records.extend(unit_diagnostics(unit, snapshot, settings))
    log.debug(
        "%d diagnostic(s) over %d unit(s)", len(records), len(snapshot),
    )
    return records


def unit_diagnostics(unit: CompilationUnit, snapshot: ProgramSnapshot,
                     settings: AnalyzerSettings) -> list[DiagnosticRecord]:
    if unit.syntax_error is not None:
        return [_syntax_record(unit, unit.syntax_error)]

    try:
        compile(unit.tree, unit.path, "exec", dont_inherit=True)
    except SyntaxError as exc:
        return [_syntax_record(unit, exc)]

    model = unit.model
    records = _undefined_names(unit, model)
    records += _missing_imports(unit, snapshot)
    if settings.report_unused_variables:
        records += _unused_variables(unit, model)
    if settings.report_unused_imports:
        records += _unused_imports(unit, model)

    records.sort(key=lambda r: (r.line, r.column, r.id))
    for r in records:
        log.debug("%s:%d %s %s | %s", unit.path, r.line, r.id, r.message,
                  snippet(unit.source, r.line))
    return records


# ── Errors ──────────────────────────────────────────────────────────────────

def _syntax_record(unit: CompilationUnit, exc: SyntaxError) -> DiagnosticRecord:
    return DiagnosticRecord(
        severity="error",
        id="E0001",
        message=f"Syntax error: {exc.msg}",
        path=unit.path,
        line=exc.lineno or 1,
        column=max((exc.offset or 1) - 1, 0),
    )


def _undefined_names(unit: CompilationUnit, model: SemanticModel) -> list[DiagnosticRecord]:
    if model.has_star_import():
        return []
    records = []
    for node in ast.walk(unit.tree):
        if isinstance(node, ast.Name) and not isinstance(node.ctx, ast.Store):
            if model.resolve(node) is None:
                records.append(DiagnosticRecord(
                    severity="error",
                    id="E0602",
                    message=f"Undefined variable '{node.id}'",
                    path=unit.path,
                    line=node.lineno,
                    column=node.col_offset,
                ))
    return records


def _missing_imports(unit: CompilationUnit, snapshot: ProgramSnapshot) -> list[DiagnosticRecord]:
    records = []
    for node in ast.walk(unit.tree):
        if not isinstance(node, ast.ImportFrom):
            continue
        module = resolve_import_module(unit, node)
        if module is None:
            continue
        target = snapshot.module_unit(module)
        if target is None or target.model is None:
            continue
        exported = target.model.module_scope.symbols
        if target.model.has_star_import() or "__getattr__" in exported:
            continue
        for alias in node.names:
            if alias.name == "*" or alias.name in exported:
                continue
            if snapshot.module_unit(f"{module}.{alias.name}") is not None:
                continue
            records.append(DiagnosticRecord(
                severity="error",
                id="E0611",
                message=f"No name '{alias.name}' in module '{module}'",
                path=unit.path,
                line=alias.lineno,
                column=alias.col_offset,
            ))
    return records


def resolve_import_module(unit: CompilationUnit, node: ast.ImportFrom) -> str | None:
    """Absolute dotted module of a `from ... import`, relative levels resolved."""
    if node.level == 0:
        return node.module
    package = unit.module_name.split(".")
    if not unit.path.endswith("__init__.py"):
        package = package[:-1]
    if node.level - 1 > len(package):
        return None
    if node.level > 1:
        package = package[: len(package) - (node.level - 1)]
    parts = package + ([node.module] if node.module else [])
    return ".".join(p for p in parts if p) or None


# ── Warnings ────────────────────────────────────────────────────────────────

def _unused_variables(unit: CompilationUnit, model: SemanticModel) -> list[DiagnosticRecord]:
    records = []
    for scope in model.scopes:
        if scope.kind != ScopeKind.FUNCTION or _calls_locals(scope.node):
            continue
        for sym in scope.symbols.values():
            if sym.kind != SymbolKind.LOCAL or sym.name.startswith("_"):
                continue
            if sym.name in scope.globals or sym.name in scope.nonlocals:
                continue
            bindings = model.bindings_of(sym)
            if not all(isinstance(b, (ast.Name, ast.ExceptHandler)) for b in bindings):
                continue
            refs = model.references_of(sym)
            if any(isinstance(r.ctx, ast.Load) for r in refs):
                continue
            records.append(DiagnosticRecord(
                severity="warning",
                id="W0612",
                message=f"Unused variable '{sym.name}'",
                path=unit.path,
                line=sym.line,
                column=sym.column,
            ))
    return records


def _unused_imports(unit: CompilationUnit, model: SemanticModel) -> list[DiagnosticRecord]:
    if unit.path.endswith("__init__.py"):
        return []
    exported = _dunder_all(unit.tree)
    records = []
    for scope in model.scopes:
        if scope.kind not in (ScopeKind.MODULE, ScopeKind.FUNCTION):
            continue
        for sym in scope.symbols.values():
            bindings = model.bindings_of(sym)
            if not bindings or not all(isinstance(b, ast.alias) for b in bindings):
                continue
            if sym.name in exported or _is_future_import(model, bindings[0]):
                continue
            if any(isinstance(r.ctx, ast.Load) for r in model.references_of(sym)):
                continue
            records.append(DiagnosticRecord(
                severity="warning",
                id="W0611",
                message=f"Unused import '{sym.name}'",
                path=unit.path,
                line=sym.line,
                column=sym.column,
            ))
    return records


def _calls_locals(func: ast.AST) -> bool:
    return any(
        isinstance(n, ast.Call) and isinstance(n.func, ast.Name) and n.func.id in ("locals", "vars")
        for n in ast.walk(func)
    )


def _dunder_all(tree: ast.Module) -> set[str]:
    names: set[str] = set()
    for stmt in tree.body:
        if isinstance(stmt, (ast.Assign, ast.AugAssign, ast.AnnAssign)):
            targets = stmt.targets if isinstance(stmt, ast.Assign) else [stmt.target]
            if any(isinstance(t, ast.Name) and t.id == "__all__" for t in targets):
                value = stmt.value
                if isinstance(value, (ast.List, ast.Tuple)):
                    names.update(
                        e.value for e in value.elts
                        if isinstance(e, ast.Constant) and isinstance(e.value, str)
                    )
    return names


def _is_future_import(model: SemanticModel, alias: ast.AST) -> bool:
    parent = model.parent_of(alias)
    return isinstance(parent, ast.ImportFrom) and parent.module == "__future__"

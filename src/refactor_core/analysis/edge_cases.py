"""Constructs that complicate moving a region into a new function."""

from __future__ import annotations

import ast
from typing import Sequence

from refactor_core.models import EdgeCaseReport

LOOP_EXIT_WARNING = (
    "Break/continue statements detected. "
    "Extraction may be invalid if block is part of a loop."
)

# Label per flag, in report order
_LABELS = [
    ("has_async_await", "async/await"),
    ("has_resource_scope", "with/context managers"),
    ("has_exception_handling", "try/except"),
    ("has_return", "return statements"),
    ("has_loop_exit", "break/continue"),
    ("has_closures", "lambdas/closures"),
    ("has_nested_callables", "nested functions"),
    ("has_generators", "yield/generators"),
    ("has_scope_declarations", "global/nonlocal"),
]

_FUNCTIONS = (ast.FunctionDef, ast.AsyncFunctionDef)
_LOOPS = (ast.For, ast.AsyncFor, ast.While)
_TRY_TYPES = tuple(t for t in (ast.Try, getattr(ast, "TryStar", None)) if t is not None)


def detect_edge_cases(target: ast.AST | Sequence[ast.AST]) -> EdgeCaseReport:
    """Scan a node, or a run of statements, in one traversal."""
    nodes = [target] if isinstance(target, ast.AST) else list(target)
    flags: dict[str, bool] = {}
    for node in nodes:
        _visit(node, flags, loop_depth=0, nested=False)

    report = EdgeCaseReport(**flags)
    report.detected_edge_cases = [label for attr, label in _LABELS if flags.get(attr)]
    if report.has_loop_exit:
        report.warnings.append(LOOP_EXIT_WARNING)
    return report


def _visit(node: ast.AST, flags: dict[str, bool], loop_depth: int, nested: bool) -> None:
    # Control flow inside a nested callable belongs to that callable
    if not nested:
        if isinstance(node, (ast.Await, ast.AsyncFor, ast.AsyncWith)):
            flags["has_async_await"] = True
        elif isinstance(node, ast.comprehension) and node.is_async:
            flags["has_async_await"] = True
        elif isinstance(node, ast.Return):
            flags["has_return"] = True
        elif isinstance(node, (ast.Break, ast.Continue)):
            flags["has_loop_exit"] = True
            if loop_depth == 0:
                flags["has_dangling_loop_exit"] = True
        elif isinstance(node, (ast.Yield, ast.YieldFrom)):
            flags["has_generators"] = True
        elif isinstance(node, (ast.Global, ast.Nonlocal)):
            flags["has_scope_declarations"] = True

    if isinstance(node, (ast.With, ast.AsyncWith)):
        flags["has_resource_scope"] = True
    elif isinstance(node, _TRY_TYPES):
        flags["has_exception_handling"] = True
    elif isinstance(node, ast.Lambda):
        flags["has_closures"] = True
    elif isinstance(node, _FUNCTIONS):
        flags["has_nested_callables"] = True

    if isinstance(node, _FUNCTIONS + (ast.Lambda, ast.ClassDef)):
        for child in ast.iter_child_nodes(node):
            _visit(child, flags, 0, True)
        return

    if isinstance(node, _LOOPS):
        # `else` runs after the loop: a break there exits an outer loop
        for child in ast.iter_child_nodes(node):
            if any(child is s for s in node.orelse):
                _visit(child, flags, loop_depth, nested)
            else:
                _visit(child, flags, loop_depth + 1, nested)
        return

    for child in ast.iter_child_nodes(node):
        _visit(child, flags, loop_depth, nested)

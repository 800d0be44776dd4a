"""Program-wide reference search for class members.

Python has no static receiver types, so an attribute reference is any
`<expr>.name` with a matching name, anywhere in the program. This over-reports,
which is the safe direction for "is this member unused" questions.
"""

from __future__ import annotations

import ast
import asyncio
import logging

from refactor_core.ir.nodes import Location, MemberInfo, Position, Span
from refactor_core.ir.snapshot import CompilationUnit, ProgramSnapshot

log = logging.getLogger(__name__)

_REFLECTION_CALLS = {"getattr", "setattr", "hasattr", "delattr"}
_ACCESSORS = {"setter", "getter", "deleter"}


async def find_references(member: MemberInfo, snapshot: ProgramSnapshot,
                          path: str) -> list[Location]:
    """Declaration plus every location in the program that may refer to `member`.

    `path` is the unit declaring the member. Yields to the event loop between
    units, so a caller can cancel a long search.
    """
    found: set[Location] = {Location(path, member.span)}

    for unit in snapshot.units:
        if unit.tree is None:
            continue
        found.update(_attribute_references(unit, member.name))
        if unit.path == path:
            found.update(_class_body_references(unit, member))
        await asyncio.sleep(0)

    locations = sorted(found, key=lambda loc: (loc.path, loc.span.start, loc.span.end))
    log.debug("%d reference(s) to %s.%s", len(locations), member.class_name, member.name)
    return locations


def attribute_name_span(node: ast.Attribute) -> Span:
    """Span of just the attribute name in `value.attr`."""
    end = Position(node.end_lineno, node.end_col_offset)
    return Span(Position(node.end_lineno, node.end_col_offset - len(node.attr)), end)


def accessor_decorator_names(tree: ast.AST) -> set[ast.Name]:
    """The `_p` of `@_p.setter` on a def named `_p`: a redefinition, not a use."""
    names = set()
    for node in ast.walk(tree):
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            continue
        for dec in node.decorator_list:
            if (
                isinstance(dec, ast.Attribute)
                and dec.attr in _ACCESSORS
                and isinstance(dec.value, ast.Name)
                and dec.value.id == node.name
            ):
                names.add(dec.value)
    return names


def _attribute_references(unit: CompilationUnit, name: str) -> list[Location]:
    refs = []
    for node in ast.walk(unit.tree):
        if isinstance(node, ast.Attribute) and node.attr == name:
            refs.append(Location(unit.path, attribute_name_span(node)))
        elif _is_reflection_call(node, name):
            refs.append(Location(unit.path, Span.of(node.args[1])))
    return refs


def _is_reflection_call(node: ast.AST, name: str) -> bool:
    if not isinstance(node, ast.Call) or not isinstance(node.func, ast.Name):
        return False
    if node.func.id not in _REFLECTION_CALLS or len(node.args) < 2:
        return False
    arg = node.args[1]
    return isinstance(arg, ast.Constant) and arg.value == name


def _class_body_references(unit: CompilationUnit, member: MemberInfo) -> list[Location]:
    """Bare names in the declaring class body (e.g. `alias = _helper`)."""
    model = unit.model
    if model is None:
        return []
    accessors = accessor_decorator_names(unit.tree)
    refs = []
    for scope in model.scopes:
        if scope.name != member.class_name or not isinstance(scope.node, ast.ClassDef):
            continue
        for node in ast.walk(scope.node):
            if node in accessors:
                continue
            if isinstance(node, ast.Name) and node.id == member.name and model.scope_of(node) is scope:
                refs.append(Location(unit.path, Span.of(node)))
    return refs

"""Class member inventory: methods, properties, class and instance fields."""

from __future__ import annotations

import ast
from collections import deque

from refactor_core.errors import MemberNotFoundError
from refactor_core.ir.nodes import MemberInfo
from refactor_core.ir.scopes import infer_type, is_classmethod, is_property, is_staticmethod

_FUNCTIONS = (ast.FunctionDef, ast.AsyncFunctionDef)


def class_members(class_node: ast.ClassDef) -> list[MemberInfo]:
    """Members declared by a class, in declaration order.

    Instance fields are the `self.x = ...` stores found in non-static methods;
    a name declared both in the class body and through `self` is reported once.
    """
    members: list[MemberInfo] = []
    seen: set[str] = set()

    def add(info: MemberInfo) -> None:
        if info.name not in seen:
            seen.add(info.name)
            members.append(info)

    for stmt in class_node.body:
        if isinstance(stmt, _FUNCTIONS):
            add(MemberInfo(
                name=stmt.name,
                kind="property" if is_property(stmt) else "method",
                class_name=class_node.name,
                line=stmt.lineno,
                column=_def_name_column(stmt),
                is_static=is_staticmethod(stmt) or is_classmethod(stmt),
                declared_type=ast.unparse(stmt.returns) if stmt.returns else "Any",
                node=stmt,
            ))
        elif isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                for name in _store_names(target):
                    add(_field(class_node, name, infer_type(stmt.value), False, stmt))
        elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
            static, declared = _class_var(stmt.annotation)
            add(_field(class_node, stmt.target, declared, static, stmt))

    for stmt in class_node.body:
        if isinstance(stmt, _FUNCTIONS) and not (is_staticmethod(stmt) or is_classmethod(stmt)):
            for info in _instance_fields(class_node, stmt):
                add(info)

    return members


def instance_member_names(class_node: ast.ClassDef, module: ast.Module | None = None) -> set[str]:
    """Non-static fields and properties, including those of same-module bases."""
    names: set[str] = set()
    for cls in _class_hierarchy(class_node, module):
        names.update(
            m.name for m in class_members(cls)
            if m.kind in ("field", "property") and not m.is_static
        )
    return names


def method_names(class_node: ast.ClassDef, module: ast.Module | None = None) -> set[str]:
    names: set[str] = set()
    for cls in _class_hierarchy(class_node, module):
        names.update(m.name for m in class_members(cls) if m.kind == "method")
    return names


def private_field_types(class_node: ast.ClassDef) -> dict[str, str]:
    """Non-public fields (`_x`, `__x`) mapped to their declared types."""
    return {
        m.name: m.declared_type
        for m in class_members(class_node)
        if m.kind == "field" and not m.is_public
    }


def find_class(module: ast.Module, name: str) -> ast.ClassDef:
    for node in ast.walk(module):
        if isinstance(node, ast.ClassDef) and node.name == name:
            return node
    raise MemberNotFoundError(name)


def find_method(class_node: ast.ClassDef, name: str) -> ast.FunctionDef | ast.AsyncFunctionDef:
    for stmt in class_node.body:
        if isinstance(stmt, _FUNCTIONS) and stmt.name == name:
            return stmt
    raise MemberNotFoundError(name, class_node.name)


def self_parameter(func: ast.AST) -> str | None:
    """Name of the implicit instance/class parameter, None for static methods."""
    if is_staticmethod(func):
        return None
    positional = func.args.posonlyargs + func.args.args
    return positional[0].arg if positional else None


# ── Internals ───────────────────────────────────────────────────────────────

def _class_hierarchy(class_node: ast.ClassDef, module: ast.Module | None) -> list[ast.ClassDef]:
    """The class, then same-module base classes breadth-first."""
    if module is None:
        return [class_node]
    by_name = {
        n.name: n for n in ast.walk(module) if isinstance(n, ast.ClassDef)
    }
    result: list[ast.ClassDef] = []
    visited: set[int] = set()
    queue = deque([class_node])
    while queue:
        cls = queue.popleft()
        if id(cls) in visited:
            continue
        visited.add(id(cls))
        result.append(cls)
        for base in cls.bases:
            base_name = base.attr if isinstance(base, ast.Attribute) else getattr(base, "id", None)
            if base_name in by_name:
                queue.append(by_name[base_name])
    return result


def _def_name_column(func: ast.AST) -> int:
    prefix = "async def " if isinstance(func, ast.AsyncFunctionDef) else "def "
    return func.col_offset + len(prefix)


def _store_names(target: ast.AST) -> list[ast.Name]:
    return [n for n in ast.walk(target) if isinstance(n, ast.Name) and isinstance(n.ctx, ast.Store)]


def _class_var(annotation: ast.expr) -> tuple[bool, str]:
    """(is ClassVar, declared type) for a class-body annotation."""
    target = annotation.value if isinstance(annotation, ast.Subscript) else annotation
    name = target.attr if isinstance(target, ast.Attribute) else getattr(target, "id", "")
    if name != "ClassVar":
        return False, ast.unparse(annotation)
    if isinstance(annotation, ast.Subscript):
        return True, ast.unparse(annotation.slice)
    return True, "Any"


def _field(class_node: ast.ClassDef, target: ast.Name, declared: str, static: bool,
           stmt: ast.stmt) -> MemberInfo:
    return MemberInfo(
        name=target.id,
        kind="field",
        class_name=class_node.name,
        line=target.lineno,
        column=target.col_offset,
        is_static=static,
        declared_type=declared,
        node=stmt,
    )


def _instance_fields(class_node: ast.ClassDef, method: ast.AST) -> list[MemberInfo]:
    self_name = self_parameter(method)
    if self_name is None:
        return []
    param_types = {
        a.arg: ast.unparse(a.annotation)
        for a in method.args.posonlyargs + method.args.args + method.args.kwonlyargs
        if a.annotation is not None
    }

    fields = []
    for node in _walk_skipping_classes(method):
        if isinstance(node, ast.Assign):
            targets, value, annotation = node.targets, node.value, None
        elif isinstance(node, ast.AnnAssign):
            targets, value, annotation = [node.target], node.value, node.annotation
        elif isinstance(node, ast.AugAssign):
            targets, value, annotation = [node.target], None, None
        else:
            continue

        for target in targets:
            for attr in ast.walk(target):
                if not (isinstance(attr, ast.Attribute) and isinstance(attr.ctx, ast.Store)):
                    continue
                if not (isinstance(attr.value, ast.Name) and attr.value.id == self_name):
                    continue
                if annotation is not None:
                    declared = ast.unparse(annotation)
                elif isinstance(value, ast.Name) and value.id in param_types:
                    declared = param_types[value.id]
                else:
                    declared = infer_type(value)
                fields.append(MemberInfo(
                    name=attr.attr,
                    kind="field",
                    class_name=class_node.name,
                    line=attr.end_lineno,
                    column=attr.end_col_offset - len(attr.attr),
                    declared_type=declared,
                    node=node,
                ))
    return fields


def _walk_skipping_classes(func: ast.AST):
    stack = list(reversed(func.body))
    while stack:
        node = stack.pop()
        if isinstance(node, ast.ClassDef):
            continue
        yield node
        stack.extend(reversed(list(ast.iter_child_nodes(node))))

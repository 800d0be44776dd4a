"""What a method depends on from its own class.

Answers the questions behind move-method and convert-to-static: does the
body touch instance state, call sibling methods, recurse, or need `self`?
"""

from __future__ import annotations

import ast
from typing import Iterable, Sequence

from refactor_core.models import MemberUsageFacts
from refactor_core.walkers import members

_FUNCTIONS = (ast.FunctionDef, ast.AsyncFunctionDef)


def analyze_member(
    instance_member_names: Iterable[str],
    sibling_method_names: Iterable[str],
    method_name: str,
    body: ast.AST | Sequence[ast.stmt],
) -> MemberUsageFacts:
    """Usage facts for one method body, in a single traversal.

    `body` is the method's def node or its statement list. With a statement
    list the instance parameter is assumed to be named `self`.
    """
    if isinstance(body, _FUNCTIONS):
        self_name = members.self_parameter(body)
        roots = body.body
    else:
        self_name = "self"
        roots = list(body)

    visitor = _UsageVisitor(set(instance_member_names), set(sibling_method_names),
                            method_name, self_name)
    for stmt in roots:
        visitor.visit(stmt)

    return MemberUsageFacts(
        uses_instance_members=bool(visitor.used_members),
        calls_other_methods=bool(visitor.called - {method_name}),
        is_recursive=method_name in visitor.called,
        references_self=visitor.references_self,
        calls_super=visitor.calls_super,
        used_instance_members=sorted(visitor.used_members),
        called_methods=sorted(visitor.called - {method_name}),
    )


def analyze_method(class_node: ast.ClassDef, method_name: str,
                   module: ast.Module | None = None) -> MemberUsageFacts:
    """Usage facts for `class_node.method_name`. Raises MemberNotFoundError."""
    method = members.find_method(class_node, method_name)
    return analyze_member(
        members.instance_member_names(class_node, module),
        members.method_names(class_node, module),
        method_name,
        method,
    )


class _UsageVisitor(ast.NodeVisitor):
    def __init__(self, instance_members: set[str], siblings: set[str],
                 method_name: str, self_name: str | None) -> None:
        self.instance_members = instance_members
        self.siblings = siblings | {method_name}
        self.self_name = self_name
        self.used_members: set[str] = set()
        self.called: set[str] = set()
        self.references_self = False
        self.calls_super = False

    def _is_self(self, node: ast.AST) -> bool:
        return self.self_name is not None and isinstance(node, ast.Name) and node.id == self.self_name

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        # A nested class has its own `self`
        return

    def visit_Call(self, node: ast.Call) -> None:
        func = node.func
        if isinstance(func, ast.Attribute):
            if func.attr in self.siblings and not _is_super_call(func.value):
                self.called.add(func.attr)
            if self._is_self(func.value):
                if func.attr in self.instance_members:
                    self.used_members.add(func.attr)
            else:
                self.visit(func.value)
        elif isinstance(func, ast.Name):
            if func.id in self.siblings:
                self.called.add(func.id)
            elif func.id == "super":
                self.calls_super = True
            elif self._is_self(func):
                self.references_self = True
        else:
            self.visit(func)

        for arg in node.args:
            self.visit(arg)
        for kw in node.keywords:
            self.visit(kw.value)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if not self._is_self(node.value):
            self.generic_visit(node)
            return
        if node.attr in self.instance_members:
            self.used_members.add(node.attr)
        elif node.attr in self.siblings:
            # Bound-method reference, e.g. callback=self.handle
            self.called.add(node.attr)

    def visit_Name(self, node: ast.Name) -> None:
        if self._is_self(node):
            self.references_self = True
        elif node.id in self.siblings and isinstance(node.ctx, ast.Load):
            self.called.add(node.id)


def _is_super_call(node: ast.AST) -> bool:
    return (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id == "super"
    )

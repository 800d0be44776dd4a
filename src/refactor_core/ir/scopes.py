"""Scope builder and name resolver: the semantic model for one compilation unit.

Two passes over the tree:
  1. Scope construction: module, class, function, lambda and comprehension
     scopes; every node is mapped to the scope it is evaluated in, and every
     binding occurrence is recorded on the scope that owns it.
  2. Symbol construction: bindings become Symbols (kind + declared type),
     after `global` / `nonlocal` redirection.

Resolution follows Python's LEGB rule: class scopes are skipped when resolving
from nested functions, comprehension iterables are evaluated in the enclosing
scope, and walrus targets bind in the nearest non-comprehension scope.
"""

from __future__ import annotations

import ast
import builtins
import logging
from collections import defaultdict
from enum import Enum
from typing import Iterator

from refactor_core.ir.nodes import Symbol, SymbolKind

log = logging.getLogger(__name__)

BUILTIN_NAMES = frozenset(dir(builtins)) | {
    "__file__", "__builtins__", "__path__", "__annotations__",
    "__qualname__", "__module__", "__class__", "__dict__",
}

_BUILTIN_TYPES = {
    "int", "float", "complex", "str", "bytes", "bytearray", "bool",
    "list", "dict", "set", "frozenset", "tuple", "object", "range",
}

_PROPERTY_DECORATORS = {"property", "cached_property"}
_ACCESSOR_ATTRS = {"setter", "getter", "deleter"}

_COMPREHENSIONS = (ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)


class ScopeKind(str, Enum):
    MODULE = "module"
    CLASS = "class"
    FUNCTION = "function"
    LAMBDA = "lambda"
    COMPREHENSION = "comprehension"


class Scope:
    """One lexical scope and the names it binds."""

    def __init__(self, node: ast.AST, kind: ScopeKind, name: str,
                 parent: Scope | None, scope_id: str) -> None:
        self.node = node
        self.kind = kind
        self.name = name
        self.parent = parent
        self.id = scope_id
        self.symbols: dict[str, Symbol] = {}
        self.bindings: dict[str, list[ast.AST]] = defaultdict(list)
        self.params: list[ast.arg] = []
        self.globals: set[str] = set()
        self.nonlocals: set[str] = set()
        self.children: list[Scope] = []
        if parent is not None:
            parent.children.append(self)

    @property
    def is_function_like(self) -> bool:
        return self.kind in (ScopeKind.FUNCTION, ScopeKind.LAMBDA, ScopeKind.COMPREHENSION)

    def __repr__(self) -> str:
        return f"Scope({self.kind.value}, {self.id})"


class SemanticModel:
    """Resolved symbols for one parsed module."""

    def __init__(self, tree: ast.Module, path: str) -> None:
        self.tree = tree
        self.path = path
        self._parents: dict[ast.AST, ast.AST] = {}
        self._scope_of: dict[ast.AST, Scope] = {}
        self._scopes_by_id: dict[str, Scope] = {}
        self._references: dict[Symbol, list[ast.Name]] | None = None

        for node in ast.walk(tree):
            for child in ast.iter_child_nodes(node):
                self._parents[child] = node

        self._module_classes = {
            n.name for n in tree.body if isinstance(n, ast.ClassDef)
        }
        self.module_scope = self._new_scope(tree, ScopeKind.MODULE, "<module>", None)
        for stmt in tree.body:
            self._visit(stmt, self.module_scope)
        for scope in self._scopes_by_id.values():
            self._build_symbols(scope)

        log.debug("Semantic model for %s: %d scopes", path, len(self._scopes_by_id))

    # ── Public API ──────────────────────────────────────────────────────

    @property
    def scopes(self) -> list[Scope]:
        return list(self._scopes_by_id.values())

    def scope_by_id(self, scope_id: str) -> Scope | None:
        return self._scopes_by_id.get(scope_id)

    def scope_of(self, node: ast.AST) -> Scope:
        """Scope a node is evaluated in (climbs parents for unmapped nodes)."""
        cur: ast.AST | None = node
        while cur is not None:
            scope = self._scope_of.get(cur)
            if scope is not None:
                return scope
            cur = self._parents.get(cur)
        return self.module_scope

    def scope_for_definition(self, node: ast.AST) -> Scope | None:
        """The scope a def/lambda/class/comprehension node introduces."""
        for scope in self._scopes_by_id.values():
            if scope.node is node:
                return scope
        return None

    def parent_of(self, node: ast.AST) -> ast.AST | None:
        return self._parents.get(node)

    def ancestors(self, node: ast.AST) -> Iterator[ast.AST]:
        cur = self._parents.get(node)
        while cur is not None:
            yield cur
            cur = self._parents.get(cur)

    def resolve(self, name: ast.Name) -> Symbol | None:
        """Resolve a Name node (load, store or del) to its Symbol."""
        return self.lookup(self.scope_of(name), name.id)

    def lookup(self, scope: Scope, name: str) -> Symbol | None:
        if scope.kind != ScopeKind.MODULE and name in scope.globals:
            return self._lookup_module(name)
        if name in scope.nonlocals:
            return self._lookup_enclosing(scope.parent, name)
        if name in scope.symbols:
            return scope.symbols[name]
        return self._lookup_enclosing(scope.parent, name)

    def bindings_of(self, symbol: Symbol) -> list[ast.AST]:
        scope = self._scopes_by_id.get(symbol.scope_id)
        if scope is None:
            return []
        return list(scope.bindings.get(symbol.name, []))

    def references_of(self, symbol: Symbol) -> list[ast.Name]:
        """Every Name node (any context) that resolves to `symbol`."""
        if self._references is None:
            refs: dict[Symbol, list[ast.Name]] = defaultdict(list)
            for node in ast.walk(self.tree):
                if isinstance(node, ast.Name):
                    sym = self.resolve(node)
                    if sym is not None:
                        refs[sym].append(node)
            self._references = dict(refs)
        return list(self._references.get(symbol, []))

    def function_chain(self, scope: Scope) -> list[Scope]:
        """Function-like scopes from `scope` outward, stopping at class/module."""
        chain: list[Scope] = []
        cur: Scope | None = scope
        while cur is not None and cur.kind != ScopeKind.MODULE:
            if cur.kind == ScopeKind.CLASS:
                cur = cur.parent
                continue
            chain.append(cur)
            cur = cur.parent
        return chain

    def has_star_import(self) -> bool:
        return any(
            isinstance(n, ast.ImportFrom) and any(a.name == "*" for a in n.names)
            for n in ast.walk(self.tree)
        )

    # ── Resolution helpers ──────────────────────────────────────────────

    def _lookup_module(self, name: str) -> Symbol | None:
        if name in self.module_scope.symbols:
            return self.module_scope.symbols[name]
        return _builtin_symbol(name)

    def _lookup_enclosing(self, scope: Scope | None, name: str) -> Symbol | None:
        cur = scope
        while cur is not None:
            if cur.kind == ScopeKind.CLASS:
                cur = cur.parent
                continue
            if cur.kind == ScopeKind.MODULE:
                return self._lookup_module(name)
            if name in cur.globals:
                return self._lookup_module(name)
            if name in cur.symbols and name not in cur.nonlocals:
                return cur.symbols[name]
            cur = cur.parent
        return _builtin_symbol(name)

    # ── Pass 1: scope construction ──────────────────────────────────────

    def _new_scope(self, node: ast.AST, kind: ScopeKind, name: str,
                   parent: Scope | None) -> Scope:
        if parent is None:
            scope_id = f"{self.path}::<module>"
        elif parent.kind == ScopeKind.MODULE:
            scope_id = f"{self.path}::{name}"
        else:
            scope_id = f"{parent.id}.{name}"
        # Disambiguate redefinitions and sibling lambdas/comprehensions
        base, n = scope_id, 1
        while scope_id in self._scopes_by_id:
            n += 1
            scope_id = f"{base}#{n}"
        scope = Scope(node, kind, name, parent, scope_id)
        self._scopes_by_id[scope_id] = scope
        return scope

    def _bind(self, scope: Scope, name: str, node: ast.AST) -> None:
        scope.bindings[name].append(node)

    def _visit(self, node: ast.AST, scope: Scope) -> None:
        self._scope_of[node] = scope

        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            for dec in node.decorator_list:
                self._visit(dec, scope)
            self._visit_arguments_outer(node.args, scope)
            if node.returns is not None:
                self._visit(node.returns, scope)
            self._bind(scope, node.name, node)
            inner = self._new_scope(node, ScopeKind.FUNCTION, node.name, scope)
            self._bind_params(node.args, inner)
            for stmt in node.body:
                self._visit(stmt, inner)
            return

        if isinstance(node, ast.Lambda):
            self._visit_arguments_outer(node.args, scope)
            inner = self._new_scope(node, ScopeKind.LAMBDA, "<lambda>", scope)
            self._bind_params(node.args, inner)
            self._visit(node.body, inner)
            return

        if isinstance(node, ast.ClassDef):
            for dec in node.decorator_list:
                self._visit(dec, scope)
            for base in node.bases:
                self._visit(base, scope)
            for kw in node.keywords:
                self._visit(kw, scope)
            self._bind(scope, node.name, node)
            inner = self._new_scope(node, ScopeKind.CLASS, node.name, scope)
            for stmt in node.body:
                self._visit(stmt, inner)
            return

        if isinstance(node, _COMPREHENSIONS):
            self._visit_comprehension(node, scope)
            return

        if isinstance(node, ast.NamedExpr):
            self._visit(node.value, scope)
            target_scope = scope
            while target_scope.kind == ScopeKind.COMPREHENSION and target_scope.parent:
                target_scope = target_scope.parent
            self._scope_of[node.target] = target_scope
            self._bind(target_scope, node.target.id, node.target)
            return

        if isinstance(node, ast.Name):
            if isinstance(node.ctx, (ast.Store, ast.Del)):
                self._bind(scope, node.id, node)
            return

        if isinstance(node, ast.Global):
            scope.globals.update(node.names)
            return

        if isinstance(node, ast.Nonlocal):
            scope.nonlocals.update(node.names)
            return

        if isinstance(node, (ast.Import, ast.ImportFrom)):
            for alias in node.names:
                self._scope_of[alias] = scope
                if alias.name == "*":
                    continue
                local = alias.asname or alias.name.split(".")[0]
                self._bind(scope, local, alias)
            return

        if isinstance(node, ast.ExceptHandler) and node.name:
            self._bind(scope, node.name, node)
        elif isinstance(node, (ast.MatchAs, ast.MatchStar)) and node.name:
            self._bind(scope, node.name, node)
        elif isinstance(node, ast.MatchMapping) and node.rest:
            self._bind(scope, node.rest, node)

        for child in ast.iter_child_nodes(node):
            self._visit(child, scope)

    def _visit_arguments_outer(self, args: ast.arguments, scope: Scope) -> None:
        """Defaults and annotations are evaluated in the defining scope."""
        self._scope_of[args] = scope
        for default in args.defaults + [d for d in args.kw_defaults if d is not None]:
            self._visit(default, scope)
        for arg in _all_args(args):
            self._scope_of[arg] = scope
            if arg.annotation is not None:
                self._visit(arg.annotation, scope)

    def _bind_params(self, args: ast.arguments, scope: Scope) -> None:
        for arg in _all_args(args):
            scope.params.append(arg)
            self._scope_of[arg] = scope
            self._bind(scope, arg.arg, arg)

    def _visit_comprehension(self, node: ast.AST, scope: Scope) -> None:
        generators: list[ast.comprehension] = node.generators
        # The outermost iterable is evaluated in the enclosing scope
        self._visit(generators[0].iter, scope)
        inner = self._new_scope(node, ScopeKind.COMPREHENSION,
                                f"<{type(node).__name__.lower()}>", scope)
        for i, gen in enumerate(generators):
            self._scope_of[gen] = inner
            if i > 0:
                self._visit(gen.iter, inner)
            self._visit(gen.target, inner)
            for cond in gen.ifs:
                self._visit(cond, inner)
        if isinstance(node, ast.DictComp):
            self._visit(node.key, inner)
            self._visit(node.value, inner)
        else:
            self._visit(node.elt, inner)

    # ── Pass 2: symbol construction ─────────────────────────────────────

    def _build_symbols(self, scope: Scope) -> None:
        for name, nodes in list(scope.bindings.items()):
            if scope.kind != ScopeKind.MODULE and name in scope.globals:
                self.module_scope.bindings[name].extend(nodes)
                self._add_symbol(self.module_scope, name)
                continue
            if name in scope.nonlocals:
                target = self._nonlocal_target(scope, name)
                if target is not None:
                    target.bindings[name].extend(nodes)
                    self._add_symbol(target, name)
                continue
            self._add_symbol(scope, name)

    def _nonlocal_target(self, scope: Scope, name: str) -> Scope | None:
        cur = scope.parent
        while cur is not None and cur.kind != ScopeKind.MODULE:
            if cur.is_function_like and name in cur.bindings and name not in cur.nonlocals:
                return cur
            cur = cur.parent
        return None

    def _add_symbol(self, scope: Scope, name: str) -> None:
        nodes = scope.bindings[name]
        first = min(nodes, key=_node_pos)
        kind = self._symbol_kind(scope, first)
        declared = self._declared_type(scope, name, nodes)
        line, col = _node_pos(first)
        scope.symbols[name] = Symbol(
            name=name, kind=kind, scope_id=scope.id,
            declared_type=declared, line=line, column=col,
        )

    def _symbol_kind(self, scope: Scope, first: ast.AST) -> SymbolKind:
        if isinstance(first, ast.arg):
            return SymbolKind.SELF if self._is_self_param(scope, first) else SymbolKind.PARAMETER
        if scope.kind == ScopeKind.MODULE:
            if isinstance(first, (ast.FunctionDef, ast.AsyncFunctionDef)):
                return SymbolKind.FUNCTION
            if isinstance(first, ast.ClassDef):
                return SymbolKind.CLASS
            if isinstance(first, ast.alias):
                return SymbolKind.IMPORT
            return SymbolKind.GLOBAL
        if scope.kind == ScopeKind.CLASS:
            if isinstance(first, (ast.FunctionDef, ast.AsyncFunctionDef)):
                return SymbolKind.PROPERTY if is_property(first) else SymbolKind.METHOD
            if isinstance(first, ast.ClassDef):
                return SymbolKind.CLASS
            if isinstance(first, ast.alias):
                return SymbolKind.IMPORT
            return SymbolKind.FIELD
        return SymbolKind.LOCAL

    def _is_self_param(self, scope: Scope, arg: ast.arg) -> bool:
        if scope.kind != ScopeKind.FUNCTION or scope.parent is None:
            return False
        if scope.parent.kind != ScopeKind.CLASS:
            return False
        if is_staticmethod(scope.node):
            return False
        positional = scope.node.args.posonlyargs + scope.node.args.args
        return bool(positional) and positional[0] is arg

    def _declared_type(self, scope: Scope, name: str, nodes: list[ast.AST]) -> str:
        ordered = sorted(nodes, key=_node_pos)
        # An annotation anywhere wins over inference
        for node in ordered:
            parent = self._parents.get(node)
            if isinstance(node, ast.arg) and node.annotation is not None:
                return ast.unparse(node.annotation)
            if isinstance(parent, ast.AnnAssign) and parent.target is node:
                return ast.unparse(parent.annotation)
        for node in ordered:
            inferred = self._infer_binding(scope, node)
            if inferred != "Any":
                return inferred
        return "Any"

    def _infer_binding(self, scope: Scope, node: ast.AST) -> str:
        if isinstance(node, ast.arg):
            if self._is_self_param(scope, node):
                cls_name = scope.parent.name if scope.parent else "Any"
                return f"type[{cls_name}]" if is_classmethod(scope.node) else cls_name
            return self._infer_param(scope, node)
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            return "Callable"
        if isinstance(node, ast.ClassDef):
            return "type"
        if isinstance(node, ast.alias):
            parent = self._parents.get(node)
            return "module" if isinstance(parent, ast.Import) else "Any"
        if isinstance(node, ast.ExceptHandler):
            if isinstance(node.type, (ast.Name, ast.Attribute)):
                return ast.unparse(node.type)
            return "Exception"
        parent = self._parents.get(node)
        if isinstance(parent, ast.Assign) and node in parent.targets:
            return infer_type(parent.value, self._module_classes)
        if isinstance(parent, ast.NamedExpr) and parent.target is node:
            return infer_type(parent.value, self._module_classes)
        return "Any"

    def _infer_param(self, scope: Scope, arg: ast.arg) -> str:
        args = scope.node.args
        if arg is args.vararg:
            return "tuple"
        if arg is args.kwarg:
            return "dict"
        positional = args.posonlyargs + args.args
        if arg in positional:
            offset = len(positional) - len(args.defaults)
            idx = positional.index(arg)
            if idx >= offset:
                return infer_type(args.defaults[idx - offset], self._module_classes)
        elif arg in args.kwonlyargs:
            default = args.kw_defaults[args.kwonlyargs.index(arg)]
            if default is not None:
                return infer_type(default, self._module_classes)
        return "Any"


# ── Module helpers ──────────────────────────────────────────────────────


def infer_type(value: ast.expr | None, known_classes: set[str] | None = None) -> str:
    """Best-effort static type name of an expression, "Any" when unknown."""
    if value is None:
        return "Any"
    if isinstance(value, ast.Constant):
        if value.value is None:
            return "None"
        return type(value.value).__name__
    if isinstance(value, ast.JoinedStr):
        return "str"
    if isinstance(value, (ast.List, ast.ListComp)):
        return "list"
    if isinstance(value, ast.Tuple):
        return "tuple"
    if isinstance(value, (ast.Dict, ast.DictComp)):
        return "dict"
    if isinstance(value, (ast.Set, ast.SetComp)):
        return "set"
    if isinstance(value, ast.GeneratorExp):
        return "Generator"
    if isinstance(value, ast.Lambda):
        return "Callable"
    if isinstance(value, ast.Compare):
        return "bool"
    if isinstance(value, ast.UnaryOp):
        if isinstance(value.op, ast.Not):
            return "bool"
        return infer_type(value.operand, known_classes)
    if isinstance(value, ast.BinOp):
        left = infer_type(value.left, known_classes)
        right = infer_type(value.right, known_classes)
        if isinstance(value.op, ast.Mod) and left == "str":
            return "str"
        if isinstance(value.op, ast.Div) and {left, right} <= {"int", "float"}:
            return "float"
        if left == right:
            return left
        if {left, right} == {"int", "float"}:
            return "float"
        return "Any"
    if isinstance(value, (ast.BoolOp, ast.IfExp)):
        parts = value.values if isinstance(value, ast.BoolOp) else [value.body, value.orelse]
        types = {infer_type(p, known_classes) for p in parts}
        return types.pop() if len(types) == 1 else "Any"
    if isinstance(value, ast.Call) and isinstance(value.func, ast.Name):
        fname = value.func.id
        if fname in _BUILTIN_TYPES or (known_classes and fname in known_classes):
            return fname
    return "Any"


def is_staticmethod(node: ast.AST) -> bool:
    return _has_decorator(node, {"staticmethod"})


def is_classmethod(node: ast.AST) -> bool:
    return _has_decorator(node, {"classmethod"})


def is_property(node: ast.AST) -> bool:
    """@property, @cached_property, or @<name>.setter/getter/deleter."""
    for dec in getattr(node, "decorator_list", []):
        if isinstance(dec, ast.Name) and dec.id in _PROPERTY_DECORATORS:
            return True
        if isinstance(dec, ast.Attribute):
            if dec.attr in _PROPERTY_DECORATORS or dec.attr in _ACCESSOR_ATTRS:
                return True
    return False


def _has_decorator(node: ast.AST, names: set[str]) -> bool:
    for dec in getattr(node, "decorator_list", []):
        target = dec.func if isinstance(dec, ast.Call) else dec
        if isinstance(target, ast.Name) and target.id in names:
            return True
        if isinstance(target, ast.Attribute) and target.attr in names:
            return True
    return False


def _all_args(args: ast.arguments) -> list[ast.arg]:
    result = list(args.posonlyargs) + list(args.args)
    if args.vararg is not None:
        result.append(args.vararg)
    result.extend(args.kwonlyargs)
    if args.kwarg is not None:
        result.append(args.kwarg)
    return result


def _node_pos(node: ast.AST) -> tuple[int, int]:
    return (getattr(node, "lineno", 0), getattr(node, "col_offset", 0))


def _builtin_symbol(name: str) -> Symbol | None:
    if name in BUILTIN_NAMES:
        return Symbol(name=name, kind=SymbolKind.BUILTIN, scope_id="builtins")
    return None

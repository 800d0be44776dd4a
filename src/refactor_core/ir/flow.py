"""Region data flow: which symbols cross the boundary of a code region.

Two walks share one definite-assignment walker:
  - the region walk, in execution order, finds reads that happen before the
    symbol is definitely assigned inside the region (live-in candidates) and
    the symbols the region writes;
  - the continuation walk starts right after the region, climbs enclosing
    blocks (re-entering enclosing loops once) and finds reads of
    region-written symbols that happen before they are re-assigned (live-out).

Definite assignment: `if`/`match` branches are intersected (branches that
end in return/raise/break/continue drop out), loops may run zero times, and
exception handlers start from the state before the `try`.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from typing import Sequence

from refactor_core.ir.nodes import Symbol, SymbolKind
from refactor_core.ir.scopes import Scope, SemanticModel

log = logging.getLogger(__name__)

_TRACKED_KINDS = (SymbolKind.LOCAL, SymbolKind.PARAMETER, SymbolKind.SELF)
_FUNCTIONS = (ast.FunctionDef, ast.AsyncFunctionDef)
_LOOPS = (ast.For, ast.AsyncFor, ast.While)
_TRY_TYPES = tuple(t for t in (ast.Try, getattr(ast, "TryStar", None)) if t is not None)
_COMPREHENSIONS = (ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)


@dataclass
class RegionFlow:
    live_in: set[Symbol] = field(default_factory=set)
    live_out: set[Symbol] = field(default_factory=set)
    always_assigned: set[Symbol] = field(default_factory=set)
    read: set[Symbol] = field(default_factory=set)
    written: set[Symbol] = field(default_factory=set)
    captured: set[Symbol] = field(default_factory=set)
    declared_inside: set[Symbol] = field(default_factory=set)


def tracked_symbols(model: SemanticModel, scope: Scope) -> set[Symbol]:
    """Frame variables visible from `scope`: its function chain's locals/params/self."""
    tracked: set[Symbol] = set()
    for s in model.function_chain(scope):
        tracked.update(sym for sym in s.symbols.values() if sym.kind in _TRACKED_KINDS)
    return tracked


def region_flow(model: SemanticModel, nodes: Sequence[ast.AST]) -> RegionFlow:
    """Classify the tracked symbols a region touches."""
    if not nodes:
        return RegionFlow()

    scope = model.scope_of(nodes[0])
    tracked = tracked_symbols(model, scope)
    inside = {n for root in nodes for n in ast.walk(root)}

    walker = _AssignmentWalker(model, tracked)
    state: set[Symbol] = set()
    for node in nodes:
        if isinstance(node, ast.stmt):
            walker.stmt(node, state)
        else:
            walker.expr(node, state)

    flow = RegionFlow(
        read=set(walker.reads),
        written=set(walker.writes),
        always_assigned=state & walker.writes,
    )
    flow.live_in = {
        sym for sym in walker.unassigned_reads
        if _reaches_region(model, sym, scope, nodes, inside)
    }
    flow.live_out = _live_out(model, nodes, inside, tracked, flow.written)
    flow.captured = _captured(model, nodes, tracked)
    flow.declared_inside = _declared_inside(model, scope, tracked, inside)

    log.debug(
        "Region flow in %s: in=%s out=%s",
        model.path,
        sorted(s.name for s in flow.live_in),
        sorted(s.name for s in flow.live_out),
    )
    return flow


# ── Definite-assignment walker ──────────────────────────────────────────────


class _AssignmentWalker:
    """Walk statements in execution order over a mutable assigned-set."""

    def __init__(self, model: SemanticModel, tracked: set[Symbol]) -> None:
        self.model = model
        self.tracked = tracked
        self.reads: set[Symbol] = set()
        self.writes: set[Symbol] = set()
        # First read of each symbol that happened while it was unassigned
        self.unassigned_reads: dict[Symbol, ast.AST] = {}

    def block(self, stmts: Sequence[ast.stmt], state: set[Symbol]) -> bool:
        """Walk a statement list; return whether control can fall off its end."""
        for stmt in stmts:
            if not self.stmt(stmt, state):
                return False
        return True

    def stmt(self, node: ast.stmt, state: set[Symbol]) -> bool:
        if isinstance(node, _FUNCTIONS):
            for dec in node.decorator_list:
                self.expr(dec, state)
            self._arguments(node.args, state)
            self.block(node.body, set(state))
            self._bind(node, node.name, state)
            return True

        if isinstance(node, ast.ClassDef):
            for e in node.decorator_list + node.bases:
                self.expr(e, state)
            for kw in node.keywords:
                self.expr(kw.value, state)
            self.block(node.body, set(state))
            self._bind(node, node.name, state)
            return True

        if isinstance(node, ast.Assign):
            self.expr(node.value, state)
            for target in node.targets:
                self.expr(target, state)
            return True

        if isinstance(node, ast.AnnAssign):
            if node.value is not None:
                self.expr(node.value, state)
                self.expr(node.target, state)
            elif not isinstance(node.target, ast.Name):
                self.expr(node.target, state)
            return True

        if isinstance(node, ast.AugAssign):
            if isinstance(node.target, ast.Name):
                sym = self._tracked(node.target)
                if sym is not None:
                    self._read(sym, node.target, state)
                self.expr(node.value, state)
                if sym is not None:
                    self._write(sym, state)
            else:
                self.expr(node.target, state)
                self.expr(node.value, state)
            return True

        if isinstance(node, ast.Delete):
            for target in node.targets:
                self.expr(target, state)
            return True

        if isinstance(node, ast.Return):
            self.expr(node.value, state)
            return False

        if isinstance(node, ast.Raise):
            self.expr(node.exc, state)
            self.expr(node.cause, state)
            return False

        if isinstance(node, (ast.Break, ast.Continue)):
            return False

        if isinstance(node, ast.If):
            self.expr(node.test, state)
            return self._branches(state, [node.body, node.orelse])

        if isinstance(node, (ast.For, ast.AsyncFor)):
            self.expr(node.iter, state)
            body_state = set(state)
            self.expr(node.target, body_state)
            self.block(node.body, body_state)
            # Zero iterations: only the else clause is definite
            self.block(node.orelse, state)
            return True

        if isinstance(node, ast.While):
            self.expr(node.test, state)
            self.block(node.body, set(state))
            self.block(node.orelse, state)
            return True

        if isinstance(node, (ast.With, ast.AsyncWith)):
            for item in node.items:
                self.expr(item.context_expr, state)
                self.expr(item.optional_vars, state)
            return self.block(node.body, state)

        if isinstance(node, _TRY_TYPES):
            return self._try(node, state)

        if isinstance(node, ast.Match):
            self.expr(node.subject, state)
            outcomes = [set(state)]
            for case in node.cases:
                case_state = set(state)
                self._pattern(case.pattern, case_state)
                self.expr(case.guard, case_state)
                if self.block(case.body, case_state):
                    outcomes.append(case_state)
            _replace(state, set.intersection(*outcomes))
            return True

        if isinstance(node, (ast.Import, ast.ImportFrom)):
            for alias in node.names:
                if alias.name != "*":
                    self._bind(alias, alias.asname or alias.name.split(".")[0], state)
            return True

        for child in ast.iter_child_nodes(node):
            self.expr(child, state)
        return True

    def expr(self, node: ast.AST | None, state: set[Symbol]) -> None:
        if node is None:
            return

        if isinstance(node, ast.Name):
            sym = self._tracked(node)
            if sym is None:
                return
            if isinstance(node.ctx, ast.Load):
                self._read(sym, node, state)
            elif isinstance(node.ctx, ast.Store):
                self._write(sym, state)
            else:
                self._read(sym, node, state)
                state.discard(sym)
            return

        if isinstance(node, ast.NamedExpr):
            self.expr(node.value, state)
            self.expr(node.target, state)
            return

        if isinstance(node, ast.Lambda):
            self._arguments(node.args, state)
            self.expr(node.body, set(state))
            return

        if isinstance(node, _COMPREHENSIONS):
            for gen in node.generators:
                self.expr(gen.iter, state)
                self.expr(gen.target, state)
                for cond in gen.ifs:
                    self.expr(cond, state)
            if isinstance(node, ast.DictComp):
                self.expr(node.key, state)
                self.expr(node.value, state)
            else:
                self.expr(node.elt, state)
            return

        for child in ast.iter_child_nodes(node):
            self.expr(child, state)

    # ── helpers ──

    def _branches(self, state: set[Symbol], bodies: list[list[ast.stmt]]) -> bool:
        outcomes = []
        for body in bodies:
            branch = set(state)
            if self.block(body, branch):
                outcomes.append(branch)
        if not outcomes:
            return False
        _replace(state, set.intersection(*outcomes))
        return True

    def _try(self, node: ast.AST, state: set[Symbol]) -> bool:
        before = set(state)
        outcomes = []
        if self.block(node.body, state) and self.block(node.orelse, state):
            outcomes.append(set(state))
        for handler in node.handlers:
            handler_state = set(before)
            self.expr(handler.type, handler_state)
            if handler.name:
                self._bind(handler, handler.name, handler_state)
            if self.block(handler.body, handler_state):
                outcomes.append(handler_state)

        falls = bool(outcomes)
        merged = set.intersection(*outcomes) if outcomes else set(before)
        if node.finalbody:
            final_state = set(before)
            falls = self.block(node.finalbody, final_state) and falls
            merged |= final_state - before
        _replace(state, merged)
        return falls

    def _pattern(self, pattern: ast.AST, state: set[Symbol]) -> None:
        for node in ast.walk(pattern):
            if isinstance(node, ast.MatchValue):
                self.expr(node.value, state)
            elif isinstance(node, ast.MatchClass):
                self.expr(node.cls, state)
            elif isinstance(node, (ast.MatchAs, ast.MatchStar)) and node.name:
                self._bind(node, node.name, state)
            elif isinstance(node, ast.MatchMapping) and node.rest:
                self._bind(node, node.rest, state)

    def _arguments(self, args: ast.arguments, state: set[Symbol]) -> None:
        for default in args.defaults:
            self.expr(default, state)
        for default in args.kw_defaults:
            self.expr(default, state)

    def _tracked(self, name: ast.Name) -> Symbol | None:
        sym = self.model.resolve(name)
        return sym if sym in self.tracked else None

    def _bind(self, node: ast.AST, name: str, state: set[Symbol]) -> None:
        sym = self.model.lookup(self.model.scope_of(node), name)
        if sym in self.tracked:
            self._write(sym, state)

    def _read(self, sym: Symbol, node: ast.AST, state: set[Symbol]) -> None:
        self.reads.add(sym)
        if sym not in state and sym not in self.unassigned_reads:
            self.unassigned_reads[sym] = node

    def _write(self, sym: Symbol, state: set[Symbol]) -> None:
        self.writes.add(sym)
        state.add(sym)


def _replace(state: set[Symbol], new: set[Symbol]) -> None:
    state.clear()
    state.update(new)


# ── Live-in filtering ───────────────────────────────────────────────────────


def _reaches_region(model: SemanticModel, sym: Symbol, scope: Scope,
                    nodes: Sequence[ast.AST], inside: set[ast.AST]) -> bool:
    """Whether some binding can flow into the region's start.

    A binding earlier in source reaches it, and so does any binding inside an
    enclosing loop, the region's own included, through the next iteration.
    """
    if sym.kind in (SymbolKind.PARAMETER, SymbolKind.SELF):
        return True
    own = _owning_function(model, scope)
    if own is None or sym.scope_id != own.id:
        # Bound in an enclosing function
        return True

    bindings = model.bindings_of(sym)
    start = (nodes[0].lineno, nodes[0].col_offset)
    if any(_pos(b) < start for b in bindings if b not in inside):
        return True
    for loop in _enclosing_loops(model, nodes[0]):
        loop_nodes = set(ast.walk(loop))
        if any(b in loop_nodes for b in bindings):
            return True
    return False


def _owning_function(model: SemanticModel, scope: Scope) -> Scope | None:
    chain = model.function_chain(scope)
    return chain[0] if chain else None


def _enclosing_loops(model: SemanticModel, node: ast.AST) -> list[ast.AST]:
    loops = []
    for anc in model.ancestors(node):
        if isinstance(anc, _FUNCTIONS + (ast.Lambda, ast.ClassDef, ast.Module)):
            break
        if isinstance(anc, _LOOPS):
            loops.append(anc)
    return loops


def _pos(node: ast.AST) -> tuple[int, int]:
    return (getattr(node, "lineno", 0), getattr(node, "col_offset", 0))


# ── Live-out: continuation walk ─────────────────────────────────────────────


def _live_out(model: SemanticModel, nodes: Sequence[ast.AST], inside: set[ast.AST],
              tracked: set[Symbol], written: set[Symbol]) -> set[Symbol]:
    if not written:
        return set()

    walker = _AssignmentWalker(model, tracked)
    state: set[Symbol] = set()
    node = nodes[-1]
    if not isinstance(node, ast.stmt):
        node = next((a for a in model.ancestors(node) if isinstance(a, ast.stmt)), None)

    while node is not None:
        parent = model.parent_of(node)
        if parent is None:
            break

        if isinstance(parent, _TRY_TYPES) and any(h is node for h in parent.handlers):
            walker.block(parent.finalbody, state)
            node = parent
            continue

        field_name, stmts = _statement_list(parent, node)
        if stmts is not None:
            rest = stmts[_index(stmts, node) + 1:]
            falls = walker.block(rest, state)
            if not falls and any(isinstance(s, (ast.Return, ast.Raise)) for s in rest):
                break

            if isinstance(parent, _LOOPS) and field_name == "body":
                # Next iteration re-enters the loop, region included
                loop_state = set(state)
                if isinstance(parent, ast.While):
                    walker.expr(parent.test, loop_state)
                walker.block(parent.body, loop_state)
                walker.block(parent.orelse, state)
            elif isinstance(parent, _TRY_TYPES):
                if field_name == "body":
                    for handler in parent.handlers:
                        walker.block(handler.body, set(state))
                    walker.block(parent.orelse, state)
                if field_name in ("body", "orelse"):
                    walker.block(parent.finalbody, state)

        if isinstance(parent, _FUNCTIONS + (ast.Lambda, ast.ClassDef, ast.Module)):
            break
        node = parent

    live_out = {sym for sym in walker.unassigned_reads if sym in written}

    # Closures defined outside the region observe the region's writes
    for sym in written - live_out:
        for ref in model.references_of(sym):
            if ref in inside:
                continue
            if model.scope_of(ref).id != sym.scope_id:
                live_out.add(sym)
                break
    return live_out


def _statement_list(parent: ast.AST, node: ast.AST) -> tuple[str | None, list | None]:
    for name in ("body", "orelse", "finalbody"):
        stmts = getattr(parent, name, None)
        if isinstance(stmts, list) and any(s is node for s in stmts):
            return name, stmts
    return None, None


def _index(stmts: list, node: ast.AST) -> int:
    for i, s in enumerate(stmts):
        if s is node:
            return i
    raise ValueError("node not in statement list")


# ── Captures and declarations ───────────────────────────────────────────────


def _captured(model: SemanticModel, nodes: Sequence[ast.AST],
              tracked: set[Symbol]) -> set[Symbol]:
    """Tracked symbols referenced from lambdas or nested defs inside the region."""
    captured: set[Symbol] = set()
    for root in nodes:
        for node in ast.walk(root):
            if not isinstance(node, _FUNCTIONS + (ast.Lambda,)):
                continue
            body = node.body if isinstance(node.body, list) else [node.body]
            for stmt in body:
                for sub in ast.walk(stmt):
                    if isinstance(sub, ast.Name):
                        sym = model.resolve(sub)
                        if sym in tracked:
                            captured.add(sym)
    return captured


def _declared_inside(model: SemanticModel, scope: Scope, tracked: set[Symbol],
                     inside: set[ast.AST]) -> set[Symbol]:
    own = _owning_function(model, scope)
    if own is None:
        return set()
    declared = set()
    for sym in tracked:
        if sym.kind != SymbolKind.LOCAL or sym.scope_id != own.id:
            continue
        bindings = model.bindings_of(sym)
        if bindings and min(bindings, key=_pos) in inside:
            declared.add(sym)
    return declared

"""Detect non-public class members that nothing references.

Two strategies:
  - symbol-aware: program-wide reference search over a snapshot; a member is
    unused when the only location found is its own declaration.
  - syntactic: name occurrences counted over the declaring file only, used
    when no snapshot is available.
"""

from __future__ import annotations

import ast
import asyncio
import logging
from collections import Counter
from enum import Enum

from refactor_core.config import AnalyzerSettings
from refactor_core.ir.nodes import Location, MemberInfo
from refactor_core.ir.references import accessor_decorator_names, find_references
from refactor_core.ir.snapshot import CompilationUnit, ProgramSnapshot
from refactor_core.models import UnusedMember, UnusedMembersReport
from refactor_core.walkers.members import class_members

log = logging.getLogger(__name__)

_REFLECTION_CALLS = {"getattr", "setattr", "hasattr", "delattr"}


class UnusedMemberStrategy(str, Enum):
    SYMBOL_AWARE = "symbol_aware"
    SYNTACTIC = "syntactic"


async def find_unused_members(
    unit: CompilationUnit,
    snapshot: ProgramSnapshot | None = None,
    *,
    settings: AnalyzerSettings | None = None,
) -> UnusedMembersReport:
    """Unused non-public members of every class in `unit`.

    Never raises for analysis failures; they are recorded in `errors`.
    Task cancellation propagates to the caller.
    """
    settings = settings or AnalyzerSettings()
    strategy = (
        UnusedMemberStrategy.SYMBOL_AWARE if snapshot is not None
        else UnusedMemberStrategy.SYNTACTIC
    )
    report = UnusedMembersReport(strategy=strategy.value, file=unit.path)

    try:
        candidates = _candidates(unit, report)
        if strategy is UnusedMemberStrategy.SYNTACTIC:
            report.members = _syntactic(unit, candidates)
        else:
            if snapshot.get_unit(unit.path) is not unit:
                snapshot = snapshot.with_unit(unit)
            report.members = await _symbol_aware(unit, snapshot, candidates, settings, report)
    except Exception as exc:
        log.debug("Unused member detection failed for %s", unit.path, exc_info=True)
        report.errors.append(f"Analysis error: {exc}")

    log.info(
        "Unused members in %s (%s): %d found", unit.path, strategy.value, len(report.members),
    )
    return report


def find_unused_members_in_source(source: str, path: str = "<string>") -> UnusedMembersReport:
    """Syntactic detection over a single source text."""
    unit = CompilationUnit(path=path, source=source)
    report = UnusedMembersReport(strategy=UnusedMemberStrategy.SYNTACTIC.value, file=path)
    try:
        report.members = _syntactic(unit, _candidates(unit, report))
    except Exception as exc:
        log.debug("Unused member detection failed for %s", path, exc_info=True)
        report.errors.append(f"Analysis error: {exc}")
    return report


# ── Candidates ──────────────────────────────────────────────────────────────

def _candidates(unit: CompilationUnit, report: UnusedMembersReport) -> list[MemberInfo]:
    if unit.tree is None:
        exc = unit.syntax_error
        report.errors.append(f"Cannot parse {unit.path}: {exc.msg if exc else 'unknown error'}")
        return []
    members = []
    for node in ast.walk(unit.tree):
        if isinstance(node, ast.ClassDef):
            members.extend(m for m in class_members(node) if not m.is_public)
    return members


def _unused(unit: CompilationUnit, member: MemberInfo) -> UnusedMember:
    return UnusedMember(
        name=member.name,
        kind=member.kind,
        class_name=member.class_name,
        file=unit.path,
        line=member.line,
    )


# ── Symbol-aware ────────────────────────────────────────────────────────────

async def _symbol_aware(
    unit: CompilationUnit,
    snapshot: ProgramSnapshot,
    candidates: list[MemberInfo],
    settings: AnalyzerSettings,
    report: UnusedMembersReport,
) -> list[UnusedMember]:
    limit = asyncio.Semaphore(settings.reference_search_concurrency)

    async def is_unused(member: MemberInfo) -> bool:
        async with limit:
            locations = await find_references(member, snapshot, unit.path)
        declaration = Location(unit.path, member.span)
        return all(loc == declaration for loc in locations)

    results = await asyncio.gather(
        *(is_unused(m) for m in candidates), return_exceptions=True,
    )

    unused = []
    for member, result in zip(candidates, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            report.errors.append(f"Reference search failed for '{member.name}': {result}")
        elif result:
            unused.append(_unused(unit, member))
    return unused


# ── Syntactic ───────────────────────────────────────────────────────────────

def _syntactic(unit: CompilationUnit, candidates: list[MemberInfo]) -> list[UnusedMember]:
    occurrences = _count_occurrences(unit.tree) if candidates else Counter()
    unused = []
    for member in candidates:
        count = occurrences[member.name]
        if member.kind == "field":
            # The declaring store is itself an occurrence
            count -= 1
        if count <= 0:
            unused.append(_unused(unit, member))
    return unused


def _count_occurrences(tree: ast.Module) -> Counter:
    """Identifier, attribute and reflection-literal occurrences per name."""
    counts: Counter = Counter()
    accessors = accessor_decorator_names(tree)
    for node in ast.walk(tree):
        if isinstance(node, ast.Name) and node not in accessors:
            counts[node.id] += 1
        elif isinstance(node, ast.Attribute):
            counts[node.attr] += 1
        elif (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Name)
            and node.func.id in _REFLECTION_CALLS
            and len(node.args) >= 2
            and isinstance(node.args[1], ast.Constant)
            and isinstance(node.args[1].value, str)
        ):
            counts[node.args[1].value] += 1
    return counts

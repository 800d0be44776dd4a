"""Program representation consumed by the analysis core.

Provides:
    build_program(sources) -> ProgramSnapshot
    load_program(root) -> ProgramSnapshot
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from refactor_core.ir.nodes import (
    DiagnosticRecord,
    Location,
    MemberInfo,
    Position,
    Span,
    Symbol,
    SymbolKind,
)
from refactor_core.ir.snapshot import CompilationUnit, ProgramSnapshot
from refactor_core.utils import discover_python_files

log = logging.getLogger(__name__)


def build_program(sources: Mapping[str, str]) -> ProgramSnapshot:
    """Build a snapshot from in-memory sources keyed by relative path.

    Args:
        sources: Mapping of "/"-separated relative path to source text.

    Returns:
        ProgramSnapshot with one CompilationUnit per path. Units that fail to
        parse are kept; their syntax error surfaces as a diagnostic.
    """
    snapshot = ProgramSnapshot.of(
        CompilationUnit(path=path.replace("\\", "/"), source=text)
        for path, text in sources.items()
    )
    log.debug("Program built: %d units", len(snapshot))
    return snapshot


def load_program(root: Path) -> ProgramSnapshot:
    """Read every Python file under `root` into a snapshot."""
    sources: dict[str, str] = {}
    for fpath in discover_python_files(root):
        try:
            sources[fpath.relative_to(root).as_posix()] = fpath.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            log.debug("Skipping unreadable file %s", fpath, exc_info=True)

    log.info("Loaded %d Python files from %s", len(sources), root)
    return build_program(sources)


__all__ = [
    "build_program",
    "load_program",
    "CompilationUnit",
    "DiagnosticRecord",
    "Location",
    "MemberInfo",
    "Position",
    "ProgramSnapshot",
    "Span",
    "Symbol",
    "SymbolKind",
]

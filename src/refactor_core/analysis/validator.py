"""Check that a transformed unit introduces no new compile errors."""

from __future__ import annotations

import logging
import threading

from refactor_core.config import AnalyzerSettings
from refactor_core.ir.diagnostics import compute_diagnostics
from refactor_core.ir.snapshot import CompilationUnit, ProgramSnapshot
from refactor_core.models import ValidationResult

log = logging.getLogger(__name__)


def validate(
    modified_unit: CompilationUnit,
    original_snapshot: ProgramSnapshot,
    *,
    settings: AnalyzerSettings | None = None,
    cancel: threading.Event | None = None,
) -> ValidationResult:
    """Compare diagnostics before and after substituting `modified_unit`.

    Errors that already existed in the original program are ignored; every
    error key that is new is reported. All warnings of the modified program
    are passed through. Never raises: failures become a ValidationResult with
    `failure` set.
    """
    result = ValidationResult()
    path = modified_unit.path

    try:
        if original_snapshot.get_unit(path) is None:
            result.errors.append(f"Document '{path}' not found in the original program")
            result.failure = "not_found"
            return result

        baseline = {
            d.key
            for d in compute_diagnostics(original_snapshot, settings=settings, cancel=cancel)
            if d.is_error
        }

        modified = original_snapshot.with_unit(modified_unit)
        diagnostics = compute_diagnostics(modified, settings=settings, cancel=cancel)

        for d in diagnostics:
            if not d.is_error:
                result.warnings.append(str(d))
            elif d.key not in baseline:
                result.errors.append(str(d))

        if result.errors:
            result.failure = "semantic_regression"
        log.info(
            "Validated %s: %d new error(s), %d warning(s)",
            path, len(result.errors), len(result.warnings),
        )
    except Exception as exc:
        log.debug("Validation failed for %s", path, exc_info=True)
        result.errors.append(f"Validation error: {exc}")
        result.failure = "analysis_failure"

    return result

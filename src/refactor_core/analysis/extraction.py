"""Pre-assessment of an extract-function request.

Combines data flow and edge-case facts into the errors that reject the
extraction outright and the warnings a caller should surface.
"""

from __future__ import annotations

import ast
import logging
from typing import Sequence

from refactor_core.analysis.data_flow import analyze_statements
from refactor_core.analysis.edge_cases import detect_edge_cases
from refactor_core.config import AnalyzerSettings
from refactor_core.errors import RegionNotFoundError
from refactor_core.ir.scopes import SemanticModel
from refactor_core.models import ExtractionAssessment

log = logging.getLogger(__name__)

_FUNCTIONS = (ast.FunctionDef, ast.AsyncFunctionDef)


def assess_extraction(
    statements: Sequence[ast.stmt],
    model: SemanticModel,
    *,
    containing: ast.FunctionDef | ast.AsyncFunctionDef | None = None,
    settings: AnalyzerSettings | None = None,
) -> ExtractionAssessment:
    """Decide whether `statements` can move into a new function.

    `containing` is the function the statements live in; it is looked up
    from the tree when omitted.
    """
    settings = settings or AnalyzerSettings()
    stmts = list(statements)
    if not stmts:
        return ExtractionAssessment(
            errors=[str(RegionNotFoundError())],
            rejection="not_found",
        )

    edges = detect_edge_cases(stmts)
    flow = analyze_statements(stmts, model)
    assessment = ExtractionAssessment(data_flow=flow, edge_cases=edges)

    if edges.has_dangling_loop_exit:
        assessment.errors.append("Cannot extract code containing break/continue statements")
    if edges.has_generators:
        assessment.errors.append("Cannot extract code containing yield statements")
    assessment.warnings.extend(edges.warnings)

    if flow.has_captures:
        assessment.warnings.append(
            "Selected code captures variables in closures: "
            + ", ".join(flow.captured_variables)
        )
    if containing is None:
        containing = _containing_function(model, stmts[0])
    if edges.has_return and not _is_whole_body(containing, stmts):
        assessment.warnings.append(
            "Selected code contains return statements; "
            "callers of the extracted function must propagate the returned value"
        )
    if edges.has_scope_declarations:
        assessment.warnings.append(
            "Selected code declares global/nonlocal names; "
            "the extracted function needs the same declarations"
        )
    if len(flow.output_variables) > 1:
        assessment.warnings.append(
            f"Multiple output variables ({', '.join(flow.output_variables)}) "
            "will be returned as a tuple"
        )

    if settings.verbose_extraction:
        if flow.has_inputs:
            assessment.warnings.append(f"Input variables: {', '.join(flow.input_variables)}")
        if flow.has_outputs:
            assessment.warnings.append(f"Output variables: {', '.join(flow.output_variables)}")
        if edges.has_async_await:
            assessment.warnings.append(
                "Selected code awaits; the extracted function must be async"
            )
        if edges.has_exception_handling:
            assessment.warnings.append(
                "Selected code contains exception handling; "
                "keep handlers together with the code they protect"
            )

    if assessment.errors:
        assessment.rejection = "structural"
    log.info(
        "Extraction assessment in %s (line %d): %d error(s), %d warning(s)",
        model.path, stmts[0].lineno, len(assessment.errors), len(assessment.warnings),
    )
    return assessment


def _containing_function(model: SemanticModel, node: ast.AST) -> ast.AST | None:
    for anc in model.ancestors(node):
        if isinstance(anc, _FUNCTIONS):
            return anc
    return None


def _is_whole_body(func: ast.AST | None, stmts: list[ast.stmt]) -> bool:
    if func is None:
        return False
    body = func.body
    return len(body) == len(stmts) and all(a is b for a, b in zip(body, stmts))

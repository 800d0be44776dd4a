"""Refactoring safety analysis.

Provides:
    analyze_data_flow(node, model) -> DataFlowFacts
    analyze_statements(statements, model) -> DataFlowFacts
    analyze_region(region, model) -> DataFlowFacts
    detect_edge_cases(node_or_statements) -> EdgeCaseReport
    validate(modified_unit, original_snapshot) -> ValidationResult
    assess_extraction(statements, model) -> ExtractionAssessment
"""

from refactor_core.analysis.data_flow import analyze_data_flow, analyze_region, analyze_statements
from refactor_core.analysis.edge_cases import detect_edge_cases
from refactor_core.analysis.extraction import assess_extraction
from refactor_core.analysis.validator import validate

__all__ = [
    "analyze_data_flow",
    "analyze_region",
    "analyze_statements",
    "assess_extraction",
    "detect_edge_cases",
    "validate",
]

"""Pydantic models for all analysis reports."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, computed_field


# ── Data flow ───────────────────────────────────────────────────────────────

class DataFlowFacts(BaseModel):
    input_variables: list[str] = Field(default_factory=list)
    output_variables: list[str] = Field(default_factory=list)
    local_variables: list[str] = Field(default_factory=list)
    captured_variables: list[str] = Field(default_factory=list)
    declared_inside_region: list[str] = Field(default_factory=list)
    variable_types: dict[str, str] = Field(default_factory=dict)

    @property
    def has_inputs(self) -> bool:
        return bool(self.input_variables)

    @property
    def has_outputs(self) -> bool:
        return bool(self.output_variables)

    @property
    def has_locals(self) -> bool:
        return bool(self.local_variables)

    @property
    def has_captures(self) -> bool:
        return bool(self.captured_variables)


# ── Edge cases ──────────────────────────────────────────────────────────────

class EdgeCaseReport(BaseModel):
    has_async_await: bool = False
    has_resource_scope: bool = False
    has_exception_handling: bool = False
    has_return: bool = False
    has_loop_exit: bool = False
    has_dangling_loop_exit: bool = False   # break/continue whose loop is outside the region
    has_closures: bool = False
    has_nested_callables: bool = False
    has_generators: bool = False
    has_scope_declarations: bool = False
    detected_edge_cases: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# ── Validation ──────────────────────────────────────────────────────────────

class ValidationResult(BaseModel):
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    failure: Literal["not_found", "semantic_regression", "analysis_failure"] | None = None

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not self.errors


class ExtractionAssessment(BaseModel):
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    rejection: Literal["structural", "not_found"] | None = None
    data_flow: DataFlowFacts = Field(default_factory=DataFlowFacts)
    edge_cases: EdgeCaseReport = Field(default_factory=EdgeCaseReport)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not self.errors


# ── Member walkers ──────────────────────────────────────────────────────────

class MemberUsageFacts(BaseModel):
    uses_instance_members: bool = False
    calls_other_methods: bool = False
    is_recursive: bool = False
    references_self: bool = False          # bare `self` passed or returned
    calls_super: bool = False
    used_instance_members: list[str] = Field(default_factory=list)
    called_methods: list[str] = Field(default_factory=list)

    def can_convert_to_static(self, with_instance_parameter: bool = False) -> bool:
        """Whether the method survives becoming a @staticmethod.

        Threading an explicit instance parameter through the signature makes
        any instance dependency reachable again.
        """
        if with_instance_parameter:
            return True
        return not (
            self.uses_instance_members
            or self.references_self
            or self.calls_other_methods
            or self.is_recursive
            or self.calls_super
        )


class UnusedMember(BaseModel):
    name: str
    kind: Literal["method", "property", "field"]
    class_name: str
    file: str
    line: int

    @computed_field
    @property
    def suggestion(self) -> str:
        return "safe-delete-field" if self.kind == "field" else "safe-delete-method"

    @property
    def message(self) -> str:
        label = "Field" if self.kind == "field" else "Method"
        return f"{label} '{self.name}' appears unused -> {self.suggestion}"


class UnusedMembersReport(BaseModel):
    strategy: Literal["symbol_aware", "syntactic"]
    file: str
    members: list[UnusedMember] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def suggestions(self) -> list[str]:
        return [m.message for m in self.members]

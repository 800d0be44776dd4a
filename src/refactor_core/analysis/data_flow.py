"""Variables crossing the boundary of a selected region.

Inputs must become parameters of an extracted function, outputs its return
values, locals stay inside it. The implicit `self` never becomes a parameter
or return value.
"""

from __future__ import annotations

import ast
import logging
from typing import Sequence

from refactor_core.ir.flow import region_flow, tracked_symbols
from refactor_core.ir.nodes import Symbol, SymbolKind, VARIABLE_KINDS
from refactor_core.ir.regions import Region
from refactor_core.ir.scopes import SemanticModel
from refactor_core.models import DataFlowFacts

log = logging.getLogger(__name__)


def analyze_data_flow(node: ast.AST, model: SemanticModel) -> DataFlowFacts:
    """Data flow facts for a single statement or expression."""
    return _analyze([node], model)


def analyze_statements(statements: Sequence[ast.stmt], model: SemanticModel) -> DataFlowFacts:
    """Data flow facts for a contiguous run of sibling statements."""
    return _analyze(list(statements), model)


def analyze_region(region: Region, model: SemanticModel) -> DataFlowFacts:
    if region.is_empty:
        return DataFlowFacts()
    if len(region.nodes) == 1:
        return analyze_data_flow(region.nodes[0], model)
    return analyze_statements(region.statements, model)


def _analyze(nodes: list[ast.AST], model: SemanticModel) -> DataFlowFacts:
    if not nodes:
        return DataFlowFacts()

    flow = region_flow(model, nodes)
    types: dict[str, str] = {}

    def names(symbols: set[Symbol], kinds=VARIABLE_KINDS) -> set[str]:
        picked = {s for s in symbols if s.kind in kinds}
        for s in picked:
            types.setdefault(s.name, s.declared_type)
        return {s.name for s in picked}

    inputs = names(flow.live_in)
    outputs = names(flow.live_out)
    local = names(flow.always_assigned, {SymbolKind.LOCAL}) - outputs
    declared = {s.name for s in flow.declared_inside}

    # Fail open: any frame variable the region touches that was not classified
    # above is passed in, unless its first binding is inside the region
    tracked = tracked_symbols(model, model.scope_of(nodes[0]))
    for root in nodes:
        for node in ast.walk(root):
            if not isinstance(node, ast.Name):
                continue
            sym = model.resolve(node)
            if sym is None or sym.kind not in VARIABLE_KINDS or sym not in tracked:
                continue
            if sym.name in inputs or sym.name in outputs or sym.name in local:
                continue
            if sym.name in declared:
                continue
            inputs.add(sym.name)
            types.setdefault(sym.name, sym.declared_type)

    classified = inputs | outputs | local
    facts = DataFlowFacts(
        input_variables=sorted(inputs),
        output_variables=sorted(outputs),
        local_variables=sorted(local),
        captured_variables=sorted(names(flow.captured)),
        declared_inside_region=sorted(declared),
        variable_types={name: types[name] for name in sorted(classified)},
    )
    log.debug(
        "Data flow in %s: inputs=%s outputs=%s locals=%s",
        model.path, facts.input_variables, facts.output_variables, facts.local_variables,
    )
    return facts

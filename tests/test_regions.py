"""Tests for selection parsing and statement selection."""

from __future__ import annotations

import ast
import textwrap

import pytest

from refactor_core.errors import RegionNotFoundError, SelectionError
from refactor_core.ir.nodes import Position, Span
from refactor_core.ir.regions import Region, parse_selection_range, select_statements
from refactor_core.ir.snapshot import CompilationUnit

CODE = textwrap.dedent("""\
    def f(a):
        b = a + 1
        c = b * 2
        return c

    x = f(1)
""")


def _model():
    return CompilationUnit(path="mod.py", source=CODE).model


class TestParseSelectionRange:
    def test_valid(self):
        assert parse_selection_range("2:1-3:10") == Span(Position(2, 0), Position(3, 9))

    def test_whitespace_tolerated(self):
        assert parse_selection_range(" 1:1-1:5 ") == Span(Position(1, 0), Position(1, 4))

    @pytest.mark.parametrize("text", ["abc", "1:1", "0:1-1:1", "1:0-1:4", "5:1-2:1", "1:1-1:x"])
    def test_malformed(self, text):
        with pytest.raises(SelectionError):
            parse_selection_range(text)


class TestSelectStatements:
    def test_selects_statements_inside_function(self):
        model = _model()
        region = select_statements(model, parse_selection_range("2:5-3:14"))
        assert [type(s).__name__ for s in region.nodes] == ["Assign", "Assign"]
        assert region.span.start == Position(2, 4)
        assert region.path == "mod.py"

    def test_partial_line_selects_whole_statement(self):
        model = _model()
        region = select_statements(model, parse_selection_range("3:9-3:10"))
        assert len(region.nodes) == 1
        assert region.nodes[0].lineno == 3

    def test_whole_function_selected_as_one_statement(self):
        model = _model()
        region = select_statements(model, parse_selection_range("1:1-4:13"))
        assert len(region.nodes) == 1
        assert isinstance(region.nodes[0], ast.FunctionDef)

    def test_selection_across_top_level_statements(self):
        model = _model()
        region = select_statements(model, parse_selection_range("1:1-6:9"))
        assert len(region.nodes) == 2

    def test_nothing_selected(self):
        model = _model()
        with pytest.raises(RegionNotFoundError):
            select_statements(model, parse_selection_range("20:1-21:1"))


class TestRegion:
    def test_empty(self):
        region = Region.empty("mod.py")
        assert region.is_empty
        assert region.span is None
        assert region.statements == []

    def test_from_node_and_statements(self):
        model = _model()
        func = model.tree.body[0]
        single = Region.from_node(func.body[0], "mod.py")
        assert single.nodes == (func.body[0],)
        run = Region.from_statements(func.body, "mod.py")
        assert run.span == Span(Position(2, 4), Position(4, 12))
        assert Region.from_statements([], "mod.py").is_empty

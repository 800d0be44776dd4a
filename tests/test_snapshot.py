"""Tests for program snapshots and compilation units."""

from __future__ import annotations

from pathlib import Path

import pytest

from refactor_core.ir import build_program, load_program
from refactor_core.ir.snapshot import CompilationUnit, module_name_for


def test_build_program_and_lookup():
    snap = build_program({"pkg/a.py": "x = 1\n", "b.py": "y = 2\n"})
    assert snap.paths == ["b.py", "pkg/a.py"]
    assert len(snap) == 2
    assert "b.py" in snap
    assert snap.get_unit("missing.py") is None
    assert snap.module_unit("pkg.a").path == "pkg/a.py"


def test_with_unit_returns_new_snapshot():
    snap = build_program({"a.py": "x = 1\n", "b.py": "y = 2\n"})
    replaced = snap.with_unit(CompilationUnit(path="a.py", source="x = 3\n"))
    assert snap.get_unit("a.py").source == "x = 1\n"
    assert replaced.get_unit("a.py").source == "x = 3\n"
    assert replaced.get_unit("b.py") is snap.get_unit("b.py")


def test_with_unit_adds_new_path():
    snap = build_program({"a.py": ""})
    grown = snap.with_unit(CompilationUnit(path="c.py", source=""))
    assert grown.paths == ["a.py", "c.py"]
    assert snap.paths == ["a.py"]


def test_snapshot_is_read_only():
    snap = build_program({"a.py": ""})
    with pytest.raises(TypeError):
        snap._units["b.py"] = CompilationUnit(path="b.py", source="")


def test_unparseable_unit():
    unit = CompilationUnit(path="bad.py", source="def (:\n")
    assert unit.tree is None
    assert unit.model is None
    assert isinstance(unit.syntax_error, SyntaxError)


def test_model_is_cached():
    unit = CompilationUnit(path="a.py", source="x = 1\n")
    assert unit.model is unit.model


@pytest.mark.parametrize("path,expected", [
    ("pkg/mod.py", "pkg.mod"),
    ("pkg/__init__.py", "pkg"),
    ("src/pkg/mod.py", "pkg.mod"),
    ("top.py", "top"),
])
def test_module_name_for(path, expected):
    assert module_name_for(path) == expected


def test_load_program(tmp_path: Path):
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "a.py").write_text("x = 1\n")
    (tmp_path / "__pycache__").mkdir()
    (tmp_path / "__pycache__" / "junk.py").write_text("")
    (tmp_path / "notes.txt").write_text("not python")
    snap = load_program(tmp_path)
    assert snap.paths == ["pkg/a.py"]

"""Tests for the diagnostics provider."""

from __future__ import annotations

import textwrap
import threading

import pytest

from refactor_core.config import AnalyzerSettings
from refactor_core.errors import OperationCancelled
from refactor_core.ir import build_program
from refactor_core.ir.diagnostics import compute_diagnostics


def program(files: dict[str, str]):
    return build_program({path: textwrap.dedent(code) for path, code in files.items()})


def ids(records) -> list[str]:
    return [r.id for r in records]


def test_clean_program():
    snap = program({"a.py": """\
        def f(a):
            return a
    """})
    assert compute_diagnostics(snap) == []


def test_parse_error():
    snap = program({"a.py": "def f(:\n"})
    records = compute_diagnostics(snap)
    assert ids(records) == ["E0001"]
    assert records[0].is_error
    assert records[0].line == 1


def test_compile_stage_error():
    snap = program({"a.py": "return 1\n"})
    records = compute_diagnostics(snap)
    assert ids(records) == ["E0001"]
    assert "outside function" in records[0].message


def test_undefined_variable():
    snap = program({"a.py": """\
        def f():
            return missing
    """})
    records = compute_diagnostics(snap)
    assert ids(records) == ["E0602"]
    rec = records[0]
    assert rec.message == "Undefined variable 'missing'"
    assert (rec.path, rec.line, rec.column) == ("a.py", 2, 11)
    assert str(rec) == "E0602: Undefined variable 'missing' at a.py:2:11"


def test_star_import_suppresses_undefined_names():
    snap = program({"a.py": """\
        from os.path import *

        print(join)
    """})
    assert compute_diagnostics(snap) == []


def test_no_name_in_module():
    snap = program({
        "pkg/a.py": "def real():\n    return 1\n",
        "b.py": "from pkg.a import real, fake\n\nprint(real, fake)\n",
    })
    records = [r for r in compute_diagnostics(snap) if r.is_error]
    assert ids(records) == ["E0611"]
    assert records[0].message == "No name 'fake' in module 'pkg.a'"
    assert records[0].path == "b.py"


def test_relative_import_resolves():
    snap = program({
        "pkg/__init__.py": "",
        "pkg/a.py": "X = 1\n",
        "pkg/b.py": "from .a import X\n\nprint(X)\n",
    })
    assert compute_diagnostics(snap) == []


def test_unused_variable_warning():
    snap = program({"a.py": """\
        def f():
            tmp = 1
            _ignored = 2
            return 3
    """})
    records = compute_diagnostics(snap)
    assert ids(records) == ["W0612"]
    assert records[0].message == "Unused variable 'tmp'"
    assert not records[0].is_error
    assert (records[0].line, records[0].column) == (2, 4)


def test_unused_import_warning_and_setting():
    snap = program({"a.py": """\
        import os
        import sys
        from typing import Any

        __all__ = ["Any"]

        print(sys.argv)
    """})
    records = compute_diagnostics(snap)
    assert ids(records) == ["W0611"]
    assert records[0].message == "Unused import 'os'"

    quiet = AnalyzerSettings(report_unused_imports=False)
    assert compute_diagnostics(snap, settings=quiet) == []


def test_cancel_signal():
    snap = program({"a.py": "x = 1\n"})
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(OperationCancelled):
        compute_diagnostics(snap, cancel=cancel)

"""Tests for the edge case detector."""

from __future__ import annotations

import ast
import textwrap

from refactor_core.analysis.edge_cases import LOOP_EXIT_WARNING, detect_edge_cases


def parse(code: str) -> ast.Module:
    return ast.parse(textwrap.dedent(code))


def test_break_inside_selected_loop():
    tree = parse("""\
        for i in range(3):
            if i:
                break
    """)
    report = detect_edge_cases(tree.body)
    assert report.has_loop_exit
    assert not report.has_dangling_loop_exit
    assert report.warnings == [LOOP_EXIT_WARNING]
    assert report.detected_edge_cases == ["break/continue"]


def test_continue_whose_loop_is_outside_the_region():
    tree = parse("""\
        for i in range(3):
            if i % 2:
                continue
            print(i)
    """)
    loop = tree.body[0]
    report = detect_edge_cases(loop.body)
    assert report.has_loop_exit
    assert report.has_dangling_loop_exit
    assert report.warnings


def test_break_in_loop_else_is_dangling():
    tree = parse("""\
        while True:
            for item in []:
                pass
            else:
                break
    """)
    outer = tree.body[0]
    report = detect_edge_cases(outer.body)
    assert report.has_dangling_loop_exit


def test_plain_statements_have_no_flags():
    tree = parse("""\
        x = 1
        y = x + 2
    """)
    report = detect_edge_cases(tree.body)
    assert not report.has_loop_exit
    assert report.warnings == []
    assert report.detected_edge_cases == []


def test_single_node_target():
    tree = parse("""\
        def f():
            return 1
    """)
    report = detect_edge_cases(tree.body[0].body[0])
    assert report.has_return
    assert report.detected_edge_cases == ["return statements"]


def test_nested_callable_control_flow_not_attributed():
    tree = parse("""\
        def outer():
            def inner():
                for x in range(2):
                    yield x
                return 1
            return inner
    """)
    outer = tree.body[0]
    report = detect_edge_cases(outer.body[:1])
    assert report.has_nested_callables
    assert not report.has_return
    assert not report.has_generators


def test_async_constructs():
    tree = parse("""\
        async def f(session):
            async with session:
                await session.get()
    """)
    report = detect_edge_cases(tree.body[0].body)
    assert report.has_async_await
    assert report.has_resource_scope


def test_labels_are_ordered():
    tree = parse("""\
        def f(path):
            global state
            with open(path) as fh:
                try:
                    data = fh.read()
                except OSError:
                    return None
            key = lambda d: d
            yield data
    """)
    report = detect_edge_cases(tree.body[0].body)
    assert report.detected_edge_cases == [
        "with/context managers",
        "try/except",
        "return statements",
        "lambdas/closures",
        "yield/generators",
        "global/nonlocal",
    ]
    assert report.warnings == []

"""Tests for the semantic model: scopes, name resolution, declared types."""

from __future__ import annotations

import ast
import textwrap

from refactor_core.ir.flow import region_flow
from refactor_core.ir.nodes import SymbolKind
from refactor_core.ir.scopes import ScopeKind, SemanticModel, infer_type


def make_model(code: str, path: str = "mod.py") -> SemanticModel:
    source = textwrap.dedent(code)
    return SemanticModel(ast.parse(source), path)


def names(model: SemanticModel, ident: str) -> list[ast.Name]:
    """Name nodes with the given id, in source order."""
    found = [n for n in ast.walk(model.tree) if isinstance(n, ast.Name) and n.id == ident]
    return sorted(found, key=lambda n: (n.lineno, n.col_offset))


class TestResolution:
    def test_self_parameter(self):
        model = make_model("""\
            class Account:
                def deposit(self, amount):
                    self.total = amount
        """)
        sym = model.resolve(names(model, "self")[0])
        assert sym.kind == SymbolKind.SELF
        assert sym.declared_type == "Account"
        assert model.resolve(names(model, "amount")[0]).kind == SymbolKind.PARAMETER

    def test_staticmethod_first_parameter_is_plain(self):
        model = make_model("""\
            class Tools:
                @staticmethod
                def clean(text):
                    return text.strip()
        """)
        assert model.resolve(names(model, "text")[0]).kind == SymbolKind.PARAMETER

    def test_classmethod_receiver_type(self):
        model = make_model("""\
            class Shape:
                @classmethod
                def build(cls):
                    return cls()
        """)
        sym = model.resolve(names(model, "cls")[0])
        assert sym.kind == SymbolKind.SELF
        assert sym.declared_type == "type[Shape]"

    def test_class_scope_invisible_to_methods(self):
        model = make_model("""\
            x = 1

            class K:
                x = 2

                def m(self):
                    return x
        """)
        class_x, method_x = names(model, "x")[1:]
        assert model.resolve(class_x).kind == SymbolKind.FIELD
        sym = model.resolve(method_x)
        assert sym.kind == SymbolKind.GLOBAL
        assert sym.scope_id == "mod.py::<module>"

    def test_global_declaration(self):
        model = make_model("""\
            counter = 0

            def bump():
                global counter
                counter += 1
        """)
        inner = names(model, "counter")[1]
        sym = model.resolve(inner)
        assert sym.kind == SymbolKind.GLOBAL
        assert sym == model.resolve(names(model, "counter")[0])

    def test_nonlocal_declaration(self):
        model = make_model("""\
            def outer():
                count = 0

                def inc():
                    nonlocal count
                    count += 1

                inc()
                return count
        """)
        refs = names(model, "count")
        symbols = {model.resolve(n) for n in refs}
        assert len(symbols) == 1
        sym = symbols.pop()
        assert sym.scope_id == "mod.py::outer"
        assert sym.kind == SymbolKind.LOCAL

    def test_comprehension_variable_has_own_scope(self):
        model = make_model("""\
            def f(rows):
                return [r for r in rows]
        """)
        sym = model.resolve(names(model, "r")[0])
        assert sym.kind == SymbolKind.LOCAL
        assert sym.scope_id == "mod.py::f.<listcomp>"
        assert model.resolve(names(model, "rows")[0]).kind == SymbolKind.PARAMETER

    def test_walrus_binds_in_enclosing_function(self):
        model = make_model("""\
            def f(data):
                if any((hit := x) > 3 for x in data):
                    return hit
        """)
        sym = model.resolve(names(model, "hit")[1])
        assert sym.scope_id == "mod.py::f"
        assert sym.kind == SymbolKind.LOCAL

    def test_builtin_and_undefined(self):
        model = make_model("""\
            def f(items):
                return len(items) + missing
        """)
        assert model.resolve(names(model, "len")[0]).kind == SymbolKind.BUILTIN
        assert model.resolve(names(model, "missing")[0]) is None

    def test_imports_and_module_kinds(self):
        model = make_model("""\
            import os.path
            from typing import Any

            class Thing:
                pass

            def helper():
                return os.path, Any, Thing
        """)
        assert model.resolve(names(model, "os")[0]).kind == SymbolKind.IMPORT
        assert model.resolve(names(model, "Any")[0]).kind == SymbolKind.IMPORT
        assert model.resolve(names(model, "Thing")[0]).kind == SymbolKind.CLASS

    def test_references_of(self):
        model = make_model("""\
            def f():
                value = 1
                value += 2
                return value
        """)
        sym = model.resolve(names(model, "value")[0])
        assert len(model.references_of(sym)) == 3
        assert len(model.bindings_of(sym)) == 2

    def test_function_chain_skips_classes(self):
        model = make_model("""\
            def outer():
                class Inner:
                    def method(self):
                        return 1
                return Inner
        """)
        outer_scope = model.scope_of(names(model, "Inner")[0])
        assert outer_scope.kind == ScopeKind.FUNCTION
        ret = next(n for n in ast.walk(model.tree) if isinstance(n, ast.Return) and isinstance(n.value, ast.Constant))
        chain = model.function_chain(model.scope_of(ret))
        assert [s.name for s in chain] == ["method", "outer"]

    def test_parent_of_and_ancestors(self):
        model = make_model("""\
            def f(x):
                if x:
                    return x
        """)
        ret = next(n for n in ast.walk(model.tree) if isinstance(n, ast.Return))
        assert isinstance(model.parent_of(ret), ast.If)
        assert [type(n) for n in model.ancestors(ret)] == [ast.If, ast.FunctionDef, ast.Module]
        assert model.parent_of(model.tree) is None


class TestDeclaredTypes:
    def test_annotation_and_inference(self):
        model = make_model("""\
            def f(flag=False, *args, **kwargs):
                count: int = 0
                label = "a"
                items = []
                ratio = 1 / 2
                done = count > 3
                return flag, args, kwargs, count, label, items, ratio, done
        """)
        types = {
            ident: model.resolve(names(model, ident)[0]).declared_type
            for ident in ("flag", "args", "kwargs", "count", "label", "items", "done")
        }
        assert types == {
            "flag": "bool",
            "args": "tuple",
            "kwargs": "dict",
            "count": "int",
            "label": "str",
            "items": "list",
            "done": "bool",
        }

    def test_infer_type_calls(self):
        assert infer_type(ast.parse("dict(a=1)", mode="eval").body) == "dict"
        assert infer_type(ast.parse("Widget()", mode="eval").body, {"Widget"}) == "Widget"
        assert infer_type(ast.parse("load()", mode="eval").body) == "Any"
        assert infer_type(ast.parse("1 + 2.0", mode="eval").body) == "float"
        assert infer_type(ast.parse("f'{x}'", mode="eval").body) == "str"


class TestRegionFlow:
    def test_live_in_and_live_out_symbols(self):
        model = make_model("""\
            def f(a):
                b = a + 1
                c = b * 2
                return c
        """)
        func = model.tree.body[0]
        flow = region_flow(model, func.body[:1])
        assert {s.name for s in flow.live_in} == {"a"}
        assert {s.name for s in flow.live_out} == {"b"}
        assert {s.name for s in flow.always_assigned} == {"b"}

    def test_exception_handler_starts_from_state_before_try(self):
        model = make_model("""\
            def f(raw):
                try:
                    parsed = int(raw)
                except ValueError:
                    print(parsed)
                    parsed = 0
                return parsed
        """)
        func = model.tree.body[0]
        flow = region_flow(model, func.body[:1])
        # The handler may run before `parsed` is assigned in the body
        assert "parsed" in {s.name for s in flow.read}
        assert {s.name for s in flow.always_assigned} == {"parsed"}
        assert {s.name for s in flow.live_out} == {"parsed"}

    def test_closure_defined_outside_region_observes_writes(self):
        model = make_model("""\
            def f():
                def show():
                    return state
                state = 1
                return show
        """)
        func = model.tree.body[0]
        flow = region_flow(model, func.body[1:2])
        assert {s.name for s in flow.live_out} == {"state"}

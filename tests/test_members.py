"""Tests for class member inventory and usage walkers."""

from __future__ import annotations

import ast
import textwrap

import pytest

from refactor_core.errors import MemberNotFoundError
from refactor_core.walkers.members import (
    class_members,
    find_class,
    find_method,
    instance_member_names,
    method_names,
    private_field_types,
)
from refactor_core.walkers.method_usage import analyze_member, analyze_method

ACCOUNT = textwrap.dedent("""\
    from typing import ClassVar

    class Account:
        rate: ClassVar[float] = 0.1
        owner: str = ""

        def __init__(self, balance: int):
            self._balance = balance
            self.history = []

        @property
        def balance(self):
            return self._balance

        @staticmethod
        def make():
            return Account(0)

        def _audit(self):
            pass
""")


def _account() -> ast.ClassDef:
    return find_class(ast.parse(ACCOUNT), "Account")


class TestClassMembers:
    def test_inventory(self):
        members = {m.name: m for m in class_members(_account())}
        assert list(members) == [
            "rate", "owner", "__init__", "balance", "make", "_audit", "_balance", "history",
        ]
        assert members["rate"].is_static
        assert members["rate"].declared_type == "float"
        assert members["balance"].kind == "property"
        assert members["make"].is_static
        assert members["_balance"].declared_type == "int"
        assert members["history"].declared_type == "list"

    def test_member_spans_point_at_names(self):
        members = {m.name: m for m in class_members(_account())}
        audit = members["_audit"]
        assert (audit.line, audit.column) == (19, 8)
        balance = members["_balance"]
        assert (balance.line, balance.column) == (8, 13)
        assert not balance.is_public
        assert members["__init__"].is_public

    def test_instance_member_names(self):
        assert instance_member_names(_account()) == {"owner", "balance", "_balance", "history"}

    def test_method_names(self):
        assert method_names(_account()) == {"__init__", "make", "_audit"}

    def test_private_field_types(self):
        assert private_field_types(_account()) == {"_balance": "int"}

    def test_base_classes_in_same_module(self):
        module = ast.parse(textwrap.dedent("""\
            class Base:
                def __init__(self):
                    self.base_field = 1

                def shared(self):
                    pass

            class Child(Base):
                def run(self):
                    pass
        """))
        child = find_class(module, "Child")
        assert "base_field" not in instance_member_names(child)
        assert "base_field" in instance_member_names(child, module)
        assert method_names(child, module) == {"run", "__init__", "shared"}

    def test_lookups_raise_not_found(self):
        with pytest.raises(MemberNotFoundError):
            find_class(ast.parse(ACCOUNT), "Missing")
        with pytest.raises(MemberNotFoundError, match="'nope' not found in 'Account'"):
            find_method(_account(), "nope")


SERVICE = textwrap.dedent("""\
    class Service:
        def __init__(self):
            self.client = None

        def fetch(self, key):
            return self.client.get(key)

        def helper(self, x):
            return x * 2

        def uses_helper(self, x):
            return self.helper(x)

        def countdown(self, n):
            if n:
                return self.countdown(n - 1)
            return 0

        def pure(self, a, b):
            return a + b

        def leaks(self):
            return register(self)

        def parent(self):
            return super().parent()

        def callback(self):
            return schedule(self.helper)
""")


def _usage(method: str):
    module = ast.parse(SERVICE)
    return analyze_method(find_class(module, "Service"), method, module)


class TestMethodUsage:
    def test_instance_member_access(self):
        facts = _usage("fetch")
        assert facts.uses_instance_members
        assert facts.used_instance_members == ["client"]
        assert not facts.can_convert_to_static()
        assert facts.can_convert_to_static(with_instance_parameter=True)

    def test_sibling_call(self):
        facts = _usage("uses_helper")
        assert facts.calls_other_methods
        assert not facts.is_recursive
        assert facts.called_methods == ["helper"]

    def test_recursion(self):
        facts = _usage("countdown")
        assert facts.is_recursive
        assert not facts.calls_other_methods
        assert not facts.can_convert_to_static()

    def test_pure_method_can_become_static(self):
        facts = _usage("pure")
        assert not facts.uses_instance_members
        assert not facts.references_self
        assert facts.can_convert_to_static()

    def test_bare_self_reference(self):
        facts = _usage("leaks")
        assert facts.references_self
        assert not facts.uses_instance_members

    def test_super_call_is_not_recursion(self):
        facts = _usage("parent")
        assert facts.calls_super
        assert not facts.is_recursive

    def test_bound_method_reference(self):
        facts = _usage("callback")
        assert facts.called_methods == ["helper"]

    def test_statement_list_body(self):
        body = ast.parse("total = self.count + other.size()\n").body
        facts = analyze_member({"count"}, {"size"}, "measure", body)
        assert facts.used_instance_members == ["count"]
        assert facts.calls_other_methods

    def test_nested_class_is_skipped(self):
        body = ast.parse(textwrap.dedent("""\
            class Inner:
                def go(self):
                    return self.count
        """)).body
        facts = analyze_member({"count"}, set(), "outer", body)
        assert not facts.uses_instance_members

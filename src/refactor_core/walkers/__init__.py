"""Class member walkers for move, convert-to-static and safe-delete refactorings.

Provides:
    class_members(class_node) -> list[MemberInfo]
    analyze_method(class_node, method_name) -> MemberUsageFacts
    find_unused_members(unit, snapshot) -> UnusedMembersReport   (async)
    generate_access_member_name(existing_names, target_class_name) -> str
"""

from refactor_core.walkers.members import (
    class_members,
    find_class,
    find_method,
    instance_member_names,
    method_names,
    private_field_types,
)
from refactor_core.walkers.method_usage import analyze_member, analyze_method
from refactor_core.walkers.naming import generate_access_member_name
from refactor_core.walkers.unused import (
    UnusedMemberStrategy,
    find_unused_members,
    find_unused_members_in_source,
)

__all__ = [
    "UnusedMemberStrategy",
    "analyze_member",
    "analyze_method",
    "class_members",
    "find_class",
    "find_method",
    "find_unused_members",
    "find_unused_members_in_source",
    "generate_access_member_name",
    "instance_member_names",
    "method_names",
    "private_field_types",
]

"""Names for members generated by refactorings."""

from __future__ import annotations

from typing import Collection


def generate_access_member_name(existing_names: Collection[str], target_class_name: str) -> str:
    """Private field name for holding a `target_class_name` instance.

    "TargetClass" -> "_targetClass", then "_targetClass1", "_targetClass2", ...
    until the name is not in `existing_names`.
    """
    if not target_class_name:
        raise ValueError("target_class_name must not be empty")

    base = "_" + target_class_name[0].lower() + target_class_name[1:]
    name = base
    counter = 1
    while name in existing_names:
        name = f"{base}{counter}"
        counter += 1
    return name

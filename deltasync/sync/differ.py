"""Minimal diff generation between two JSON-like snapshots."""

import copy
from typing import Any

from deltasync.models.patch import Operation, OperationKind, PathSegment


def json_equal(left: Any, right: Any) -> bool:
    """
    Structural equality with JSON semantics.

    Unlike ``==``, booleans never compare equal to numbers, so ``True`` and
    ``1`` are different values.
    """
    if isinstance(left, dict) and isinstance(right, dict):
        if left.keys() != right.keys():
            return False
        return all(json_equal(left[key], right[key]) for key in left)

    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(json_equal(a, b) for a, b in zip(left, right))

    if isinstance(left, (dict, list, tuple)) or isinstance(right, (dict, list, tuple)):
        return False

    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right

    return left == right


def diff(before: Any, after: Any, path: tuple[PathSegment, ...] = ()) -> list[Operation]:
    """
    Compute the operations that turn ``before`` into ``after``.

    Objects are diffed key by key; arrays are compared as whole values and
    replaced entirely when they differ. ``None`` stands for an absent value.

    Args:
        before: Original snapshot
        after: Updated snapshot
        path: Location of this pair inside the enclosing document

    Returns:
        Ordered operations, empty if and only if the snapshots are equal
    """
    if before is None:
        if after is None:
            return []
        return [Operation(kind=OperationKind.ADD, path=path, value=copy.deepcopy(after))]

    if after is None:
        return [Operation(kind=OperationKind.REMOVE, path=path)]

    if isinstance(before, dict) and isinstance(after, dict):
        return _diff_objects(before, after, path)

    # Lists, primitives and mismatched container kinds all collapse to a
    # whole-value replace.
    if json_equal(before, after):
        return []
    return [Operation(kind=OperationKind.REPLACE, path=path, value=copy.deepcopy(after))]


def _diff_objects(
    before: dict[str, Any], after: dict[str, Any], path: tuple[PathSegment, ...]
) -> list[Operation]:
    operations: list[Operation] = []

    for key in before:
        if key not in after:
            operations.append(Operation(kind=OperationKind.REMOVE, path=(*path, key)))

    for key, value in after.items():
        child_path = (*path, key)
        if key not in before:
            operations.append(
                Operation(kind=OperationKind.ADD, path=child_path, value=copy.deepcopy(value))
            )
        else:
            operations.extend(diff(before[key], value, child_path))

    return operations

"""Copy-on-write application of delta patches."""

import copy
from typing import Any

import structlog

from deltasync.models.patch import DeltaPatch, Operation, OperationKind, PathSegment

log = structlog.stdlib.get_logger()


def apply_patch(base: Any, patch: DeltaPatch) -> Any:
    """
    Apply every operation of a patch to a snapshot, in order.

    The base snapshot is deep-copied first, so neither it nor any of its
    nested values is modified.

    Args:
        base: Snapshot to patch
        patch: Patch whose operations are applied

    Returns:
        New snapshot with all operations applied
    """
    result = copy.deepcopy(base)
    for operation in patch.operations:
        result = _apply_in_place(result, operation)

    log.debug(
        "patch_applied",
        object_id=patch.object_id,
        operation_count=len(patch.operations),
    )
    return result


def apply_operation(value: Any, operation: Operation) -> Any:
    """Apply a single operation without mutating ``value``."""
    return _apply_in_place(copy.deepcopy(value), operation)


def _apply_in_place(document: Any, operation: Operation) -> Any:
    if operation.kind is OperationKind.REMOVE:
        if not operation.path:
            return None
        _remove_at(document, operation.path)
        return document

    value = copy.deepcopy(operation.value)
    if not operation.path:
        return value
    if not isinstance(document, (dict, list)):
        document = {}
    _set_at(document, operation.path, value)
    return document


def _list_index(container: list[Any], segment: PathSegment) -> int | None:
    if isinstance(segment, int):
        index = segment
    elif isinstance(segment, str) and segment.isdigit():
        index = int(segment)
    else:
        return None
    return index if 0 <= index <= len(container) else None


def _child(container: Any, segment: PathSegment) -> Any:
    if isinstance(container, dict):
        return container.get(segment)
    if isinstance(container, list):
        index = _list_index(container, segment)
        if index is not None and index < len(container):
            return container[index]
    return None


def _set_child(container: Any, segment: PathSegment, value: Any) -> None:
    if isinstance(container, list):
        index = _list_index(container, segment)
        if index is None:
            raise ValueError(f"Invalid array index {segment!r} for list of length {len(container)}")
        if index == len(container):
            container.append(value)
        else:
            container[index] = value
    else:
        container[segment] = value


def _set_at(document: Any, path: tuple[PathSegment, ...], value: Any) -> None:
    current = document
    for segment in path[:-1]:
        child = _child(current, segment)
        if not isinstance(child, (dict, list)):
            child = {}
            _set_child(current, segment, child)
        current = child
    _set_child(current, path[-1], value)


def _remove_at(document: Any, path: tuple[PathSegment, ...]) -> None:
    current = document
    for segment in path[:-1]:
        current = _child(current, segment)
        if not isinstance(current, (dict, list)):
            return

    leaf = path[-1]
    if isinstance(current, dict):
        current.pop(leaf, None)
    elif isinstance(current, list):
        index = _list_index(current, leaf)
        if index is not None and index < len(current):
            del current[index]

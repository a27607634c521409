"""In-memory store of outstanding patches, one per object identity."""

import time
from typing import Any, Callable

import structlog

from deltasync.models.patch import DeltaPatch
from deltasync.sync.differ import diff

log = structlog.stdlib.get_logger()


def now_ms() -> int:
    """Current wall-clock time in milliseconds since epoch."""
    return int(time.time() * 1000)


class PendingChangeStore:
    """Latest-wins mapping from object id to its pending patch."""

    def __init__(self, clock: Callable[[], int] = now_ms):
        """
        Initialize an empty store.

        Args:
            clock: Millisecond clock used to timestamp new patches
        """
        self._clock = clock
        self._patches: dict[str, DeltaPatch] = {}

    def record_change(self, object_id: str, before: Any, after: Any) -> DeltaPatch | None:
        """
        Diff two snapshots and queue the result for ``object_id``.

        A new patch replaces any patch already pending for the same object.
        Nothing is stored when the snapshots are equal.

        Args:
            object_id: Identity of the changed object
            before: Snapshot the change started from
            after: Snapshot after the change

        Returns:
            The queued patch, or None if there was nothing to record
        """
        operations = diff(before, after)
        if not operations:
            log.debug("no_changes_recorded", object_id=object_id)
            return None

        patch = DeltaPatch(object_id=object_id, timestamp=self._clock(), operations=operations)
        replaced = object_id in self._patches
        self._patches[object_id] = patch

        log.debug(
            "change_recorded",
            object_id=object_id,
            operation_count=len(operations),
            replaced_pending=replaced,
        )
        return patch

    def get_pending_changes(self) -> list[DeltaPatch]:
        """Deep copies of the pending patches, in insertion order."""
        return [patch.model_copy(deep=True) for patch in self._patches.values()]

    def get(self, object_id: str) -> DeltaPatch | None:
        patch = self._patches.get(object_id)
        return patch.model_copy(deep=True) if patch is not None else None

    def remove(self, object_id: str) -> None:
        """Clear the pending patch for an object, if any."""
        self._patches.pop(object_id, None)

    def discard(self, patch: DeltaPatch) -> bool:
        """
        Remove ``patch`` only if it is still the pending patch for its object.

        A newer change recorded while ``patch`` was in flight is left queued.

        Returns:
            True if the patch was removed
        """
        current = self._patches.get(patch.object_id)
        if current is None or current != patch:
            return False
        del self._patches[patch.object_id]
        return True

    def clear(self) -> None:
        self._patches.clear()

    def __len__(self) -> int:
        return len(self._patches)

    def __contains__(self, object_id: object) -> bool:
        return object_id in self._patches

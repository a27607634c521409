"""Conflict resolution policies for server-reported disagreements."""

import structlog

from deltasync.models.patch import Conflict, ConflictResolution, DeltaPatch
from deltasync.sync.event_bus import EventBus, SyncEvent
from deltasync.sync.exceptions import ConflictPolicyViolationError
from deltasync.sync.pending_store import PendingChangeStore

log = structlog.stdlib.get_logger()


class ConflictResolver:
    """Applies one fixed policy to every conflict a coordinator receives."""

    def __init__(
        self,
        policy: ConflictResolution | str,
        pending_store: PendingChangeStore,
        event_bus: EventBus,
    ):
        """
        Initialize conflict resolver.

        Args:
            policy: server-wins, client-wins or manual
            pending_store: Store holding the local patches
            event_bus: Bus on which manual conflicts are published

        Raises:
            ConflictPolicyViolationError: If the policy is not recognized
        """
        try:
            self._policy = ConflictResolution(policy)
        except ValueError as e:
            raise ConflictPolicyViolationError(
                f"Unknown conflict resolution policy: {policy!r}"
            ) from e

        self._pending_store = pending_store
        self._event_bus = event_bus
        self._unresolved: list[Conflict] = []

    @property
    def policy(self) -> ConflictResolution:
        return self._policy

    def resolve(self, conflict: Conflict, patch: DeltaPatch | None = None) -> None:
        """
        Route a conflict through the configured policy.

        Args:
            conflict: Conflict reported by the remote authority
            patch: The local patch that was sent for the conflicting object
        """
        log.info(
            "resolving_conflict",
            object_id=conflict.object_id,
            policy=self._policy.value,
            conflict_timestamp=conflict.timestamp,
        )

        if self._policy is ConflictResolution.SERVER_WINS:
            # Only the patch the server rejected is dropped; a newer local
            # change recorded meanwhile stays queued.
            if patch is not None:
                self._pending_store.discard(patch)
            else:
                self._pending_store.remove(conflict.object_id)
        elif self._policy is ConflictResolution.CLIENT_WINS:
            pass
        elif self._policy is ConflictResolution.MANUAL:
            self._unresolved.append(conflict)
            self._event_bus.publish(SyncEvent.CONFLICT, conflict)
        else:
            raise ConflictPolicyViolationError(f"Unhandled conflict policy: {self._policy!r}")

    def resolve_manually(self, conflict: Conflict) -> bool:
        """
        Settle an unresolved conflict and drop the object's pending patch.

        Returns:
            True if a matching unresolved conflict was found
        """
        found = False
        for index, candidate in enumerate(self._unresolved):
            if candidate.matches(conflict):
                del self._unresolved[index]
                found = True
                break

        self._pending_store.remove(conflict.object_id)

        log.info(
            "conflict_resolved_manually",
            object_id=conflict.object_id,
            conflict_timestamp=conflict.timestamp,
            found=found,
        )
        return found

    def get_conflicts(self) -> list[Conflict]:
        """Copies of the unresolved conflicts, oldest first."""
        return [conflict.model_copy(deep=True) for conflict in self._unresolved]

    def clear(self) -> None:
        self._unresolved.clear()

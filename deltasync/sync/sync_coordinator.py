"""Synchronization coordinator for batched delta reconciliation."""

import asyncio
from enum import Enum
from typing import Any, Callable

import structlog

from deltasync.models.config import SyncConfig
from deltasync.models.patch import Conflict, DeltaPatch, SyncResult, TransportResponse
from deltasync.sync.conflict_resolver import ConflictResolver
from deltasync.sync.event_bus import EventBus, Handler, SyncEvent
from deltasync.sync.exceptions import SyncInProgressError, TransportFailureError
from deltasync.sync.patcher import apply_patch
from deltasync.sync.pending_store import PendingChangeStore, now_ms
from deltasync.sync.transport import SyncTransport
from deltasync.utils.retry import Sleep, exponential_backoff_retry

log = structlog.stdlib.get_logger()


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"


class _BatchTotals:
    def __init__(self) -> None:
        self.synced = 0
        self.conflicts = 0
        self.bytes_transferred = 0


class SyncCoordinator:
    """Records local changes and reconciles them with the remote authority."""

    def __init__(
        self,
        config: SyncConfig,
        transport: SyncTransport,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize sync coordinator.

        Args:
            config: Batch size, retry and conflict policy settings
            transport: Transport used to reach the remote authority
            sleep: Awaitable sleep used for retry backoff
            clock: Millisecond clock for patch timestamps and durations

        Raises:
            ConflictPolicyViolationError: If the configured policy is unknown
        """
        self._config: SyncConfig = config
        self._transport: SyncTransport = transport
        self._sleep: Sleep = sleep
        self._clock = clock

        self._events: EventBus = EventBus()
        self._pending: PendingChangeStore = PendingChangeStore(clock=clock)
        self._resolver: ConflictResolver = ConflictResolver(
            config.conflict_resolution, self._pending, self._events
        )
        self._state: SyncState = SyncState.IDLE
        self._last_sync_time: int = 0

        log.info(
            "sync_coordinator_initialized",
            endpoint=config.endpoint,
            batch_size=config.batch_size,
            retry_attempts=config.retry_attempts,
            conflict_resolution=config.conflict_resolution.value,
        )

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        return self._state is SyncState.SYNCING

    @property
    def last_sync_time(self) -> int:
        """Completion time (ms since epoch) of the last successful sync, 0 if none."""
        return self._last_sync_time

    def record_change(self, object_id: str, before: Any, after: Any) -> None:
        """Queue the difference between two snapshots of an object."""
        self._pending.record_change(object_id, before, after)

    def get_pending_changes(self) -> list[DeltaPatch]:
        return self._pending.get_pending_changes()

    def get_conflicts(self) -> list[Conflict]:
        return self._resolver.get_conflicts()

    async def resolve_conflict(self, conflict: Conflict) -> None:
        """Settle a manual conflict and drop the object's pending patch."""
        self._resolver.resolve_manually(conflict)

    @staticmethod
    def apply_patch(base: Any, patch: DeltaPatch) -> Any:
        """Apply a patch to a snapshot without mutating it."""
        return apply_patch(base, patch)

    def on(self, event: SyncEvent | str, handler: Handler) -> None:
        self._events.on(event, handler)

    def off(self, event: SyncEvent | str, handler: Handler) -> None:
        self._events.off(event, handler)

    async def sync(self) -> SyncResult:
        """
        Reconcile every pending patch with the remote authority.

        Patches are sent in consecutive batches of at most ``batch_size``.
        Each batch is retried with exponential backoff; when a batch exhausts
        its attempts the whole call fails, but batches that already succeeded
        stay reconciled.

        Returns:
            SyncResult with aggregated counters

        Raises:
            SyncInProgressError: If another sync is running
            TransportFailureError: If a batch exhausted its retry attempts
        """
        if self._state is SyncState.SYNCING:
            log.warning("sync_rejected_in_progress")
            raise SyncInProgressError()

        self._state = SyncState.SYNCING
        start_time = self._clock()
        totals = _BatchTotals()

        try:
            patches = list(self._pending.get_pending_changes())
            batch_size = self._config.batch_size
            batches = [patches[i : i + batch_size] for i in range(0, len(patches), batch_size)]

            log.info(
                "sync_started",
                pending_count=len(patches),
                batch_count=len(batches),
            )

            for index, batch in enumerate(batches):
                with structlog.contextvars.bound_contextvars(batch_index=index):
                    try:
                        response = await self._send_with_retry(batch)
                    except Exception as e:
                        result = self._build_result(False, totals, start_time)
                        log.error(
                            "sync_failed",
                            synced=result.synced,
                            conflicts=result.conflicts,
                            bytes_transferred=result.bytes_transferred,
                            remaining_pending=len(self._pending),
                            error=str(e),
                        )
                        raise TransportFailureError(result, e) from e

                    self._apply_response(batch, response, totals)

            if batches:
                self._last_sync_time = self._clock()

            result = self._build_result(True, totals, start_time)

            log.info(
                "sync_completed",
                synced=result.synced,
                conflicts=result.conflicts,
                bytes_transferred=result.bytes_transferred,
                duration_ms=result.duration,
            )

            self._events.publish(SyncEvent.SYNC_COMPLETE, result)
            return result
        finally:
            self._state = SyncState.IDLE

    async def _send_with_retry(self, batch: list[DeltaPatch]) -> TransportResponse:
        send = exponential_backoff_retry(
            max_attempts=self._config.retry_attempts,
            base_delay=self._config.retry_base_delay,
            max_delay=self._config.retry_max_delay,
            sleep=self._sleep,
        )(self._transport.send)
        return await send(batch)

    def _apply_response(
        self, batch: list[DeltaPatch], response: TransportResponse, totals: _BatchTotals
    ) -> None:
        """Route conflicts and drop the patches the server accepted."""
        sent = {patch.object_id: patch for patch in batch}

        for conflict in response.conflicts:
            self._resolver.resolve(conflict, sent.get(conflict.object_id))

        # Counters only cover objects that were in this batch
        conflicted = {c.object_id for c in response.conflicts if c.object_id in sent}

        for patch in batch:
            if patch.object_id not in conflicted:
                self._pending.discard(patch)

        totals.synced += len(batch) - len(conflicted)
        totals.conflicts += len(conflicted)
        totals.bytes_transferred += response.bytes_transferred

        log.info(
            "batch_synced",
            batch_size=len(batch),
            conflicts=len(conflicted),
            reported_conflicts=len(response.conflicts),
            bytes_transferred=response.bytes_transferred,
        )

    def _build_result(self, success: bool, totals: _BatchTotals, start_time: int) -> SyncResult:
        return SyncResult(
            success=success,
            synced=totals.synced,
            conflicts=totals.conflicts,
            bytes_transferred=totals.bytes_transferred,
            duration=max(0, self._clock() - start_time),
        )

    async def close(self) -> None:
        """Drop subscriptions and pending state, and close the transport."""
        self._events.clear()
        self._resolver.clear()
        self._pending.clear()

        aclose = getattr(self._transport, "aclose", None)
        if aclose is not None:
            await aclose()

        log.info("sync_coordinator_closed")

    async def __aenter__(self) -> "SyncCoordinator":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

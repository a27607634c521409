"""Errors raised by the sync engine."""

from deltasync.models.patch import SyncResult


class SyncError(Exception):
    """Base class for sync engine errors."""


class SyncInProgressError(SyncError):
    """Raised when a reconciliation attempt is already running."""

    def __init__(self) -> None:
        super().__init__("Sync already in progress")


class TransportFailureError(SyncError):
    """
    Raised when a batch exhausts its retry attempts.

    Batches that completed before the failing one stay reconciled; ``result``
    carries their counters with ``success=False``.
    """

    def __init__(self, result: SyncResult, last_error: BaseException | None = None):
        self.result = result
        self.last_error = last_error
        super().__init__(f"Sync failed after retries: {last_error}")


class ConflictPolicyViolationError(SyncError):
    """Raised for an unrecognized conflict resolution policy."""


class TransportError(SyncError):
    """Raised by transport adapters when a transmission fails."""

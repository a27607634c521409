"""Change tracking and reconciliation components."""

from deltasync.sync.conflict_resolver import ConflictResolver
from deltasync.sync.differ import diff, json_equal
from deltasync.sync.event_bus import EventBus, SyncEvent
from deltasync.sync.exceptions import (
    ConflictPolicyViolationError,
    SyncError,
    SyncInProgressError,
    TransportError,
    TransportFailureError,
)
from deltasync.sync.patcher import apply_operation, apply_patch
from deltasync.sync.pending_store import PendingChangeStore
from deltasync.sync.sync_coordinator import SyncCoordinator, SyncState
from deltasync.sync.transport import HttpTransport, LoopbackTransport, SyncTransport

__all__ = [
    "ConflictPolicyViolationError",
    "ConflictResolver",
    "EventBus",
    "HttpTransport",
    "LoopbackTransport",
    "PendingChangeStore",
    "SyncCoordinator",
    "SyncError",
    "SyncEvent",
    "SyncInProgressError",
    "SyncState",
    "SyncTransport",
    "TransportError",
    "TransportFailureError",
    "apply_operation",
    "apply_patch",
    "diff",
    "json_equal",
]

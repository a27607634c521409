"""Delta sync: minimal-diff change tracking and batched reconciliation."""

from deltasync.models import (
    Conflict,
    ConflictResolution,
    DeltaPatch,
    Operation,
    OperationKind,
    SyncConfig,
    SyncResult,
)
from deltasync.sync import (
    SyncCoordinator,
    SyncEvent,
    SyncInProgressError,
    TransportFailureError,
    apply_patch,
    diff,
)

__version__ = "0.1.0"

__all__ = [
    "Conflict",
    "ConflictResolution",
    "DeltaPatch",
    "Operation",
    "OperationKind",
    "SyncConfig",
    "SyncCoordinator",
    "SyncEvent",
    "SyncInProgressError",
    "SyncResult",
    "TransportFailureError",
    "apply_patch",
    "diff",
]

"""Data models for the delta sync engine."""

from deltasync.models.config import AppConfig, LoggingConfig, SyncConfig
from deltasync.models.patch import (
    Conflict,
    ConflictResolution,
    DeltaPatch,
    Operation,
    OperationKind,
    SyncResult,
    TransportResponse,
    format_pointer,
    parse_pointer,
)

__all__ = [
    "AppConfig",
    "Conflict",
    "ConflictResolution",
    "DeltaPatch",
    "LoggingConfig",
    "Operation",
    "OperationKind",
    "SyncConfig",
    "SyncResult",
    "TransportResponse",
    "format_pointer",
    "parse_pointer",
]

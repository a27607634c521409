"""Pydantic models for delta patches, conflicts and sync results."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

PathSegment = str | int


class OperationKind(str, Enum):
    """Kinds of atomic edits a patch can carry."""

    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


class ConflictResolution(str, Enum):
    """Policies for handling server-reported conflicts."""

    SERVER_WINS = "server-wins"
    CLIENT_WINS = "client-wins"
    MANUAL = "manual"


class _WireModel(BaseModel):
    """Base model with camelCase JSON aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _escape_segment(segment: PathSegment) -> str:
    return str(segment).replace("~", "~0").replace("/", "~1")


def _unescape_segment(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def parse_pointer(pointer: str) -> tuple[str, ...]:
    """Split an RFC 6901 JSON pointer into its unescaped segments."""
    if pointer in ("", "/"):
        return ()
    if not pointer.startswith("/"):
        raise ValueError(f"JSON pointer must start with '/': {pointer!r}")
    return tuple(_unescape_segment(part) for part in pointer[1:].split("/"))


def format_pointer(path: tuple[PathSegment, ...]) -> str:
    """Render path segments as an RFC 6901 JSON pointer."""
    return "".join(f"/{_escape_segment(segment)}" for segment in path)


class Operation(_WireModel):
    """One atomic edit at a structural location."""

    kind: OperationKind = Field(default=..., alias="op", description="Edit kind")
    path: tuple[PathSegment, ...] = Field(
        default=(), description="Object keys and array indexes from the root"
    )
    value: Any = Field(default=None, description="New value for add/replace")

    @field_validator("path", mode="before")
    @classmethod
    def parse_path(cls, v: Any) -> Any:
        """Accept a JSON pointer string as well as a segment sequence."""
        if isinstance(v, str):
            return parse_pointer(v)
        return v

    @field_serializer("path", when_used="json")
    def serialize_path(self, path: tuple[PathSegment, ...]) -> str:
        return format_pointer(path)

    @property
    def pointer(self) -> str:
        """Path as a JSON pointer string."""
        return format_pointer(self.path)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict in JSON Patch shape (no value for remove)."""
        data = self.model_dump(mode="json", by_alias=True)
        if self.kind is OperationKind.REMOVE:
            data.pop("value", None)
        return data


class DeltaPatch(_WireModel):
    """Net outstanding change for one object identity."""

    object_id: str = Field(default=..., min_length=1, description="Object identity")
    timestamp: int = Field(default=..., ge=0, description="Creation time in ms since epoch")
    operations: list[Operation] = Field(default_factory=list, description="Ordered edits")

    def to_wire(self) -> dict[str, Any]:
        return {
            "objectId": self.object_id,
            "timestamp": self.timestamp,
            "operations": [operation.to_wire() for operation in self.operations],
        }


class Conflict(_WireModel):
    """Server-reported disagreement for one object identity."""

    object_id: str = Field(default=..., description="Object identity")
    client_version: Any = Field(default=None, description="Client's view of the object")
    server_version: Any = Field(default=None, description="Server's view of the object")
    timestamp: int = Field(default=..., ge=0, description="When the conflict was reported")

    def matches(self, other: "Conflict") -> bool:
        """Conflicts are matched by object identity and timestamp."""
        return self.object_id == other.object_id and self.timestamp == other.timestamp


class SyncResult(_WireModel):
    """Outcome of one reconciliation attempt."""

    success: bool = Field(default=..., description="True if every batch was transmitted")
    synced: int = Field(default=0, ge=0, description="Patches reconciled without conflict")
    conflicts: int = Field(default=0, ge=0, description="Patches the server reported as conflicts")
    bytes_transferred: int = Field(default=0, ge=0, description="Bytes reported by the transport")
    duration: int = Field(default=0, ge=0, description="Attempt duration in ms")


class TransportResponse(_WireModel):
    """Reply of the remote authority to one batch."""

    conflicts: list[Conflict] = Field(default_factory=list)
    bytes_transferred: int = Field(default=0, ge=0)

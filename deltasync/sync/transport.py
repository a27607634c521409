"""Transport contract and adapters for reaching the remote authority."""

import json
from typing import Any, Protocol, Sequence, runtime_checkable

import httpx
import structlog
from pydantic import ValidationError

from deltasync.models.patch import Conflict, DeltaPatch, TransportResponse
from deltasync.sync.exceptions import TransportError
from deltasync.sync.patcher import apply_patch
from deltasync.sync.pending_store import now_ms

log = structlog.stdlib.get_logger()


@runtime_checkable
class SyncTransport(Protocol):
    """Anything that can deliver a batch of patches to the remote authority."""

    async def send(self, patches: Sequence[DeltaPatch]) -> TransportResponse:
        """Transmit a batch; raise on transport-level failure."""
        ...


def encode_batch(patches: Sequence[DeltaPatch]) -> bytes:
    """Serialize a batch as the JSON request body."""
    body = {"patches": [patch.to_wire() for patch in patches]}
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


class HttpTransport:
    """POSTs batches as JSON to the configured endpoint."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize HTTP transport.

        Args:
            endpoint: URL that accepts patch batches
            timeout: Request timeout in seconds
            client: Optional preconfigured client (not closed by aclose)
        """
        self._endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, patches: Sequence[DeltaPatch]) -> TransportResponse:
        body = encode_batch(patches)

        try:
            response = await self._client.post(
                self._endpoint,
                content=body,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Endpoint returned HTTP {e.response.status_code}: {self._endpoint}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {self._endpoint} failed: {e}") from e

        try:
            payload = response.json() if response.content else {}
            if not isinstance(payload, dict):
                raise ValueError("response body is not a JSON object")
            payload.setdefault("bytesTransferred", len(body))
            result = TransportResponse.model_validate(payload)
        except (ValueError, ValidationError) as e:
            raise TransportError(f"Malformed response from {self._endpoint}: {e}") from e

        log.debug(
            "batch_posted",
            endpoint=self._endpoint,
            patch_count=len(patches),
            status_code=response.status_code,
            conflicts=len(result.conflicts),
        )
        return result

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class LoopbackTransport:
    """
    In-process remote authority.

    Received patches are applied to ``documents``; objects marked with
    ``reject`` come back as conflicts instead, and ``fail_next`` makes the
    next calls raise ``TransportError``.
    """

    def __init__(self, documents: dict[str, Any] | None = None):
        self.documents: dict[str, Any] = dict(documents or {})
        self.requests: list[list[DeltaPatch]] = []
        self._rejections: dict[str, Any] = {}
        self._failures_left = 0

    def reject(self, object_id: str, server_version: Any = None) -> None:
        """Report a conflict for ``object_id`` on its next transmission."""
        self._rejections[object_id] = server_version

    def fail_next(self, count: int = 1) -> None:
        self._failures_left = count

    async def send(self, patches: Sequence[DeltaPatch]) -> TransportResponse:
        self.requests.append(list(patches))

        if self._failures_left > 0:
            self._failures_left -= 1
            raise TransportError("Loopback transport failure")

        conflicts: list[Conflict] = []
        for patch in patches:
            if patch.object_id in self._rejections:
                server_version = self._rejections.pop(patch.object_id)
                conflicts.append(
                    Conflict(
                        object_id=patch.object_id,
                        client_version=apply_patch(
                            self.documents.get(patch.object_id), patch
                        ),
                        server_version=server_version,
                        timestamp=now_ms(),
                    )
                )
                continue
            self.documents[patch.object_id] = apply_patch(
                self.documents.get(patch.object_id), patch
            )

        return TransportResponse(conflicts=conflicts, bytes_transferred=len(encode_batch(patches)))

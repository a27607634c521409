"""Tests for the HTTP and loopback transports."""

import json

import httpx
import pytest

from deltasync.models.patch import DeltaPatch, Operation, OperationKind
from deltasync.sync.exceptions import TransportError
from deltasync.sync.transport import (
    HttpTransport,
    LoopbackTransport,
    SyncTransport,
    encode_batch,
)

ENDPOINT = "https://sync.example.com/patches"


def _patches() -> list[DeltaPatch]:
    return [
        DeltaPatch(
            object_id="user-1",
            timestamp=1_700_000_000_000,
            operations=[
                Operation(kind=OperationKind.REPLACE, path=("name",), value="b"),
                Operation(kind=OperationKind.REMOVE, path=("legacy", "flag")),
            ],
        )
    ]


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_adapters_satisfy_protocol():
    assert isinstance(LoopbackTransport(), SyncTransport)
    assert isinstance(HttpTransport(ENDPOINT, client=_client(lambda r: httpx.Response(200))), SyncTransport)


def test_wire_format_uses_json_patch_shape():
    body = json.loads(encode_batch(_patches()))

    assert body == {
        "patches": [
            {
                "objectId": "user-1",
                "timestamp": 1_700_000_000_000,
                "operations": [
                    {"op": "replace", "path": "/name", "value": "b"},
                    {"op": "remove", "path": "/legacy/flag"},
                ],
            }
        ]
    }


class TestHttpTransport:
    @pytest.mark.asyncio
    async def test_posts_batch_and_parses_conflicts(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "conflicts": [
                        {
                            "objectId": "user-1",
                            "clientVersion": {"name": "b"},
                            "serverVersion": {"name": "c"},
                            "timestamp": 5,
                        }
                    ],
                    "bytesTransferred": 321,
                },
            )

        transport = HttpTransport(ENDPOINT, client=_client(handler))

        response = await transport.send(_patches())

        assert seen[0].method == "POST"
        assert str(seen[0].url) == ENDPOINT
        assert seen[0].headers["content-type"] == "application/json"
        assert json.loads(seen[0].content)["patches"][0]["objectId"] == "user-1"
        assert response.bytes_transferred == 321
        assert response.conflicts[0].object_id == "user-1"
        assert response.conflicts[0].server_version == {"name": "c"}

    @pytest.mark.asyncio
    async def test_missing_byte_count_falls_back_to_body_size(self) -> None:
        transport = HttpTransport(ENDPOINT, client=_client(lambda r: httpx.Response(200, json={})))

        response = await transport.send(_patches())

        assert response.conflicts == []
        assert response.bytes_transferred == len(encode_batch(_patches()))

    @pytest.mark.asyncio
    async def test_empty_body_is_accepted(self) -> None:
        transport = HttpTransport(ENDPOINT, client=_client(lambda r: httpx.Response(204)))

        response = await transport.send(_patches())

        assert response.bytes_transferred == len(encode_batch(_patches()))

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self) -> None:
        transport = HttpTransport(ENDPOINT, client=_client(lambda r: httpx.Response(503)))

        with pytest.raises(TransportError, match="503"):
            await transport.send(_patches())

    @pytest.mark.asyncio
    async def test_network_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = HttpTransport(ENDPOINT, client=_client(handler))

        with pytest.raises(TransportError):
            await transport.send(_patches())

    @pytest.mark.asyncio
    async def test_malformed_response_raises(self) -> None:
        transport = HttpTransport(
            ENDPOINT, client=_client(lambda r: httpx.Response(200, content=b"[1, 2]"))
        )

        with pytest.raises(TransportError, match="Malformed"):
            await transport.send(_patches())

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self) -> None:
        client = _client(lambda r: httpx.Response(200, json={}))
        transport = HttpTransport(ENDPOINT, client=client)

        await transport.aclose()

        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self) -> None:
        transport = HttpTransport(ENDPOINT, timeout=5.0)

        await transport.aclose()

        assert transport._client.is_closed


class TestLoopbackTransport:
    @pytest.mark.asyncio
    async def test_applies_patches_to_documents(self) -> None:
        transport = LoopbackTransport(documents={"user-1": {"name": "a", "legacy": {"flag": True}}})

        response = await transport.send(_patches())

        assert transport.documents["user-1"] == {"name": "b", "legacy": {}}
        assert response.conflicts == []
        assert response.bytes_transferred == len(encode_batch(_patches()))
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_rejection_reports_conflict_once(self) -> None:
        transport = LoopbackTransport(documents={"user-1": {"name": "a"}})
        transport.reject("user-1", server_version={"name": "server"})

        first = await transport.send(_patches())
        second = await transport.send(_patches())

        assert [c.object_id for c in first.conflicts] == ["user-1"]
        assert first.conflicts[0].server_version == {"name": "server"}
        assert first.conflicts[0].client_version == {"name": "b"}
        assert second.conflicts == []

    @pytest.mark.asyncio
    async def test_fail_next(self) -> None:
        transport = LoopbackTransport()
        transport.fail_next(2)

        for _ in range(2):
            with pytest.raises(TransportError):
                await transport.send(_patches())

        response = await transport.send(_patches())
        assert response.conflicts == []
        assert len(transport.requests) == 3

"""Integration tests for the HTTP gateway store using respx."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
import respx

from partstream import (
    AsyncHttpObjectStore,
    FinalizeError,
    ObjectStoreError,
    PartUploadError,
    SyncHttpObjectStore,
    UploadConfig,
    stream_upload,
    stream_upload_async,
)
from partstream._internal.iter_coroutine import iter_coroutine
from partstream.types import CompletedPart

GATEWAY_API_BASE = "https://uploads.example.com/api"

CONFIG = UploadConfig(part_size=10, max_queue_size=2, part_retries=2)


def _mpu_handler(
    pathname: str,
    complete_response: dict[str, Any],
) -> tuple[Callable[[httpx.Request], httpx.Response], dict[str, Any]]:
    uploads: dict[int, bytes] = {}
    completed_parts: list[dict[str, str | int]] = []
    actions: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        action = request.headers["x-mpu-action"]
        actions.append(action)
        assert request.url.params["pathname"] == pathname

        if action == "create":
            return httpx.Response(200, json={"uploadId": "upload-id"})

        if action == "upload":
            part_number = int(request.headers["x-mpu-part-number"])
            uploads[part_number] = request.content
            assert request.headers["x-mpu-upload-id"] == "upload-id"
            assert request.headers["content-type"] == "application/octet-stream"
            return httpx.Response(200, json={"etag": f"etag-{part_number}"})

        if action == "complete":
            assert request.headers["x-mpu-upload-id"] == "upload-id"
            completed_parts.extend(json.loads(request.content.decode()))
            return httpx.Response(200, json=complete_response)

        if action == "abort":
            return httpx.Response(200, json={})

        raise AssertionError(f"unexpected multipart action: {action}")

    state = {"uploads": uploads, "completed_parts": completed_parts, "actions": actions}
    return handler, state


@respx.mock
def test_sync_gateway_flow(mock_env_clear, mock_complete_response) -> None:
    handler, state = _mpu_handler("media/clip.bin", mock_complete_response)
    route = respx.post(f"{GATEWAY_API_BASE}/mpu").mock(side_effect=handler)
    store = SyncHttpObjectStore(GATEWAY_API_BASE, token="test_token")

    manifest = stream_upload(store, "media", "clip.bin", [b"a" * 15, b"b" * 5], config=CONFIG)

    assert route.call_count == 4
    assert state["uploads"] == {1: b"a" * 10, 2: b"a" * 5 + b"b" * 5}
    assert state["completed_parts"] == [
        {"partNumber": 1, "etag": "etag-1"},
        {"partNumber": 2, "etag": "etag-2"},
    ]
    assert manifest.parts == [CompletedPart(1, "etag-1"), CompletedPart(2, "etag-2")]
    assert manifest.location == mock_complete_response["url"]
    assert manifest.etag == mock_complete_response["etag"]
    assert manifest.extra == {"size": 20}
    for call in route.calls:
        assert call.request.headers["authorization"] == "Bearer test_token"
    assert all(call.request.headers["x-mpu-key"] == "clip.bin" for call in route.calls[1:])


@respx.mock
def test_token_falls_back_to_environment(monkeypatch, mock_env_clear) -> None:
    monkeypatch.setenv("PARTSTREAM_TOKEN", "env_token")
    route = respx.post(f"{GATEWAY_API_BASE}/mpu").mock(
        return_value=httpx.Response(200, json={"uploadId": "upload-id"})
    )
    store = SyncHttpObjectStore(GATEWAY_API_BASE)

    assert iter_coroutine(store.create_multipart_upload("media", "clip.bin")) == "upload-id"
    assert route.calls.last.request.headers["authorization"] == "Bearer env_token"


@respx.mock
def test_sync_part_errors_abort_the_upload(mock_env_clear, mock_error_server_error) -> None:
    actions: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        action = request.headers["x-mpu-action"]
        actions.append(action)
        if action == "create":
            return httpx.Response(200, json={"uploadId": "upload-id"})
        if action == "upload":
            return httpx.Response(500, json=mock_error_server_error)
        if action == "abort":
            return httpx.Response(204)
        raise AssertionError(f"unexpected multipart action: {action}")

    respx.post(f"{GATEWAY_API_BASE}/mpu").mock(side_effect=handler)
    store = SyncHttpObjectStore(GATEWAY_API_BASE, token="test_token")
    config = UploadConfig(part_size=10, max_queue_size=1, part_retries=2)

    with pytest.raises(PartUploadError) as exc_info:
        stream_upload(store, "media", "clip.bin", [b"x" * 5], config=config)

    cause = exc_info.value.__cause__
    assert isinstance(cause, ObjectStoreError)
    assert cause.status_code == 500
    assert cause.code == "internal_server_error"
    assert actions == ["create", "upload", "upload", "abort"]


@respx.mock
def test_create_error_is_mapped(mock_env_clear, mock_error_unauthorized) -> None:
    respx.post(f"{GATEWAY_API_BASE}/mpu").mock(
        return_value=httpx.Response(401, json=mock_error_unauthorized)
    )
    store = SyncHttpObjectStore(GATEWAY_API_BASE)

    with pytest.raises(ObjectStoreError, match="Authentication required") as exc_info:
        stream_upload(store, "media", "clip.bin", [b"x"])

    assert exc_info.value.status_code == 401
    assert exc_info.value.code == "unauthorized"


@respx.mock
def test_non_json_error_body_is_mapped(mock_env_clear) -> None:
    respx.post(f"{GATEWAY_API_BASE}/mpu").mock(return_value=httpx.Response(502, text="bad gateway"))
    store = SyncHttpObjectStore(GATEWAY_API_BASE)

    with pytest.raises(ObjectStoreError) as exc_info:
        stream_upload(store, "media", "clip.bin", [b"x"])

    assert exc_info.value.status_code == 502
    assert exc_info.value.code == "unknown_error"


@respx.mock
@pytest.mark.asyncio
async def test_async_gateway_flow(mock_env_clear, mock_complete_response) -> None:
    handler, state = _mpu_handler("media/clip.bin", mock_complete_response)
    route = respx.post(f"{GATEWAY_API_BASE}/mpu").mock(side_effect=handler)
    store = AsyncHttpObjectStore(GATEWAY_API_BASE, token="test_token")

    async def source():
        yield b"a" * 15
        yield b"b" * 5

    try:
        manifest = await stream_upload_async(store, "media", "clip.bin", source(), config=CONFIG)
    finally:
        await store.aclose()

    assert route.call_count == 4
    assert state["uploads"] == {1: b"a" * 10, 2: b"a" * 5 + b"b" * 5}
    assert [p["partNumber"] for p in state["completed_parts"]] == [1, 2]
    assert manifest.location == mock_complete_response["url"]


@respx.mock
@pytest.mark.asyncio
async def test_async_finalize_rejection_aborts(mock_env_clear) -> None:
    actions: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        action = request.headers["x-mpu-action"]
        actions.append(action)
        if action == "create":
            return httpx.Response(200, json={"uploadId": "upload-id"})
        if action == "upload":
            return httpx.Response(200, json={"etag": "etag"})
        if action == "complete":
            return httpx.Response(
                400, json={"error": {"code": "invalid_part", "message": "bad parts"}}
            )
        return httpx.Response(200, json={})

    respx.post(f"{GATEWAY_API_BASE}/mpu").mock(side_effect=handler)
    store = AsyncHttpObjectStore(GATEWAY_API_BASE, token="test_token")

    try:
        with pytest.raises(FinalizeError) as exc_info:
            await stream_upload_async(store, "media", "clip.bin", [b"x" * 3], config=CONFIG)
    finally:
        await store.aclose()

    assert isinstance(exc_info.value.__cause__, ObjectStoreError)
    assert exc_info.value.__cause__.code == "invalid_part"
    assert actions == ["create", "upload", "complete", "abort"]

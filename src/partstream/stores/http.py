"""Object store speaking a JSON multipart protocol over HTTP.

Every operation is a ``POST {base_url}/mpu?pathname=<bucket>/<key>`` whose
``x-mpu-action`` header selects ``create``, ``upload``, ``complete`` or
``abort``.
"""

from __future__ import annotations

from typing import Any, cast
from urllib.parse import quote

import httpx

from partstream._http import AsyncTransport, BaseTransport, BlockingTransport, HTTPConfig
from partstream.errors import ObjectStoreError
from partstream.types import CompletedPart, UploadManifest

from .base import ObjectStore

MPU_PATH = "/mpu"


def _build_headers(
    *,
    action: str,
    key: str | None = None,
    upload_id: str | None = None,
    part_number: int | None = None,
) -> dict[str, str]:
    request_headers = {"x-mpu-action": action}
    if key is not None:
        request_headers["x-mpu-key"] = quote(key, safe="")
    if upload_id is not None:
        request_headers["x-mpu-upload-id"] = upload_id
    if part_number is not None:
        request_headers["x-mpu-part-number"] = str(part_number)
    return request_headers


def map_store_error(response: httpx.Response) -> ObjectStoreError:
    try:
        data = response.json()
    except Exception:
        data = {}
    if not isinstance(data, dict):
        data = {}

    error = data.get("error") or {}
    code = error.get("code") or "unknown_error"
    message = error.get("message") or f"HTTP {response.status_code}"
    return ObjectStoreError(message, status_code=response.status_code, code=code)


def decode_json(response: httpx.Response) -> dict[str, Any]:
    if response.is_error:
        raise map_store_error(response)
    try:
        data = response.json()
    except Exception as exc:
        raise ObjectStoreError(
            "response body is not valid JSON", status_code=response.status_code
        ) from exc
    if not isinstance(data, dict):
        raise ObjectStoreError("unexpected response shape", status_code=response.status_code)
    return cast(dict[str, Any], data)


def shape_manifest(
    bucket: str,
    key: str,
    upload_id: str,
    parts: list[CompletedPart],
    response: dict[str, Any],
) -> UploadManifest:
    extra = {k: v for k, v in response.items() if k not in ("etag", "url")}
    return UploadManifest(
        bucket=bucket,
        key=key,
        upload_id=upload_id,
        parts=list(parts),
        etag=response.get("etag"),
        location=response.get("url"),
        extra=extra,
    )


class HttpObjectStore(ObjectStore):
    def __init__(self, transport: BaseTransport) -> None:
        self._transport = transport

    async def _post(
        self,
        bucket: str,
        key: str,
        headers: dict[str, str],
        *,
        content: bytes | None = None,
        json: Any | None = None,
    ) -> httpx.Response:
        return await self._transport.post(
            MPU_PATH,
            params={"pathname": f"{bucket}/{key}"},
            headers=headers,
            content=content,
            json=json,
        )

    async def create_multipart_upload(self, bucket: str, key: str) -> str:
        response = decode_json(await self._post(bucket, key, _build_headers(action="create")))
        try:
            return str(response["uploadId"])
        except KeyError:
            raise ObjectStoreError("create response is missing uploadId") from None

    async def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
    ) -> str:
        headers = _build_headers(
            action="upload", key=key, upload_id=upload_id, part_number=part_number
        )
        response = decode_json(await self._post(bucket, key, headers, content=bytes(body)))
        try:
            return str(response["etag"])
        except KeyError:
            raise ObjectStoreError(f"upload response for part {part_number} has no etag") from None

    async def complete_multipart_upload(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: list[CompletedPart],
    ) -> UploadManifest:
        payload = [{"partNumber": part.part_number, "etag": part.etag} for part in parts]
        headers = _build_headers(action="complete", key=key, upload_id=upload_id)
        response = decode_json(await self._post(bucket, key, headers, json=payload))
        return shape_manifest(bucket, key, upload_id, parts, response)

    async def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        headers = _build_headers(action="abort", key=key, upload_id=upload_id)
        response = await self._post(bucket, key, headers)
        if response.is_error:
            raise map_store_error(response)

    def close(self) -> None:
        self._transport.close()


def _gateway_config(base_url: str, token: str | None, timeout: float | None) -> HTTPConfig:
    config = HTTPConfig(base_url=base_url, token=token)
    if timeout is not None:
        config.timeout = timeout
    return config


class SyncHttpObjectStore(HttpObjectStore):
    """Blocking gateway store for ``StreamingUpload``."""

    def __init__(self, base_url: str, *, token: str | None = None, timeout: float | None = None):
        super().__init__(BlockingTransport(_gateway_config(base_url, token, timeout)))


class AsyncHttpObjectStore(HttpObjectStore):
    """Non-blocking gateway store for ``AsyncStreamingUpload``."""

    def __init__(self, base_url: str, *, token: str | None = None, timeout: float | None = None):
        self._async_transport = AsyncTransport(_gateway_config(base_url, token, timeout))
        super().__init__(self._async_transport)

    async def aclose(self) -> None:
        await self._async_transport.aclose()


__all__ = [
    "HttpObjectStore",
    "SyncHttpObjectStore",
    "AsyncHttpObjectStore",
    "map_store_error",
]

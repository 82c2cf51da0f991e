from __future__ import annotations

from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from partstream.errors import ObjectStoreError
from partstream.types import CompletedPart, UploadManifest

from .base import ObjectStore


def _map_client_error(exc: ClientError) -> ObjectStoreError:
    err = exc.response.get("Error", {}) or {}
    meta = exc.response.get("ResponseMetadata", {}) or {}
    return ObjectStoreError(
        err.get("Message") or str(exc),
        status_code=meta.get("HTTPStatusCode"),
        code=err.get("Code"),
    )


class S3ObjectStore(ObjectStore):
    """Amazon S3 (or S3 compatible) store backed by a blocking boto3 client.

    Intended for ``StreamingUpload``; boto3 calls block the calling thread.
    """

    def __init__(self, client: Any | None = None, **client_kwargs: Any) -> None:
        self._client = client if client is not None else boto3.client("s3", **client_kwargs)

    def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        try:
            return getattr(self._client, operation)(**params)
        except ClientError as exc:
            raise _map_client_error(exc) from exc
        except BotoCoreError as exc:
            raise ObjectStoreError(str(exc)) from exc

    async def create_multipart_upload(self, bucket: str, key: str) -> str:
        response = self._call("create_multipart_upload", Bucket=bucket, Key=key)
        return response["UploadId"]

    async def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
    ) -> str:
        response = self._call(
            "upload_part",
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            ContentLength=len(body),
            Body=bytes(body),
        )
        return response["ETag"]

    async def complete_multipart_upload(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: list[CompletedPart],
    ) -> UploadManifest:
        response = self._call(
            "complete_multipart_upload",
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={
                "Parts": [{"ETag": part.etag, "PartNumber": part.part_number} for part in parts]
            },
        )
        extra = {
            k: v
            for k, v in response.items()
            if k not in ("ETag", "Location", "Bucket", "Key", "ResponseMetadata")
        }
        return UploadManifest(
            bucket=bucket,
            key=key,
            upload_id=upload_id,
            parts=list(parts),
            etag=response.get("ETag"),
            location=response.get("Location"),
            extra=extra,
        )

    async def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        self._call("abort_multipart_upload", Bucket=bucket, Key=key, UploadId=upload_id)


__all__ = ["S3ObjectStore"]

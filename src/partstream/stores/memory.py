from __future__ import annotations

import hashlib
import threading
import uuid
from dataclasses import dataclass, field

from partstream.errors import ObjectStoreError
from partstream.types import CompletedPart, UploadManifest

from .base import ObjectStore


@dataclass
class _PendingUpload:
    bucket: str
    key: str
    parts: dict[int, tuple[str, bytes]] = field(default_factory=dict)


class InMemoryObjectStore(ObjectStore):
    """Thread-safe in-process object store.

    Works with both runtimes since none of its coroutines suspend. Completed
    objects are kept in ``objects`` keyed by ``(bucket, key)`` and every call
    is appended to ``calls`` as ``(operation, part_number_or_None)``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._uploads: dict[str, _PendingUpload] = {}
        self.objects: dict[tuple[str, str], bytes] = {}
        self.aborted: list[str] = []
        self.calls: list[tuple[str, int | None]] = []

    def _record(self, operation: str, part_number: int | None = None) -> None:
        with self._lock:
            self.calls.append((operation, part_number))

    def _pending(self, bucket: str, key: str, upload_id: str) -> _PendingUpload:
        upload = self._uploads.get(upload_id)
        if upload is None or (upload.bucket, upload.key) != (bucket, key):
            raise ObjectStoreError(f"no such upload {upload_id}", status_code=404, code="not_found")
        return upload

    def count(self, operation: str) -> int:
        with self._lock:
            return sum(1 for name, _ in self.calls if name == operation)

    async def create_multipart_upload(self, bucket: str, key: str) -> str:
        self._record("create")
        upload_id = uuid.uuid4().hex
        with self._lock:
            self._uploads[upload_id] = _PendingUpload(bucket=bucket, key=key)
        return upload_id

    async def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
    ) -> str:
        self._record("upload", part_number)
        data = bytes(body)
        etag = hashlib.md5(data).hexdigest()
        with self._lock:
            self._pending(bucket, key, upload_id).parts[part_number] = (etag, data)
        return etag

    async def complete_multipart_upload(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: list[CompletedPart],
    ) -> UploadManifest:
        self._record("complete")
        numbers = [part.part_number for part in parts]
        if not parts:
            raise ObjectStoreError("at least one part is required", status_code=400)
        if numbers != sorted(set(numbers)):
            raise ObjectStoreError("parts must be sorted and unique", status_code=400)

        with self._lock:
            upload = self._pending(bucket, key, upload_id)
            chunks: list[bytes] = []
            for part in parts:
                stored = upload.parts.get(part.part_number)
                if stored is None or stored[0] != part.etag:
                    raise ObjectStoreError(
                        f"part {part.part_number} does not match an uploaded part",
                        status_code=400,
                        code="invalid_part",
                    )
                chunks.append(stored[1])
            data = b"".join(chunks)
            self.objects[(bucket, key)] = data
            del self._uploads[upload_id]

        return UploadManifest(
            bucket=bucket,
            key=key,
            upload_id=upload_id,
            parts=list(parts),
            etag=f"{hashlib.md5(data).hexdigest()}-{len(parts)}",
            location=f"memory://{bucket}/{key}",
            extra={"size": len(data)},
        )

    async def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        self._record("abort")
        with self._lock:
            self._uploads.pop(upload_id, None)
            self.aborted.append(upload_id)


__all__ = ["InMemoryObjectStore"]

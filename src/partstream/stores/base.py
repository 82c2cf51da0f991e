from __future__ import annotations

import abc

from partstream.types import CompletedPart, UploadManifest


class ObjectStore(abc.ABC):
    """Remote multipart-upload operations used by a streaming upload.

    Methods are declared async. Blocking backends implement them without
    awaiting anything that suspends, which lets the threaded runtime execute
    them on worker threads via ``iter_coroutine``; truly asynchronous backends
    must be paired with the async runtime.
    """

    @abc.abstractmethod
    async def create_multipart_upload(self, bucket: str, key: str) -> str:
        """Begin a multipart upload and return its upload id."""
        ...

    @abc.abstractmethod
    async def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
    ) -> str:
        """Upload one part and return the etag assigned by the store."""
        ...

    @abc.abstractmethod
    async def complete_multipart_upload(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: list[CompletedPart],
    ) -> UploadManifest:
        """Assemble the object from ``parts``, which are sorted by part number."""
        ...

    @abc.abstractmethod
    async def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        """Discard the upload and release server-side storage."""
        ...

    def close(self) -> None:
        """Close any underlying resources."""
        return None


__all__ = ["ObjectStore"]

from __future__ import annotations

import logging

from partstream.errors import FinalizeError
from partstream.handle import _HandleState
from partstream.stores.base import ObjectStore
from partstream.types import MultipartUploadSession, UploadManifest

from .tracker import ChunkTracker

logger = logging.getLogger(__name__)


class CompletionManager:
    """Finalizes or discards the multipart upload and resolves the handle."""

    def __init__(
        self,
        store: ObjectStore,
        session: MultipartUploadSession,
        handle: _HandleState,
    ) -> None:
        self._store = store
        self._session = session
        self._handle = handle

    async def finalize(self, tracker: ChunkTracker) -> UploadManifest:
        """Complete the upload from the tracker's chunks.

        Raises:
            FinalizeError: If a chunk is not completed, the part numbers are
                not dense, or the store rejects the completion.
        """
        session = self._session
        if len(tracker) == 0:
            raise FinalizeError(session.upload_id, "no parts were uploaded")
        if not tracker.all_completed():
            pending = [chunk.part_number for chunk in tracker if chunk.etag is None]
            raise FinalizeError(session.upload_id, f"parts {pending} are not completed")

        parts = tracker.completed_parts()
        expected = list(range(1, len(parts) + 1))
        if [part.part_number for part in parts] != expected:
            raise FinalizeError(session.upload_id, "part numbers are not contiguous")

        try:
            manifest = await self._store.complete_multipart_upload(
                session.bucket, session.key, session.upload_id, parts
            )
        except Exception as exc:
            raise FinalizeError(session.upload_id, repr(exc)) from exc

        logger.debug(
            "Completed upload to %s/%s (%d parts)", session.bucket, session.key, len(parts)
        )
        if not self._handle.resolve(manifest):
            logger.debug("Upload %s was already resolved", session.upload_id)
        return manifest

    async def abort(self, error: BaseException) -> None:
        session = self._session
        logger.debug(
            "Aborting upload to %s/%s with id %s", session.bucket, session.key, session.upload_id
        )
        try:
            await self._store.abort_multipart_upload(
                session.bucket, session.key, session.upload_id
            )
        except Exception:
            logger.exception(
                "Aborting upload %s to %s/%s failed", session.upload_id, session.bucket, session.key
            )
        if not self._handle.fail(error):
            logger.debug("Upload %s was already resolved, dropping %r", session.upload_id, error)


__all__ = ["CompletionManager"]

from __future__ import annotations

import logging
from dataclasses import dataclass

from partstream.errors import PartUploadError
from partstream.stores.base import ObjectStore
from partstream.types import MultipartUploadSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PartUploaded:
    part_number: int
    etag: str
    size: int


@dataclass(frozen=True, slots=True)
class PartFailed:
    part_number: int
    error: BaseException


PartOutcome = PartUploaded | PartFailed


class PartUploader:
    """Uploads single parts with a fixed attempt budget and no backoff."""

    def __init__(self, store: ObjectStore, session: MultipartUploadSession, attempts: int) -> None:
        self._store = store
        self._session = session
        self._attempts = attempts

    async def upload(self, part_number: int, data: bytes) -> PartOutcome:
        session = self._session
        last_error: Exception | None = None
        for attempt in range(1, self._attempts + 1):
            try:
                etag = await self._store.upload_part(
                    session.bucket,
                    session.key,
                    session.upload_id,
                    part_number,
                    data,
                )
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "Uploading part %d of %s/%s failed on attempt %d/%d: %r",
                    part_number,
                    session.bucket,
                    session.key,
                    attempt,
                    self._attempts,
                    exc,
                )
                continue
            return PartUploaded(part_number=part_number, etag=etag, size=len(data))

        error = PartUploadError(part_number, session.upload_id, self._attempts)
        error.__cause__ = last_error
        logger.error(
            "Giving up on part %d of %s/%s (upload id %s)",
            part_number,
            session.bucket,
            session.key,
            session.upload_id,
        )
        return PartFailed(part_number=part_number, error=error)


__all__ = ["PartUploader", "PartUploaded", "PartFailed", "PartOutcome"]

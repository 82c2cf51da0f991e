from __future__ import annotations


class PartstreamError(Exception):
    def __init__(self, message: str = "") -> None:
        super().__init__(f"partstream: {message}" if message else "partstream: unknown error")


class ConfigurationError(PartstreamError):
    pass


class ObjectStoreError(PartstreamError):
    """Error returned by the remote object store."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class PartUploadError(PartstreamError):
    """A part could not be uploaded within its retry budget."""

    def __init__(self, part_number: int, upload_id: str, attempts: int) -> None:
        super().__init__(
            f"uploading part failed for part {part_number} and upload id {upload_id} "
            f"after {attempts} attempt(s)"
        )
        self.part_number = part_number
        self.upload_id = upload_id
        self.attempts = attempts


class UpstreamInputError(PartstreamError):
    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"reading upload input failed: {cause!r}")
        self.cause = cause


class FinalizeError(PartstreamError):
    def __init__(self, upload_id: str, message: str) -> None:
        super().__init__(f"completing upload {upload_id} failed: {message}")
        self.upload_id = upload_id


class UploadAbortedError(PartstreamError):
    pass


class ChunkStateError(PartstreamError):
    pass


__all__ = [
    "PartstreamError",
    "ConfigurationError",
    "ObjectStoreError",
    "PartUploadError",
    "UpstreamInputError",
    "FinalizeError",
    "UploadAbortedError",
    "ChunkStateError",
]

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class MultipartUploadSession:
    bucket: str
    key: str
    upload_id: str


@dataclass(frozen=True, slots=True)
class CompletedPart:
    part_number: int
    etag: str


@dataclass(frozen=True, slots=True)
class PartResult:
    """Acknowledgement for one uploaded part, emitted in completion order."""

    part_number: int
    etag: str
    size: int


@dataclass(slots=True)
class UploadManifest:
    bucket: str
    key: str
    upload_id: str
    parts: list[CompletedPart]
    etag: str | None = None
    location: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Chunk states
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ChunkStarted:
    pass


@dataclass(frozen=True, slots=True)
class ChunkCompleted:
    etag: str


@dataclass(frozen=True, slots=True)
class ChunkFailed:
    error: BaseException


ChunkState = ChunkStarted | ChunkCompleted | ChunkFailed


@dataclass(frozen=True, slots=True)
class UploadChunk:
    part_number: int
    state: ChunkState = ChunkStarted()

    @property
    def etag(self) -> str | None:
        if isinstance(self.state, ChunkCompleted):
            return self.state.etag
        return None

    @property
    def is_terminal(self) -> bool:
        return not isinstance(self.state, ChunkStarted)


__all__ = [
    "MultipartUploadSession",
    "CompletedPart",
    "PartResult",
    "UploadManifest",
    "ChunkStarted",
    "ChunkCompleted",
    "ChunkFailed",
    "ChunkState",
    "UploadChunk",
]

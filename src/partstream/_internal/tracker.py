from __future__ import annotations

from collections.abc import Iterator

from partstream.errors import ChunkStateError
from partstream.types import (
    ChunkCompleted,
    ChunkFailed,
    ChunkStarted,
    CompletedPart,
    UploadChunk,
)


class ChunkTracker:
    """Authoritative map from part number to upload state.

    Only the coordinator's owner mutates a tracker, so it carries no locks.
    Part numbers must be registered densely starting at 1.
    """

    def __init__(self) -> None:
        self._chunks: dict[int, UploadChunk] = {}
        self._outstanding = 0
        self.peak_outstanding = 0

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[UploadChunk]:
        for part_number in sorted(self._chunks):
            yield self._chunks[part_number]

    def __contains__(self, part_number: object) -> bool:
        return part_number in self._chunks

    def get(self, part_number: int) -> UploadChunk | None:
        return self._chunks.get(part_number)

    @property
    def outstanding(self) -> int:
        return self._outstanding

    def start(self, part_number: int) -> UploadChunk:
        expected = len(self._chunks) + 1
        if part_number != expected:
            raise ChunkStateError(
                f"part {part_number} registered out of order, expected part {expected}"
            )
        chunk = UploadChunk(part_number)
        self._chunks[part_number] = chunk
        self._outstanding += 1
        self.peak_outstanding = max(self.peak_outstanding, self._outstanding)
        return chunk

    def complete(self, part_number: int, etag: str) -> UploadChunk:
        return self._finish(part_number, ChunkCompleted(etag))

    def fail(self, part_number: int, error: BaseException) -> UploadChunk:
        return self._finish(part_number, ChunkFailed(error))

    def _finish(self, part_number: int, state: ChunkCompleted | ChunkFailed) -> UploadChunk:
        chunk = self._chunks.get(part_number)
        if chunk is None:
            raise ChunkStateError(f"part {part_number} was never started")
        if not isinstance(chunk.state, ChunkStarted):
            raise ChunkStateError(
                f"part {part_number} is already {type(chunk.state).__name__}"
            )
        chunk = UploadChunk(part_number, state)
        self._chunks[part_number] = chunk
        self._outstanding -= 1
        return chunk

    def all_completed(self) -> bool:
        return all(isinstance(chunk.state, ChunkCompleted) for chunk in self._chunks.values())

    def completed_parts(self) -> list[CompletedPart]:
        """Return the completed parts ordered by part number."""
        parts: list[CompletedPart] = []
        for chunk in self:
            if isinstance(chunk.state, ChunkCompleted):
                parts.append(CompletedPart(part_number=chunk.part_number, etag=chunk.state.etag))
        return parts


__all__ = ["ChunkTracker"]

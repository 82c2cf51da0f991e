"""Shared fixtures for all tests."""

from __future__ import annotations

import threading
import time
from collections.abc import Generator

import pytest

from partstream import InMemoryObjectStore, ObjectStoreError, UploadConfig
from partstream.types import CompletedPart, UploadManifest


class RecordingStore(InMemoryObjectStore):
    """In-memory store with scripted failures and concurrency accounting.

    ``failures`` maps a part number to how many attempts for it must fail.
    """

    def __init__(
        self,
        *,
        failures: dict[int, int] | None = None,
        fail_complete: bool = False,
        fail_abort: bool = False,
        delay: float = 0.0,
    ) -> None:
        super().__init__()
        self.failures = dict(failures or {})
        self.fail_complete = fail_complete
        self.fail_abort = fail_abort
        self.delay = delay
        self.attempts: dict[int, int] = {}
        self.part_sizes: dict[int, int] = {}
        self.completed_parts: list[CompletedPart] | None = None
        self.in_flight = 0
        self.max_in_flight = 0
        self._counter_lock = threading.Lock()

    def _enter(self, part_number: int) -> int:
        with self._counter_lock:
            self.attempts[part_number] = self.attempts.get(part_number, 0) + 1
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            return self.attempts[part_number]

    def _leave(self) -> None:
        with self._counter_lock:
            self.in_flight -= 1

    async def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
    ) -> str:
        attempt = self._enter(part_number)
        try:
            if self.delay:
                time.sleep(self.delay)
            if attempt <= self.failures.get(part_number, 0):
                raise ObjectStoreError(f"injected failure for part {part_number}", status_code=503)
            self.part_sizes[part_number] = len(body)
            return await super().upload_part(bucket, key, upload_id, part_number, body)
        finally:
            self._leave()

    async def complete_multipart_upload(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: list[CompletedPart],
    ) -> UploadManifest:
        self.completed_parts = list(parts)
        if self.fail_complete:
            self._record("complete")
            raise ObjectStoreError("injected completion failure", status_code=400)
        return await super().complete_multipart_upload(bucket, key, upload_id, parts)

    async def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        await super().abort_multipart_upload(bucket, key, upload_id)
        if self.fail_abort:
            raise ObjectStoreError("injected abort failure", status_code=500)


class GatedStore(RecordingStore):
    """Blocks part uploads on a worker thread until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()

    async def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
    ) -> str:
        self.release.wait(timeout=5)
        return await super().upload_part(bucket, key, upload_id, part_number, body)


@pytest.fixture
def mock_env_clear(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear all partstream environment variables for testing."""
    env_vars_to_clear = [
        "PARTSTREAM_TOKEN",
        "PARTSTREAM_PART_SIZE",
        "PARTSTREAM_MAX_QUEUE_SIZE",
        "PARTSTREAM_PART_RETRIES",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def small_config() -> UploadConfig:
    """Ten-byte parts, three outstanding parts, two attempts per part."""
    return UploadConfig(part_size=10, max_queue_size=3, part_retries=2)


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def recording_store_cls() -> type[RecordingStore]:
    return RecordingStore


@pytest.fixture
def gated_store() -> Generator[GatedStore, None, None]:
    gated = GatedStore()
    yield gated
    gated.release.set()

"""Write-once result cells for a streaming upload."""

from __future__ import annotations

import threading

import anyio

from .types import UploadManifest


class _HandleState:
    """Shared resolve-once bookkeeping.

    ``resolve`` and ``fail`` return False when the handle already holds an
    outcome; the first outcome always wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._resolved = False
        self._manifest: UploadManifest | None = None
        self._error: BaseException | None = None

    def resolve(self, manifest: UploadManifest) -> bool:
        with self._lock:
            if self._resolved:
                return False
            self._resolved = True
            self._manifest = manifest
        self._notify()
        return True

    def fail(self, error: BaseException) -> bool:
        with self._lock:
            if self._resolved:
                return False
            self._resolved = True
            self._error = error
        self._notify()
        return True

    def done(self) -> bool:
        return self._resolved

    def _notify(self) -> None:
        raise NotImplementedError

    def _outcome(self) -> UploadManifest:
        if self._error is not None:
            raise self._error
        assert self._manifest is not None
        return self._manifest


class UploadHandle(_HandleState):
    """Thread-safe handle, waited on with a blocking call."""

    def __init__(self) -> None:
        super().__init__()
        self._event = threading.Event()

    def _notify(self) -> None:
        self._event.set()

    def result(self, timeout: float | None = None) -> UploadManifest:
        """Block until the upload is resolved.

        Raises:
            TimeoutError: If ``timeout`` elapses first.
            Exception: The error the upload failed with.
        """
        if not self._event.wait(timeout):
            raise TimeoutError("upload was not resolved in time")
        return self._outcome()

    def exception(self, timeout: float | None = None) -> BaseException | None:
        if not self._event.wait(timeout):
            raise TimeoutError("upload was not resolved in time")
        return self._error


class AsyncUploadHandle(_HandleState):
    """Handle awaited from the event loop that owns the upload."""

    def __init__(self) -> None:
        super().__init__()
        self._event = anyio.Event()

    def _notify(self) -> None:
        self._event.set()

    async def wait(self) -> UploadManifest:
        await self._event.wait()
        return self._outcome()

    def exception(self) -> BaseException | None:
        return self._error


__all__ = ["UploadHandle", "AsyncUploadHandle"]

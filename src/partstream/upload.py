"""Streaming multipart upload runtimes.

``StreamingUpload`` runs part uploads on an injected thread pool and is driven
from the caller's thread. ``AsyncStreamingUpload`` runs them as tasks in an
injected anyio task group. Both own a single ``FlowCoordinator`` and are the
only code that touches it; part uploads report back through a queue (threads)
or a memory object stream (tasks).
"""

from __future__ import annotations

import inspect
import logging
import math
import queue
import threading
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable, Iterator
from concurrent.futures import Executor, ThreadPoolExecutor
from contextlib import aclosing, closing
from typing import cast

import anyio
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from ._internal.coordinator import (
    AbortRequested,
    AbortUpload,
    Action,
    DispatchPart,
    Event,
    FinalizeUpload,
    FlowCoordinator,
    FlowState,
    InputFailed,
    InputFinished,
    InputPushed,
)
from ._internal.finalizer import CompletionManager
from ._internal.iter_coroutine import iter_coroutine
from ._internal.part_uploader import PartFailed, PartUploader
from ._internal.tracker import ChunkTracker
from .config import UploadConfig
from .errors import FinalizeError, PartstreamError, UploadAbortedError
from .handle import AsyncUploadHandle, UploadHandle, _HandleState
from .stores.base import ObjectStore
from .types import MultipartUploadSession, PartResult, UploadManifest

logger = logging.getLogger(__name__)

Chunk = bytes | bytearray | memoryview
SyncPartCallback = Callable[[PartResult], None]
AsyncPartCallback = Callable[[PartResult], None] | Callable[[PartResult], Awaitable[None]]

STREAM_CLOSED_MESSAGE = "result stream closed before the upload finished"


async def _aiter_chunks(source: AsyncIterable[Chunk] | Iterable[Chunk]) -> AsyncIterator[Chunk]:
    if hasattr(source, "__aiter__"):
        async for chunk in cast(AsyncIterable[Chunk], source):
            yield chunk
        return
    for chunk in cast(Iterable[Chunk], source):
        yield chunk


class _StreamingUploadBase:
    def __init__(
        self,
        store: ObjectStore,
        session: MultipartUploadSession,
        config: UploadConfig,
        handle: _HandleState,
    ) -> None:
        self.store = store
        self.session = session
        self.config = config
        self._coordinator = FlowCoordinator(config)
        self._uploader = PartUploader(store, session, config.part_retries)
        self._manager = CompletionManager(store, session, handle)
        self._started = False

    @property
    def upload_id(self) -> str:
        return self.session.upload_id

    @property
    def state(self) -> FlowState:
        return self._coordinator.state

    @property
    def tracker(self) -> ChunkTracker:
        return self._coordinator.tracker

    def _claim(self) -> None:
        if self._started:
            raise PartstreamError("the results of an upload can only be consumed once")
        self._started = True

    def _abort_actions(self, error: BaseException) -> list[Action]:
        coordinator = self._coordinator
        if coordinator.state is FlowState.FINALIZING:
            return coordinator.on_finalize_failed(error)
        return coordinator.handle(AbortRequested(error))


# ---------------------------------------------------------------------------
# Thread pool runtime
# ---------------------------------------------------------------------------


class StreamingUpload(_StreamingUploadBase):
    """Streaming multipart upload driven from the calling thread.

    Part uploads run on ``executor``; the store must be a blocking store whose
    coroutines never suspend.
    """

    handle: UploadHandle

    def __init__(
        self,
        store: ObjectStore,
        session: MultipartUploadSession,
        *,
        executor: Executor,
        config: UploadConfig | None = None,
    ) -> None:
        handle = UploadHandle()
        super().__init__(store, session, config or UploadConfig(), handle)
        self.handle = handle
        self._executor = executor
        self._events: queue.Queue[Event] = queue.Queue()
        self._lock = threading.Lock()
        self._running = False

    @classmethod
    def begin(
        cls,
        store: ObjectStore,
        bucket: str,
        key: str,
        *,
        executor: Executor,
        config: UploadConfig | None = None,
    ) -> StreamingUpload:
        upload_id = iter_coroutine(store.create_multipart_upload(bucket, key))
        logger.debug("Began upload %s to %s/%s", upload_id, bucket, key)
        session = MultipartUploadSession(bucket=bucket, key=key, upload_id=upload_id)
        return cls(store, session, executor=executor, config=config)

    def results(self, source: Iterable[Chunk]) -> Iterator[PartResult]:
        """Upload ``source`` and yield one ``PartResult`` per finished part.

        Input is only pulled while the number of outstanding parts is below
        ``max_queue_size``. Raises the terminal error if the upload is aborted.
        """
        with self._lock:
            self._claim()
            self._running = True
        coordinator = self._coordinator
        iterator = iter(source)
        try:
            while not coordinator.terminal:
                result = coordinator.pop_result()
                if result is not None:
                    yield result
                    continue
                self._execute(coordinator.handle(self._next_event(iterator)))
            while (result := coordinator.pop_result()) is not None:
                yield result
        except GeneratorExit:
            self._execute(self._abort_actions(UploadAbortedError(STREAM_CLOSED_MESSAGE)))
            raise
        except BaseException as exc:
            self._execute(self._abort_actions(exc))
            raise
        finally:
            with self._lock:
                self._running = False

        if coordinator.state is FlowState.ABORTED:
            assert coordinator.error is not None
            raise coordinator.error

    def run(
        self,
        source: Iterable[Chunk],
        *,
        on_part_uploaded: SyncPartCallback | None = None,
    ) -> UploadManifest:
        with closing(self.results(source)) as results:
            for result in results:
                if on_part_uploaded is not None:
                    on_part_uploaded(result)
        return self.handle.result()

    def abort(self, reason: BaseException | None = None) -> None:
        """Abort the upload; safe to call from any thread."""
        error = reason if reason is not None else UploadAbortedError("upload aborted by caller")
        with self._lock:
            if self._running:
                self._events.put(AbortRequested(error))
                return
            self._execute(self._abort_actions(error))

    def _next_event(self, iterator: Iterator[Chunk]) -> Event:
        # part outcomes that already arrived go before more input
        try:
            return self._events.get_nowait()
        except queue.Empty:
            pass
        if self._coordinator.pull_input():
            try:
                data = next(iterator)
            except StopIteration:
                return InputFinished()
            except Exception as exc:
                return InputFailed(exc)
            return InputPushed(data)
        return self._events.get()

    def _execute(self, actions: list[Action]) -> None:
        for action in actions:
            if isinstance(action, DispatchPart):
                self._executor.submit(self._upload_part, action.part_number, action.data)
            elif isinstance(action, FinalizeUpload):
                try:
                    iter_coroutine(self._manager.finalize(self._coordinator.tracker))
                except FinalizeError as exc:
                    logger.error("Upload failed to %s while completing: %s", self.session.key, exc)
                    self._execute(self._coordinator.on_finalize_failed(exc))
                else:
                    self._coordinator.mark_completed()
            elif isinstance(action, AbortUpload):
                iter_coroutine(self._manager.abort(action.error))

    def _upload_part(self, part_number: int, data: bytes) -> None:
        try:
            outcome = iter_coroutine(self._uploader.upload(part_number, data))
        except Exception as exc:
            outcome = PartFailed(part_number=part_number, error=exc)
        self._events.put(outcome)


def stream_upload(
    store: ObjectStore,
    bucket: str,
    key: str,
    source: Iterable[Chunk],
    *,
    config: UploadConfig | None = None,
    on_part_uploaded: SyncPartCallback | None = None,
) -> UploadManifest:
    """Upload ``source`` to ``bucket``/``key`` and return the completed manifest.

    Uses a private thread pool sized to ``config.max_queue_size``. Parts still
    running when the upload fails are not waited for.
    """
    config = config or UploadConfig()
    executor = ThreadPoolExecutor(
        max_workers=config.max_queue_size, thread_name_prefix="partstream"
    )
    try:
        upload = StreamingUpload.begin(store, bucket, key, executor=executor, config=config)
        return upload.run(source, on_part_uploaded=on_part_uploaded)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


# ---------------------------------------------------------------------------
# anyio runtime
# ---------------------------------------------------------------------------


class AsyncStreamingUpload(_StreamingUploadBase):
    """Streaming multipart upload driven from an anyio event loop.

    Part uploads and the input reader run as tasks in ``task_group``.
    """

    handle: AsyncUploadHandle

    def __init__(
        self,
        store: ObjectStore,
        session: MultipartUploadSession,
        *,
        task_group: TaskGroup,
        config: UploadConfig | None = None,
    ) -> None:
        handle = AsyncUploadHandle()
        super().__init__(store, session, config or UploadConfig(), handle)
        self.handle = handle
        self._task_group = task_group
        self._events_send: MemoryObjectSendStream[Event] | None = None
        self._reader_scope = anyio.CancelScope()

    @classmethod
    async def begin(
        cls,
        store: ObjectStore,
        bucket: str,
        key: str,
        *,
        task_group: TaskGroup,
        config: UploadConfig | None = None,
    ) -> AsyncStreamingUpload:
        upload_id = await store.create_multipart_upload(bucket, key)
        logger.debug("Began upload %s to %s/%s", upload_id, bucket, key)
        session = MultipartUploadSession(bucket=bucket, key=key, upload_id=upload_id)
        return cls(store, session, task_group=task_group, config=config)

    async def results(
        self, source: AsyncIterable[Chunk] | Iterable[Chunk]
    ) -> AsyncIterator[PartResult]:
        """Upload ``source`` and yield one ``PartResult`` per finished part.

        Raises the terminal error if the upload is aborted.
        """
        self._claim()
        coordinator = self._coordinator
        events_send, events_receive = anyio.create_memory_object_stream[Event](math.inf)
        demand_send, demand_receive = anyio.create_memory_object_stream[None](1)
        self._events_send = events_send
        self._task_group.start_soon(
            self._read_input, source, demand_receive, events_send.clone(), name="partstream-input"
        )
        try:
            while not coordinator.terminal:
                result = coordinator.pop_result()
                if result is not None:
                    yield result
                    continue
                if coordinator.pull_input():
                    demand_send.send_nowait(None)
                event = await events_receive.receive()
                await self._execute(coordinator.handle(event))
            while (result := coordinator.pop_result()) is not None:
                yield result
        except BaseException as exc:
            if isinstance(exc, (GeneratorExit, anyio.get_cancelled_exc_class())):
                error: BaseException = UploadAbortedError(STREAM_CLOSED_MESSAGE)
            else:
                error = exc
            with anyio.CancelScope(shield=True):
                await self._execute(self._abort_actions(error))
            raise
        finally:
            self._events_send = None
            self._reader_scope.cancel()
            demand_send.close()
            events_send.close()
            events_receive.close()

        if coordinator.state is FlowState.ABORTED:
            assert coordinator.error is not None
            raise coordinator.error

    async def run(
        self,
        source: AsyncIterable[Chunk] | Iterable[Chunk],
        *,
        on_part_uploaded: AsyncPartCallback | None = None,
    ) -> UploadManifest:
        async with aclosing(self.results(source)) as results:
            async for result in results:
                if on_part_uploaded is not None:
                    callback_result = on_part_uploaded(result)
                    if inspect.isawaitable(callback_result):
                        await cast(Awaitable[None], callback_result)
        return await self.handle.wait()

    async def abort(self, reason: BaseException | None = None) -> None:
        error = reason if reason is not None else UploadAbortedError("upload aborted by caller")
        if self._events_send is not None:
            self._deliver(AbortRequested(error))
            return
        await self._execute(self._abort_actions(error))

    async def _read_input(
        self,
        source: AsyncIterable[Chunk] | Iterable[Chunk],
        demand: MemoryObjectReceiveStream[None],
        events: MemoryObjectSendStream[Event],
    ) -> None:
        async with events, demand:
            with self._reader_scope:
                try:
                    async with aclosing(_aiter_chunks(source)) as chunks:
                        async for _ in demand:
                            try:
                                data = await anext(chunks)
                            except StopAsyncIteration:
                                await events.send(InputFinished())
                                return
                            except Exception as exc:
                                await events.send(InputFailed(exc))
                                return
                            await events.send(InputPushed(data))
                except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                    logger.debug("Input reader for upload %s stopped", self.upload_id)

    async def _execute(self, actions: list[Action]) -> None:
        for action in actions:
            if isinstance(action, DispatchPart):
                self._task_group.start_soon(
                    self._upload_part,
                    action.part_number,
                    action.data,
                    name=f"partstream-part-{action.part_number}",
                )
            elif isinstance(action, FinalizeUpload):
                try:
                    await self._manager.finalize(self._coordinator.tracker)
                except FinalizeError as exc:
                    logger.error("Upload failed to %s while completing: %s", self.session.key, exc)
                    await self._execute(self._coordinator.on_finalize_failed(exc))
                else:
                    self._coordinator.mark_completed()
            elif isinstance(action, AbortUpload):
                self._reader_scope.cancel()
                await self._manager.abort(action.error)

    async def _upload_part(self, part_number: int, data: bytes) -> None:
        self._deliver(await self._uploader.upload(part_number, data))

    def _deliver(self, event: Event) -> None:
        events = self._events_send
        if events is None:
            logger.debug("Dropping %s for finished upload %s", type(event).__name__, self.upload_id)
            return
        try:
            events.send_nowait(event)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            logger.debug("Dropping %s for finished upload %s", type(event).__name__, self.upload_id)


async def stream_upload_async(
    store: ObjectStore,
    bucket: str,
    key: str,
    source: AsyncIterable[Chunk] | Iterable[Chunk],
    *,
    config: UploadConfig | None = None,
    on_part_uploaded: AsyncPartCallback | None = None,
) -> UploadManifest:
    """Async variant of ``stream_upload`` using a private task group.

    Part tasks still running when the upload fails are cancelled.
    """
    manifest: UploadManifest | None = None
    error: Exception | None = None
    async with anyio.create_task_group() as task_group:
        try:
            upload = await AsyncStreamingUpload.begin(
                store, bucket, key, task_group=task_group, config=config
            )
            manifest = await upload.run(source, on_part_uploaded=on_part_uploaded)
        except Exception as exc:
            error = exc
        task_group.cancel_scope.cancel()
    if error is not None:
        raise error
    assert manifest is not None
    return manifest


__all__ = [
    "StreamingUpload",
    "AsyncStreamingUpload",
    "stream_upload",
    "stream_upload_async",
]



"""Single-owner state machine behind a streaming upload.

The coordinator performs no I/O. A runtime feeds it one event at a time from
the thread or task that owns it and executes the actions it returns. Because
nothing else touches the coordinator, the chunk map and the buffer need no
locking.
"""

from __future__ import annotations

import enum
import logging
from collections import deque
from dataclasses import dataclass

from partstream.config import UploadConfig
from partstream.errors import PartstreamError, UpstreamInputError
from partstream.types import PartResult

from .buffer import PartBuffer
from .part_uploader import PartFailed, PartUploaded
from .tracker import ChunkTracker

logger = logging.getLogger(__name__)


class FlowState(enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({FlowState.COMPLETED, FlowState.ABORTED})


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class InputPushed:
    data: bytes


@dataclass(frozen=True, slots=True)
class InputFinished:
    pass


@dataclass(frozen=True, slots=True)
class InputFailed:
    error: BaseException


@dataclass(frozen=True, slots=True)
class AbortRequested:
    error: BaseException


Event = InputPushed | InputFinished | InputFailed | AbortRequested | PartUploaded | PartFailed


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DispatchPart:
    part_number: int
    data: bytes


@dataclass(frozen=True, slots=True)
class FinalizeUpload:
    pass


@dataclass(frozen=True, slots=True)
class AbortUpload:
    error: BaseException


Action = DispatchPart | FinalizeUpload | AbortUpload


class FlowCoordinator:
    def __init__(self, config: UploadConfig) -> None:
        self._config = config
        self.tracker = ChunkTracker()
        self.buffer = PartBuffer(config.part_size)
        self.state = FlowState.RUNNING
        self.error: BaseException | None = None
        self._input_closed = False
        self._input_requested = False
        self._results: deque[PartResult] = deque()

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def input_closed(self) -> bool:
        return self._input_closed

    def _admits(self) -> bool:
        return self.tracker.outstanding < self._config.max_queue_size

    def pull_input(self) -> bool:
        """Request the next input element if admission allows it.

        Returns True when the caller should fetch one element and report it
        with ``InputPushed``, ``InputFinished`` or ``InputFailed``.
        """
        if (
            self.state is not FlowState.RUNNING
            or self._input_requested
            or self.buffer.ready()
            or not self._admits()
        ):
            return False
        self._input_requested = True
        return True

    def pop_result(self) -> PartResult | None:
        if self._results:
            return self._results.popleft()
        return None

    def handle(self, event: Event) -> list[Action]:
        if self.terminal or self.state is FlowState.FINALIZING:
            logger.debug("Ignoring %s received in state %s", type(event).__name__, self.state.value)
            return []

        if isinstance(event, InputPushed):
            self._input_requested = False
            self.buffer.append(event.data)
            return self._advance()

        if isinstance(event, InputFinished):
            self._input_requested = False
            self._input_closed = True
            self.state = FlowState.DRAINING
            return self._advance()

        if isinstance(event, InputFailed):
            self._input_requested = False
            self._input_closed = True
            error = UpstreamInputError(event.error)
            error.__cause__ = event.error
            return self._abort(error)

        if isinstance(event, PartUploaded):
            self.tracker.complete(event.part_number, event.etag)
            self._results.append(
                PartResult(part_number=event.part_number, etag=event.etag, size=event.size)
            )
            logger.debug(
                "Part %d completed, %d outstanding", event.part_number, self.tracker.outstanding
            )
            return self._advance()

        if isinstance(event, PartFailed):
            self.tracker.fail(event.part_number, event.error)
            return self._abort(event.error)

        if isinstance(event, AbortRequested):
            return self._abort(event.error)

        raise PartstreamError(f"unknown event {event!r}")

    def on_finalize_failed(self, error: BaseException) -> list[Action]:
        if self.state is not FlowState.FINALIZING:
            return []
        return self._abort(error)

    def mark_completed(self) -> None:
        self.state = FlowState.COMPLETED

    def _advance(self) -> list[Action]:
        actions: list[Action] = []
        final = self._input_closed
        while self._admits():
            part = self.buffer.take_part(final=final)
            if part is None:
                break
            part_number, data = part
            # registered before the action leaves, so no result can precede it
            self.tracker.start(part_number)
            logger.debug("Dispatching part %d (%d bytes)", part_number, len(data))
            actions.append(DispatchPart(part_number=part_number, data=data))

        if (
            self._input_closed
            and len(self.buffer) == 0
            and self.buffer.parts_taken > 0
            and self.tracker.outstanding == 0
        ):
            self.state = FlowState.FINALIZING
            actions.append(FinalizeUpload())
        return actions

    def _abort(self, error: BaseException) -> list[Action]:
        if self.terminal:
            return []
        logger.debug("Aborting upload: %r", error)
        self.state = FlowState.ABORTED
        self.error = error
        self._results.clear()
        return [AbortUpload(error=error)]


__all__ = [
    "FlowCoordinator",
    "FlowState",
    "InputPushed",
    "InputFinished",
    "InputFailed",
    "AbortRequested",
    "Event",
    "DispatchPart",
    "FinalizeUpload",
    "AbortUpload",
    "Action",
]

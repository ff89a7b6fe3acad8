"""Shared lifecycle of pull and build operations.

Every operation moves through the same states::

    IDLE -> VALIDATING -> INVOKING -> STREAMING -> {SUCCEEDED | FAILED}

and produces exactly one OperationOutcome. The outcome is both returned to
the caller and handed to the optional completion callback. Data or end
notifications that arrive after the operation terminated are logged and
ignored.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable

from ..log import get_logger
from .descriptor import ImageDescriptor
from .events import StreamEvent, describe_progress, parse_chunk
from .exceptions import (
    EngineReportedError,
    ImageError,
    OperationTimeoutError,
    TransportError,
)

logger = get_logger(__name__)


class OperationState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    INVOKING = "invoking"
    STREAMING = "streaming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationState.SUCCEEDED, OperationState.FAILED)


@dataclass(frozen=True)
class OperationOutcome:
    """Terminal result of a pull or build: success, or failure with an error."""

    error: ImageError | None = None

    @classmethod
    def success(cls) -> "OperationOutcome":
        return cls()

    @classmethod
    def failure(cls, error: ImageError) -> "OperationOutcome":
        return cls(error=error)

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str | None:
        """The failure message, or None on success."""
        return None if self.error is None else str(self.error)

    def raise_for_failure(self) -> None:
        """Raises the stored error if the operation failed."""
        if self.error is not None:
            raise self.error


CompletionCallback = Callable[[OperationOutcome], None]
EventCallback = Callable[[StreamEvent], None]


class ImageOperation:
    """State and exactly-once termination guard of a single operation."""

    def __init__(
        self,
        kind: str,
        descriptor: ImageDescriptor,
        on_complete: CompletionCallback | None = None,
        on_event: EventCallback | None = None,
    ):
        self._descriptor = descriptor
        self._on_complete = on_complete
        self._on_event = on_event
        self._lock = threading.Lock()
        self._state = OperationState.IDLE
        self._outcome: OperationOutcome | None = None
        self._logger = logger.bind(operation=kind, image=descriptor.name)

    @property
    def state(self) -> OperationState:
        return self._state

    @property
    def outcome(self) -> OperationOutcome | None:
        return self._outcome

    @property
    def terminated(self) -> bool:
        return self._outcome is not None

    def transition(self, state: OperationState) -> bool:
        """Moves to a non-terminal state. Returns False once terminated."""
        with self._lock:
            if self._outcome is not None:
                self._logger.warning(
                    "ignoring transition after termination",
                    state=state.value,
                    terminal_state=self._state.value,
                )
                return False
            self._state = state
        self._logger.debug("operation state changed", state=state.value)
        return True

    def on_data(self, chunk: Any) -> bool:
        """Handles one chunk of engine output.

        Returns True while the operation keeps streaming, False once it has
        terminated (either before or because of this chunk).
        """
        if self.terminated:
            self._logger.warning("ignoring data after termination")
            return False

        for event in parse_chunk(chunk):
            self._report(event)
            if event.is_error:
                self.fail(
                    EngineReportedError(event.payload, image_name=self._descriptor.name)
                )
                return False
            self._logger.debug("progress", message=describe_progress(event.payload))
        return True

    def _report(self, event: StreamEvent) -> None:
        # A failing event callback never prevents the terminal outcome.
        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception:  # pylint: disable=broad-except
            self._logger.exception("event callback failed", kind=event.kind.value)

    def on_end(self) -> None:
        """Handles the end of the engine's stream."""
        if self.terminated:
            self._logger.warning("ignoring end of stream after termination")
            return
        self.succeed()

    def consume(self, stream: Iterable[Any]) -> OperationOutcome:
        """Streams the engine output until it ends or reports an error."""
        try:
            if self.transition(OperationState.STREAMING):
                for chunk in stream:
                    if not self.on_data(chunk):
                        break
                else:
                    self.on_end()
        except TransportError as e:
            self.fail(e)
        finally:
            close = getattr(stream, "close", None)
            if callable(close):
                close()
        return self._outcome

    def succeed(self) -> OperationOutcome:
        return self._terminate(OperationState.SUCCEEDED, OperationOutcome.success())

    def fail(self, error: ImageError) -> OperationOutcome:
        return self._terminate(OperationState.FAILED, OperationOutcome.failure(error))

    def _terminate(
        self, state: OperationState, outcome: OperationOutcome
    ) -> OperationOutcome:
        with self._lock:
            if self._outcome is not None:
                self._logger.warning(
                    "ignoring second terminal outcome",
                    state=state.value,
                    terminal_state=self._state.value,
                )
                return self._outcome
            self._state = state
            self._outcome = outcome

        if outcome.succeeded:
            self._logger.info("operation succeeded")
        else:
            self._logger.error(
                "operation failed",
                error=outcome.message,
                error_type=type(outcome.error).__name__,
            )

        if self._on_complete is not None:
            self._on_complete(outcome)
        return outcome


class OperationRunner:
    """Base for components that drive an ImageOperation to completion."""

    kind: str = "operation"

    def _execute(
        self, operation: ImageOperation, descriptor: ImageDescriptor
    ) -> OperationOutcome:
        raise NotImplementedError()

    def _run(
        self,
        descriptor: ImageDescriptor,
        on_complete: CompletionCallback | None,
        on_event: EventCallback | None,
    ) -> OperationOutcome:
        operation = ImageOperation(self.kind, descriptor, on_complete, on_event)
        return self._execute(operation, descriptor)

    async def _run_async(
        self,
        descriptor: ImageDescriptor,
        on_complete: CompletionCallback | None,
        on_event: EventCallback | None,
        timeout: float | None,
    ) -> OperationOutcome:
        operation = ImageOperation(self.kind, descriptor, on_complete, on_event)
        loop = asyncio.get_running_loop()
        done: asyncio.Future[OperationOutcome] = loop.create_future()

        def worker():
            try:
                outcome = self._execute(operation, descriptor)
            except Exception as e:  # pylint: disable=broad-except
                _deliver(loop, done, None, e)
            else:
                _deliver(loop, done, outcome, None)

        # Daemon, so a stalled stream never holds up loop shutdown or exit.
        threading.Thread(
            target=worker, name=f"dockhand-{self.kind}", daemon=True
        ).start()

        try:
            return await asyncio.wait_for(done, timeout)
        except asyncio.TimeoutError:
            # The worker thread stops at its next chunk once the guard is set.
            return operation.fail(
                OperationTimeoutError(timeout, image_name=descriptor.name)
            )


def _deliver(
    loop: asyncio.AbstractEventLoop,
    future: asyncio.Future,
    outcome: OperationOutcome | None,
    error: Exception | None,
) -> None:
    def resolve():
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(outcome)

    try:
        loop.call_soon_threadsafe(resolve)
    except RuntimeError:
        # The event loop closed after a timeout; the guard already holds the outcome.
        logger.debug("event loop closed before late operation result", error=str(error))

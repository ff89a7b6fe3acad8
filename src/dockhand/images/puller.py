from __future__ import annotations

from .descriptor import ImageDescriptor
from .engine import ContainerEngineClient, DockerEngineClient
from .exceptions import ConfigurationError, TransportError
from .operation import (
    CompletionCallback,
    EventCallback,
    ImageOperation,
    OperationOutcome,
    OperationRunner,
    OperationState,
)


class ImagePuller(OperationRunner):
    """Pulls images from their remote registry."""

    kind = "pull"

    def __init__(self, engine: ContainerEngineClient):
        """Initialize an ImagePuller."""
        if engine is None:
            raise ValueError("engine cannot be None")
        self._engine = engine

    @classmethod
    def from_env(cls) -> "ImagePuller":
        return cls(DockerEngineClient.from_env())

    def pull(
        self,
        descriptor: ImageDescriptor,
        on_complete: CompletionCallback | None = None,
        on_event: EventCallback | None = None,
    ) -> OperationOutcome:
        """
        Pull an image and wait for the engine to finish.

        Args:
            descriptor: Image to pull; only its name is used
            on_complete: Called exactly once with the outcome
            on_event: Called with every decoded stream event

        Returns:
            OperationOutcome: The same outcome passed to on_complete
        """
        return self._run(descriptor, on_complete, on_event)

    async def pull_async(
        self,
        descriptor: ImageDescriptor,
        on_complete: CompletionCallback | None = None,
        on_event: EventCallback | None = None,
        timeout: float | None = None,
    ) -> OperationOutcome:
        """Pull an image without blocking the event loop.

        If timeout seconds pass before the pull finishes, the outcome is an
        OperationTimeoutError failure.
        """
        return await self._run_async(descriptor, on_complete, on_event, timeout)

    def _execute(
        self, operation: ImageOperation, descriptor: ImageDescriptor
    ) -> OperationOutcome:
        operation.transition(OperationState.VALIDATING)
        try:
            reference = descriptor.validate_for_pull()
        except ConfigurationError as e:
            return operation.fail(e)

        if not operation.transition(OperationState.INVOKING):
            return operation.outcome
        try:
            stream = self._engine.pull(reference)
        except TransportError as e:
            return operation.fail(e)

        return operation.consume(stream)

from __future__ import annotations

from pathlib import Path
from typing import Callable

from ..log import get_logger
from .archive import context_archive_path, create_context_archive
from .descriptor import ImageDescriptor
from .engine import ContainerEngineClient, DockerEngineClient
from .exceptions import ConfigurationError, ContextArchiveError, TransportError
from .operation import (
    CompletionCallback,
    EventCallback,
    ImageOperation,
    OperationOutcome,
    OperationRunner,
    OperationState,
)

logger = get_logger(__name__)

ArchiveCreator = Callable[[Path, Path], None]


class ImageBuilder(OperationRunner):
    """Builds images from a local build context directory."""

    kind = "build"

    def __init__(
        self,
        engine: ContainerEngineClient,
        create_archive: ArchiveCreator = create_context_archive,
    ):
        """Initialize an ImageBuilder."""
        if engine is None:
            raise ValueError("engine cannot be None")
        self._engine = engine
        self._create_archive = create_archive

    @classmethod
    def from_env(cls) -> "ImageBuilder":
        return cls(DockerEngineClient.from_env())

    def build(
        self,
        descriptor: ImageDescriptor,
        on_complete: CompletionCallback | None = None,
        on_event: EventCallback | None = None,
    ) -> OperationOutcome:
        """
        Build an image and wait for the engine to finish.

        The contents of descriptor.source_path are archived next to the
        sources, uploaded as the build context and tagged with
        descriptor.name. The archive is removed afterwards. An existing
        archive.tar in the source path is left alone and fails the build.

        Args:
            descriptor: Image to build
            on_complete: Called exactly once with the outcome
            on_event: Called with every decoded stream event

        Returns:
            OperationOutcome: The same outcome passed to on_complete
        """
        return self._run(descriptor, on_complete, on_event)

    async def build_async(
        self,
        descriptor: ImageDescriptor,
        on_complete: CompletionCallback | None = None,
        on_event: EventCallback | None = None,
        timeout: float | None = None,
    ) -> OperationOutcome:
        """Build an image without blocking the event loop.

        If timeout seconds pass before the build finishes, the outcome is an
        OperationTimeoutError failure.
        """
        return await self._run_async(descriptor, on_complete, on_event, timeout)

    def _execute(
        self, operation: ImageOperation, descriptor: ImageDescriptor
    ) -> OperationOutcome:
        operation.transition(OperationState.VALIDATING)
        try:
            source_path = descriptor.validate_for_build()
        except ConfigurationError as e:
            return operation.fail(e)

        if not operation.transition(OperationState.INVOKING):
            return operation.outcome

        archive_path = context_archive_path(source_path)
        # Created exclusively so the path is reserved for this build.
        try:
            archive_path.touch(exist_ok=False)
        except FileExistsError:
            return operation.fail(
                ContextArchiveError(
                    f"Build context archive {archive_path} already exists; "
                    "remove it or wait for the build using it to finish",
                    image_name=descriptor.name,
                )
            )
        except OSError as e:
            return operation.fail(
                ContextArchiveError(
                    f"Cannot create build context archive {archive_path}: {e}",
                    image_name=descriptor.name,
                )
            )

        try:
            try:
                self._create_archive(source_path, archive_path)
            except ContextArchiveError as e:
                error = ContextArchiveError(e.message, image_name=descriptor.name)
                error.__cause__ = e
                return operation.fail(error)
            return self._upload(operation, descriptor, archive_path)
        finally:
            _remove_archive(archive_path)

    def _upload(
        self,
        operation: ImageOperation,
        descriptor: ImageDescriptor,
        archive_path: Path,
    ) -> OperationOutcome:
        if operation.terminated:
            return operation.outcome

        try:
            context = open(archive_path, "rb")
        except OSError as e:
            return operation.fail(
                ContextArchiveError(
                    f"Cannot open build context archive {archive_path}: {e}",
                    image_name=descriptor.name,
                )
            )

        with context:
            try:
                stream = self._engine.build(context, tag=descriptor.name)
            except TransportError as e:
                return operation.fail(e)
            return operation.consume(stream)


def _remove_archive(archive_path: Path) -> None:
    try:
        archive_path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(
            "failed to remove build context archive",
            path=str(archive_path),
            error=str(e),
        )

"""Image acquisition: pulling images from registries and building them locally.

Both operations stream the engine's progress output, decode it, and end in
exactly one OperationOutcome.
"""

from dockhand.images.archive import (
    ARCHIVE_FILENAME,
    context_archive_path,
    create_context_archive,
)
from dockhand.images.builder import ImageBuilder
from dockhand.images.descriptor import ImageDescriptor
from dockhand.images.engine import (
    ContainerEngineClient,
    DockerEngineClient,
    EngineOptions,
)
from dockhand.images.events import (
    StreamEvent,
    StreamEventKind,
    describe_progress,
    error_message,
    parse_chunk,
)
from dockhand.images.exceptions import (
    ConfigurationError,
    ContextArchiveError,
    EngineReportedError,
    ImageError,
    OperationTimeoutError,
    TransportError,
)
from dockhand.images.operation import (
    CompletionCallback,
    EventCallback,
    ImageOperation,
    OperationOutcome,
    OperationState,
)
from dockhand.images.puller import ImagePuller

__all__ = [
    # Core classes
    "ImagePuller",
    "ImageBuilder",
    "ImageDescriptor",
    # Operation lifecycle
    "ImageOperation",
    "OperationOutcome",
    "OperationState",
    "CompletionCallback",
    "EventCallback",
    # Stream decoding
    "StreamEvent",
    "StreamEventKind",
    "parse_chunk",
    "error_message",
    "describe_progress",
    # Engine
    "ContainerEngineClient",
    "DockerEngineClient",
    "EngineOptions",
    # Build context
    "ARCHIVE_FILENAME",
    "context_archive_path",
    "create_context_archive",
    # Exceptions
    "ImageError",
    "ConfigurationError",
    "TransportError",
    "EngineReportedError",
    "ContextArchiveError",
    "OperationTimeoutError",
]

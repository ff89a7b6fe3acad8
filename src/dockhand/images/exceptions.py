"""Exception hierarchy for image pull and build operations."""

from __future__ import annotations


class ImageError(Exception):
    """Base exception for all image operation errors with image name tracking."""

    def __init__(
        self,
        message: str,
        image_name: str | None = None,
    ) -> None:
        """
        Initialize ImageError.

        Args:
            message: Human-readable error message
            image_name: Optional name of the image the operation was acting on
        """
        self.message = message
        self.image_name = image_name
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with image context."""
        if self.image_name:
            return f"{self.message} (image: {self.image_name})"
        return self.message


class ConfigurationError(ImageError):
    """A required descriptor field or engine option is missing or invalid."""

    pass


class TransportError(ImageError):
    """The engine rejected the request or the connection to it failed."""

    pass


class EngineReportedError(ImageError):
    """The engine streamed back a message carrying an error detail."""

    pass


class ContextArchiveError(ImageError):
    """Creating or opening the build context archive failed."""

    pass


class OperationTimeoutError(ImageError):
    """The operation did not reach a terminal outcome in time."""

    def __init__(
        self,
        timeout: float,
        image_name: str | None = None,
    ) -> None:
        """Initialize with the timeout that expired, in seconds."""
        self.timeout = timeout
        super().__init__(
            f"Operation did not complete within {timeout:g} seconds",
            image_name=image_name,
        )

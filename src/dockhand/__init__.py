from .images import (
    ImageBuilder,
    ImageDescriptor,
    ImageError,
    ImagePuller,
    OperationOutcome,
)
from .log import configure_logging

__all__ = [
    "ImageBuilder",
    "ImageDescriptor",
    "ImageError",
    "ImagePuller",
    "OperationOutcome",
    "configure_logging",
]

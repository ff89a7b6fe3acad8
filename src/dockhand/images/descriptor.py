import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .exceptions import ConfigurationError


class ImageDescriptor(BaseModel):
    """Names an image and, for builds, the directory holding its build context.

    Missing fields are accepted at construction time so that pull and build
    operations can report them through their regular outcome.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    source_path: Optional[Path] = None

    @field_validator("source_path", mode="before")
    @classmethod
    def _empty_path_is_missing(cls, value):
        # Path("") would silently become the current directory.
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def validate_for_pull(self) -> str:
        """Returns the image reference to pull.

        Raises ConfigurationError if the name is missing.
        """
        if not (self.name and self.name.strip()):
            raise ConfigurationError("Image name is required to pull an image")
        return self.name

    def validate_for_build(self) -> Path:
        """Returns the build context directory.

        Raises ConfigurationError if the name or the source path is missing,
        or if the source path is not a readable directory.
        """
        if not (self.name and self.name.strip()):
            raise ConfigurationError("Image name is required to build an image")
        if self.source_path is None:
            raise ConfigurationError(
                "Source path is required to build an image", image_name=self.name
            )
        if not self.source_path.is_dir():
            raise ConfigurationError(
                f"Source path {self.source_path} is not a directory",
                image_name=self.name,
            )
        if not os.access(self.source_path, os.R_OK | os.X_OK):
            raise ConfigurationError(
                f"Source path {self.source_path} is not readable",
                image_name=self.name,
            )
        return self.source_path

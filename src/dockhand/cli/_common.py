import importlib.metadata
from dataclasses import dataclass

import click

from dockhand.images import (
    ConfigurationError,
    DockerEngineClient,
    EngineOptions,
    TransportError,
)

try:
    VERSION = importlib.metadata.version("dockhand")
except importlib.metadata.PackageNotFoundError:
    VERSION = "unknown"


@dataclass
class Context:
    """Class for CLI context."""

    engine_url: str | None = None
    engine_timeout: int | None = None
    _engine: DockerEngineClient | None = None

    @property
    def engine(self) -> DockerEngineClient:
        if self._engine is None:
            try:
                options = EngineOptions.from_env(
                    base_url=self.engine_url, timeout=self.engine_timeout
                )
                self._engine = DockerEngineClient.from_options(options)
            except (ConfigurationError, TransportError) as e:
                raise click.ClickException(str(e))
        return self._engine


pass_context = click.make_pass_decorator(Context)

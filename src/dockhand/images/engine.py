"""Container engine capabilities used for image acquisition."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, BinaryIO, Iterable, Iterator, Protocol

import docker
import docker.errors
import requests

from ..log import get_logger
from .exceptions import ConfigurationError, TransportError

logger = get_logger(__name__)

DEFAULT_ENGINE_TIMEOUT = 60

# Errors raised by the Docker SDK and the HTTP layer underneath it.
_ENGINE_ERRORS = (docker.errors.DockerException, requests.exceptions.RequestException)


class ContainerEngineClient(Protocol):
    """Protocol defining the engine capabilities pull and build operations need."""

    def pull(self, reference: str) -> Iterable[Any]:
        """
        Start pulling an image from its registry.

        Args:
            reference: Image reference to pull, e.g. "alpine:3.20"

        Returns:
            Stream of raw progress chunks, ending when the pull finishes

        Raises:
            TransportError: If the engine rejects the request
        """
        ...

    def build(self, context: BinaryIO, tag: str) -> Iterable[Any]:
        """
        Start building an image from a tar build context.

        Args:
            context: Readable tar archive of the build context
            tag: Tag to give the resulting image

        Returns:
            Stream of raw progress chunks, ending when the build finishes

        Raises:
            TransportError: If the engine rejects the request
        """
        ...


@dataclass
class EngineOptions:
    """Options for connecting to the container engine.

    Attributes:
        base_url (str | None): Engine API URL. When None, the Docker SDK
            resolves it from DOCKER_HOST and friends.
        timeout (int): Socket timeout in seconds for each engine request.
    """

    base_url: str | None = None
    timeout: int = DEFAULT_ENGINE_TIMEOUT

    def validate(self) -> None:
        """Validate the options configuration."""
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, int):
            raise ConfigurationError(
                f"Engine timeout must be an integer number of seconds, got {self.timeout!r}"
            )
        if self.timeout <= 0:
            raise ConfigurationError(
                f"Engine timeout must be positive, got {self.timeout}"
            )

    @classmethod
    def from_env(
        cls, base_url: str | None = None, timeout: int | None = None
    ) -> "EngineOptions":
        """
        Create options from explicit overrides and environment variables.

        Priority order:
        1. Explicit arguments (e.g. CLI flags)
        2. DOCKHAND_ENGINE_URL / DOCKHAND_ENGINE_TIMEOUT environment variables
        3. Defaults (Docker SDK environment handling, 60 seconds)

        Raises:
            ConfigurationError: If the timeout is not a positive integer
        """
        if base_url is None:
            base_url = os.getenv("DOCKHAND_ENGINE_URL") or None

        if timeout is None:
            timeout_str = os.getenv("DOCKHAND_ENGINE_TIMEOUT")
            if timeout_str is None or not timeout_str.strip():
                timeout = DEFAULT_ENGINE_TIMEOUT
            else:
                try:
                    timeout = int(timeout_str.strip())
                except ValueError:
                    raise ConfigurationError(
                        f"Invalid DOCKHAND_ENGINE_TIMEOUT: '{timeout_str}'. "
                        "Expected a positive integer number of seconds."
                    )

        options = cls(base_url=base_url, timeout=timeout)
        options.validate()
        return options


class DockerEngineClient:
    """ContainerEngineClient backed by the Docker SDK's low-level API client."""

    def __init__(self, api: docker.APIClient):
        if api is None:
            raise ValueError("api cannot be None")
        self._api = api

    @classmethod
    def from_options(cls, options: EngineOptions) -> "DockerEngineClient":
        options.validate()
        try:
            if options.base_url:
                api = docker.APIClient(base_url=options.base_url, timeout=options.timeout)
            else:
                api = docker.from_env(timeout=options.timeout).api
        except _ENGINE_ERRORS as e:
            raise TransportError(f"Cannot connect to container engine: {e}") from e
        return cls(api)

    @classmethod
    def from_env(cls) -> "DockerEngineClient":
        return cls.from_options(EngineOptions.from_env())

    def pull(self, reference: str) -> Iterator[Any]:
        logger.debug("requesting image pull", image=reference)
        try:
            stream = self._api.pull(reference, stream=True)
        except _ENGINE_ERRORS as e:
            raise TransportError(
                f"Engine rejected pull request: {e}", image_name=reference
            ) from e
        return _translate_errors(stream, reference)

    def build(self, context: BinaryIO, tag: str) -> Iterator[Any]:
        logger.debug("requesting image build", image=tag)
        try:
            stream = self._api.build(
                fileobj=context,
                custom_context=True,
                tag=tag,
                rm=True,
            )
        except _ENGINE_ERRORS as e:
            raise TransportError(
                f"Engine rejected build request: {e}", image_name=tag
            ) from e
        return _translate_errors(stream, tag)


def _translate_errors(stream: Iterable[Any], image_name: str) -> Iterator[Any]:
    # The SDK may surface HTTP errors and read timeouts only while iterating.
    try:
        yield from stream
    except _ENGINE_ERRORS as e:
        raise TransportError(
            f"Lost connection to container engine: {e}", image_name=image_name
        ) from e

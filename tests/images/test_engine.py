"""Tests for the Docker engine client and its options."""

import io
import os
from unittest.mock import MagicMock, patch

import docker.errors
import pytest
import requests

from dockhand.images.engine import (
    DEFAULT_ENGINE_TIMEOUT,
    DockerEngineClient,
    EngineOptions,
)
from dockhand.images.exceptions import ConfigurationError, TransportError


@pytest.fixture
def mock_api():
    """Create a mock low-level Docker API client."""
    api = MagicMock()
    api.pull.return_value = iter([b'{"status":"Pulling"}'])
    api.build.return_value = iter([b'{"stream":"Step 1/1"}'])
    return api


class TestEngineOptions:
    def test_defaults(self):
        """Test defaults when nothing is configured."""
        with patch.dict(os.environ, {}, clear=True):
            options = EngineOptions.from_env()
        assert options.base_url is None
        assert options.timeout == DEFAULT_ENGINE_TIMEOUT

    def test_env_vars(self):
        """Test options are read from the environment."""
        env = {
            "DOCKHAND_ENGINE_URL": "tcp://engine:2375",
            "DOCKHAND_ENGINE_TIMEOUT": " 300 ",
        }
        with patch.dict(os.environ, env, clear=True):
            options = EngineOptions.from_env()
        assert options.base_url == "tcp://engine:2375"
        assert options.timeout == 300

    def test_explicit_overrides_env(self):
        """Test explicit values win over environment variables."""
        env = {
            "DOCKHAND_ENGINE_URL": "tcp://engine:2375",
            "DOCKHAND_ENGINE_TIMEOUT": "300",
        }
        with patch.dict(os.environ, env, clear=True):
            options = EngineOptions.from_env(base_url="unix://custom.sock", timeout=5)
        assert options.base_url == "unix://custom.sock"
        assert options.timeout == 5

    @pytest.mark.parametrize("value", ["soon", "1.5", "0", "-3"])
    def test_invalid_timeout(self, value):
        """Test that invalid timeouts are configuration errors."""
        with patch.dict(os.environ, {"DOCKHAND_ENGINE_TIMEOUT": value}, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                EngineOptions.from_env()
        assert value in str(exc_info.value) or "positive" in str(exc_info.value)

    def test_validate_rejects_non_integer(self):
        """Test validate() on directly constructed options."""
        with pytest.raises(ConfigurationError):
            EngineOptions(timeout="60").validate()
        with pytest.raises(ConfigurationError):
            EngineOptions(timeout=True).validate()


class TestDockerEngineClientConstruction:
    def test_requires_api(self):
        """Test that an API client is required."""
        with pytest.raises(ValueError):
            DockerEngineClient(None)

    def test_from_options_with_base_url(self):
        """Test an explicit URL creates a low-level client directly."""
        with patch("dockhand.images.engine.docker.APIClient") as mock_client:
            client = DockerEngineClient.from_options(
                EngineOptions(base_url="tcp://engine:2375", timeout=30)
            )
        mock_client.assert_called_once_with(base_url="tcp://engine:2375", timeout=30)
        assert client._api is mock_client.return_value

    def test_from_options_uses_docker_env(self):
        """Test the Docker SDK environment handling is used by default."""
        with patch("dockhand.images.engine.docker.from_env") as mock_from_env:
            client = DockerEngineClient.from_options(EngineOptions(timeout=30))
        mock_from_env.assert_called_once_with(timeout=30)
        assert client._api is mock_from_env.return_value.api

    def test_from_options_engine_unavailable(self):
        """Test connection setup failures are transport errors."""
        with patch(
            "dockhand.images.engine.docker.from_env",
            side_effect=docker.errors.DockerException("Error while fetching server API version"),
        ):
            with pytest.raises(TransportError) as exc_info:
                DockerEngineClient.from_options(EngineOptions())
        assert "server API version" in str(exc_info.value)


class TestDockerEngineClientPull:
    def test_pull_streams(self, mock_api):
        """Test pull requests a streamed pull and yields its chunks."""
        chunks = list(DockerEngineClient(mock_api).pull("myimagename"))
        mock_api.pull.assert_called_once_with("myimagename", stream=True)
        assert chunks == [b'{"status":"Pulling"}']

    @pytest.mark.parametrize(
        "error",
        [
            docker.errors.APIError("404 Client Error: Not Found"),
            docker.errors.DockerException("Test Error!"),
            requests.exceptions.ConnectionError("Connection refused"),
        ],
    )
    def test_pull_rejected(self, mock_api, error):
        """Test invocation errors are translated to TransportError."""
        mock_api.pull.side_effect = error
        with pytest.raises(TransportError) as exc_info:
            DockerEngineClient(mock_api).pull("myimagename")
        assert exc_info.value.__cause__ is error
        assert exc_info.value.image_name == "myimagename"

    def test_pull_fails_while_streaming(self, mock_api):
        """Test errors during iteration are translated to TransportError."""

        def stream():
            yield b'{"status":"Pulling"}'
            raise requests.exceptions.ReadTimeout("Read timed out")

        mock_api.pull.return_value = stream()
        chunks = DockerEngineClient(mock_api).pull("myimagename")
        assert next(chunks) == b'{"status":"Pulling"}'
        with pytest.raises(TransportError, match="Read timed out"):
            next(chunks)


class TestDockerEngineClientBuild:
    def test_build_streams(self, mock_api):
        """Test build uploads the context as a custom tar context."""
        context = io.BytesIO(b"tar bytes")
        chunks = list(DockerEngineClient(mock_api).build(context, tag="myimagename"))
        mock_api.build.assert_called_once_with(
            fileobj=context,
            custom_context=True,
            tag="myimagename",
            rm=True,
        )
        assert chunks == [b'{"stream":"Step 1/1"}']

    def test_build_rejected(self, mock_api):
        """Test build invocation errors are translated to TransportError."""
        mock_api.build.side_effect = docker.errors.APIError("500 Server Error")
        with pytest.raises(TransportError):
            DockerEngineClient(mock_api).build(io.BytesIO(), tag="myimagename")

    def test_build_fails_while_streaming(self, mock_api):
        """Test errors during build iteration are translated."""

        def stream():
            raise docker.errors.APIError("500 Server Error")
            yield  # pragma: no cover

        mock_api.build.return_value = stream()
        with pytest.raises(TransportError):
            list(DockerEngineClient(mock_api).build(io.BytesIO(), tag="img"))

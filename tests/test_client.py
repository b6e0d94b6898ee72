"""Tests for the App Mesh client wrapper."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from appmesh_mock import MockAppMeshClient, client_error
from botocore.exceptions import EndpointConnectionError, NoCredentialsError

from appmesh_virtual_service.client import (
    LoggingObserver,
    MeshClient,
    classify_client_error,
)
from appmesh_virtual_service.config import USER_AGENT, ClientConfig
from appmesh_virtual_service.errors import ErrorKind, NotFoundError, RemoteError

IDENTITY = {"meshName": "m1", "virtualServiceName": "svc1"}


class RecordingObserver:
    """Observer that remembers every request."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def on_request(self, operation: str, params: dict[str, Any]) -> None:
        self.requests.append((operation, params))


class TestClassifyClientError:
    """Tests for classify_client_error."""

    def test_not_found(self) -> None:
        """Test that NotFoundException becomes NotFoundError."""
        error = classify_client_error(client_error("NotFoundException"), "describe")
        assert isinstance(error, NotFoundError)
        assert error.kind == ErrorKind.NOT_FOUND
        assert error.status_code == 404

    def test_bad_request_is_fatal(self) -> None:
        """Test that validation errors are not retryable."""
        error = classify_client_error(client_error("BadRequestException", "bad"), "create")
        assert isinstance(error, RemoteError)
        assert error.retryable is False
        assert error.code == "BadRequestException"
        assert error.status_code == 400
        assert "bad" in error.message

    @pytest.mark.parametrize(
        "code",
        ["TooManyRequestsException", "ServiceUnavailableException", "InternalServerErrorException"],
    )
    def test_transient_codes_are_retryable(self, code: str) -> None:
        """Test that throttling and server errors are retryable."""
        error = classify_client_error(client_error(code), "describe")
        assert isinstance(error, RemoteError)
        assert error.retryable is True


class TestMeshClient:
    """Tests for MeshClient."""

    @pytest.mark.asyncio
    async def test_create_and_describe(self, fake_appmesh: MockAppMeshClient) -> None:
        """Test that calls are forwarded to the boto3 client."""
        client = MeshClient(ClientConfig(region="us-west-2"), client=fake_appmesh)

        created = await client.create({**IDENTITY, "spec": {}})
        described = await client.describe(IDENTITY)

        assert created["virtualService"]["metadata"]["arn"].endswith("virtualService/svc1")
        assert described["virtualService"]["status"]["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_not_found_is_classified(self, fake_appmesh: MockAppMeshClient) -> None:
        """Test that a missing service raises NotFoundError."""
        client = MeshClient(client=fake_appmesh)

        with pytest.raises(NotFoundError):
            await client.describe(IDENTITY)

    @pytest.mark.asyncio
    async def test_delete_missing_raises_not_found(self, fake_appmesh: MockAppMeshClient) -> None:
        """Test that deleting an unknown service raises NotFoundError."""
        client = MeshClient(client=fake_appmesh)

        with pytest.raises(NotFoundError):
            await client.delete(IDENTITY)

    @pytest.mark.asyncio
    async def test_original_error_is_chained(self, fake_appmesh: MockAppMeshClient) -> None:
        """Test that the botocore error is kept as the cause."""
        fake_appmesh.fail("create_virtual_service", client_error("ForbiddenException"))
        client = MeshClient(client=fake_appmesh)

        with pytest.raises(RemoteError) as exc_info:
            await client.create(IDENTITY)

        assert exc_info.value.__cause__ is not None

    @pytest.mark.asyncio
    async def test_connection_errors_are_retryable(self, fake_appmesh: MockAppMeshClient) -> None:
        """Test that endpoint connection failures are retryable remote errors."""
        fake_appmesh.fail(
            "describe_virtual_service",
            EndpointConnectionError(endpoint_url="https://appmesh.us-west-2.amazonaws.com"),
        )
        client = MeshClient(client=fake_appmesh)

        with pytest.raises(RemoteError) as exc_info:
            await client.describe(IDENTITY)

        assert exc_info.value.retryable is True
        assert exc_info.value.code == "EndpointConnectionError"

    @pytest.mark.asyncio
    async def test_credential_errors_are_fatal(self, fake_appmesh: MockAppMeshClient) -> None:
        """Test that missing credentials are not retried."""
        fake_appmesh.fail("describe_virtual_service", NoCredentialsError())
        client = MeshClient(client=fake_appmesh)

        with pytest.raises(RemoteError) as exc_info:
            await client.describe(IDENTITY)

        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_observer_sees_every_request(self, fake_appmesh: MockAppMeshClient) -> None:
        """Test that the injected observer is notified before each call."""
        observer = RecordingObserver()
        client = MeshClient(client=fake_appmesh, observer=observer)

        await client.create(IDENTITY)
        await client.describe(IDENTITY)
        await client.delete(IDENTITY)

        assert [op for op, _ in observer.requests] == [
            "create_virtual_service",
            "describe_virtual_service",
            "delete_virtual_service",
        ]
        assert observer.requests[1][1] == IDENTITY

    @pytest.mark.asyncio
    async def test_observer_notified_for_failed_calls(
        self, fake_appmesh: MockAppMeshClient
    ) -> None:
        """Test that requests are observed even when they fail."""
        observer = RecordingObserver()
        client = MeshClient(client=fake_appmesh, observer=observer)

        with pytest.raises(NotFoundError):
            await client.describe(IDENTITY)

        assert observer.requests == [("describe_virtual_service", IDENTITY)]

    def test_builds_boto3_client_from_config(self) -> None:
        """Test that the boto3 client is built from the explicit configuration."""
        config = ClientConfig(region="eu-west-1", max_attempts=5)

        with patch("appmesh_virtual_service.client.boto3.client") as boto_client:
            client = MeshClient(config)

        boto_client.assert_called_once()
        args, kwargs = boto_client.call_args
        assert args == ("appmesh",)
        assert kwargs["region_name"] == "eu-west-1"
        assert kwargs["config"].user_agent_extra == USER_AGENT
        assert kwargs["config"].retries == {"max_attempts": 5, "mode": "standard"}
        assert client.config is config


class TestLoggingObserver:
    """Tests for LoggingObserver."""

    def test_logs_at_debug(self) -> None:
        """Test that requests are logged with their parameters."""
        log = MagicMock()
        LoggingObserver(log).on_request("describe_virtual_service", IDENTITY)

        log.debug.assert_called_once()
        _, kwargs = log.debug.call_args
        assert kwargs["extra"]["params"] == IDENTITY

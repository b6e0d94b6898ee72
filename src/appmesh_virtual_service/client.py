"""App Mesh API client for virtual service operations.

This is the only module that talks to AWS. It:
1. Builds the boto3 client from an explicit ClientConfig
2. Reports every request to an injected RequestObserver
3. Classifies botocore failures into the action's error taxonomy

The boto3 client is synchronous; calls run in the event loop's default
executor so the loop is suspended rather than blocked while a request is
in flight.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Protocol

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from .config import ClientConfig
from .errors import NotFoundError, RemoteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "appmesh"

NOT_FOUND_CODES = frozenset({"NotFoundException"})

RETRYABLE_CODES = frozenset(
    {
        "ThrottlingException",
        "TooManyRequestsException",
        "ServiceUnavailableException",
        "InternalServerErrorException",
        "RequestTimeout",
        "RequestTimeoutException",
    }
)


class RequestObserver(Protocol):
    """Receives a notification for every request sent to App Mesh."""

    def on_request(self, operation: str, params: dict[str, Any]) -> None: ...


class LoggingObserver:
    """Logs each outgoing request at DEBUG level."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def on_request(self, operation: str, params: dict[str, Any]) -> None:
        self._log.debug(
            f"Sending {operation} to {SERVICE_NAME}",
            extra={"operation": operation, "params": params},
        )


def classify_client_error(error: ClientError, operation: str) -> NotFoundError | RemoteError:
    """Map a botocore ClientError onto the action's error taxonomy."""
    error_info = error.response.get("Error", {})
    code = error_info.get("Code", "Unknown")
    message = error_info.get("Message") or str(error)
    status_code = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

    if code in NOT_FOUND_CODES or status_code == 404:
        return NotFoundError(message, status_code=status_code, code=code)

    retryable = code in RETRYABLE_CODES or (status_code is not None and status_code >= 500)
    return RemoteError(
        f"{operation} failed: {message}",
        status_code=status_code,
        code=code,
        retryable=retryable,
    )


class MeshClient:
    """Describe, create and delete App Mesh virtual services.

    Each operation takes the already-projected request parameters (see
    params.py) and returns the raw response mapping.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        observer: RequestObserver | None = None,
        client: Any = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client settings. Defaults are used when omitted.
            observer: Request observer. Defaults to LoggingObserver.
            client: Pre-built boto3 appmesh client (tests inject a fake).
        """
        self._config = config or ClientConfig()
        self._observer: RequestObserver = observer or LoggingObserver()
        self._client = client or boto3.client(
            SERVICE_NAME,
            region_name=self._config.region,
            config=self._config.to_boto_config(),
        )

    @property
    def config(self) -> ClientConfig:
        """Get the client configuration."""
        return self._config

    async def describe(self, params: dict[str, Any]) -> dict[str, Any]:
        """Describe a virtual service.

        Raises:
            NotFoundError: If the virtual service does not exist.
            RemoteError: For any other API failure.
        """
        return await self._call("describe_virtual_service", params)

    async def create(self, params: dict[str, Any]) -> dict[str, Any]:
        """Create a virtual service.

        Raises:
            RemoteError: If the API rejects the request.
        """
        return await self._call("create_virtual_service", params)

    async def delete(self, params: dict[str, Any]) -> dict[str, Any]:
        """Initiate deletion of a virtual service.

        Completion is not guaranteed when this returns; confirm it with
        waiter.wait_until_deleted().

        Raises:
            NotFoundError: If the virtual service does not exist.
            RemoteError: For any other API failure.
        """
        return await self._call("delete_virtual_service", params)

    async def _call(self, operation: str, params: dict[str, Any]) -> dict[str, Any]:
        self._observer.on_request(operation, params)

        method = getattr(self._client, operation)
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(method, **params))
        except ClientError as e:
            raise classify_client_error(e, operation) from e
        except BotoCoreError as e:
            # Raised once botocore has exhausted its own retries
            transient = isinstance(
                e, (ConnectTimeoutError, EndpointConnectionError, ReadTimeoutError)
            )
            raise RemoteError(
                f"{operation} failed: {e}",
                code=type(e).__name__,
                retryable=transient,
            ) from e

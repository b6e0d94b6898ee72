"""Configuration management with validation.

All runtime settings are explicit values built once at startup and passed
to the collaborators that need them. Nothing reads the environment after
``Config.from_env()`` returns.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from botocore.config import Config as BotoConfig


class LogFormat(str, Enum):
    """Supported log output formats."""

    JSON = "json"
    GITHUB = "github"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Identifies the action in AWS request logs
USER_AGENT = "amazon-appmesh-virtual-service-for-github-actions"

# Client constants with documented bounds
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10
DEFAULT_READ_TIMEOUT_SECONDS = 30
DEFAULT_MAX_ATTEMPTS = 3
MAX_ATTEMPTS_LIMIT = 10
DEFAULT_RETRY_MODE = "standard"
VALID_RETRY_MODES = ("legacy", "standard", "adaptive")

# Deletion waiter defaults
DEFAULT_WAITER_MIN_DELAY_SECONDS = 15
DEFAULT_WAITER_MAX_DELAY_SECONDS = 120
DEFAULT_WAITER_MAX_WAIT_SECONDS = 300
MAX_WAITER_WAIT_SECONDS = 3600

# Jitter added on top of each backoff step, as a fraction of the step
WAITER_JITTER_RATIO = 0.2

# Spec documents larger than this are rejected before parsing
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024


@dataclass(frozen=True)
class ClientConfig:
    """Settings for the App Mesh API client."""

    region: str | None = None
    user_agent_extra: str = USER_AGENT
    connect_timeout_seconds: int = DEFAULT_CONNECT_TIMEOUT_SECONDS
    read_timeout_seconds: int = DEFAULT_READ_TIMEOUT_SECONDS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_mode: str = DEFAULT_RETRY_MODE

    def __post_init__(self) -> None:
        errors: list[str] = []

        if self.connect_timeout_seconds < 1:
            errors.append("APPMESH_CONNECT_TIMEOUT must be at least 1 second")
        if self.read_timeout_seconds < 1:
            errors.append("APPMESH_READ_TIMEOUT must be at least 1 second")
        if not (1 <= self.max_attempts <= MAX_ATTEMPTS_LIMIT):
            errors.append(f"APPMESH_MAX_ATTEMPTS must be between 1 and {MAX_ATTEMPTS_LIMIT}")
        if self.retry_mode not in VALID_RETRY_MODES:
            errors.append(f"APPMESH_RETRY_MODE must be one of {list(VALID_RETRY_MODES)}")

        if errors:
            raise ConfigurationError(
                "Client configuration validation failed:\n  - " + "\n  - ".join(errors)
            )

    def to_boto_config(self) -> BotoConfig:
        """Build the botocore client configuration."""
        return BotoConfig(
            region_name=self.region,
            user_agent_extra=self.user_agent_extra,
            connect_timeout=self.connect_timeout_seconds,
            read_timeout=self.read_timeout_seconds,
            retries={"max_attempts": self.max_attempts, "mode": self.retry_mode},
        )


@dataclass(frozen=True)
class WaiterConfig:
    """Delay and budget settings for the deletion waiter.

    The delay before poll ``n`` (1-based) is ``min_delay * 2 ** (n - 1)``
    plus jitter, capped at ``max_delay``. The waiter gives up once the
    next delay would take it past ``max_wait``.
    """

    min_delay_seconds: float = DEFAULT_WAITER_MIN_DELAY_SECONDS
    max_delay_seconds: float = DEFAULT_WAITER_MAX_DELAY_SECONDS
    max_wait_seconds: float = DEFAULT_WAITER_MAX_WAIT_SECONDS

    def __post_init__(self) -> None:
        errors: list[str] = []

        if self.min_delay_seconds <= 0:
            errors.append("WAITER_MIN_DELAY must be greater than 0")
        if self.max_delay_seconds <= 0:
            errors.append("WAITER_MAX_DELAY must be greater than 0")
        elif self.max_delay_seconds < self.min_delay_seconds:
            errors.append("WAITER_MAX_DELAY must be greater than or equal to WAITER_MIN_DELAY")
        if self.max_wait_seconds <= 0:
            errors.append("WAITER_MAX_WAIT must be greater than 0")
        elif self.max_wait_seconds <= self.min_delay_seconds:
            errors.append("WAITER_MAX_WAIT must be greater than WAITER_MIN_DELAY")
        elif self.max_wait_seconds > MAX_WAITER_WAIT_SECONDS:
            errors.append(f"WAITER_MAX_WAIT cannot exceed {MAX_WAITER_WAIT_SECONDS} seconds")

        if errors:
            raise ConfigurationError(
                "Waiter configuration validation failed:\n  - " + "\n  - ".join(errors)
            )


@dataclass(frozen=True)
class Config:
    """Action configuration loaded from environment variables."""

    client: ClientConfig = field(default_factory=ClientConfig)
    waiter: WaiterConfig = field(default_factory=WaiterConfig)
    log_format: LogFormat = LogFormat.JSON
    debug: bool = False

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AWS_REGION / AWS_DEFAULT_REGION: Region of the mesh (default: boto3 chain)
            APPMESH_CONNECT_TIMEOUT: Connect timeout in seconds (default: 10)
            APPMESH_READ_TIMEOUT: Read timeout in seconds (default: 30)
            APPMESH_MAX_ATTEMPTS: Attempts per API call including retries (default: 3)
            APPMESH_RETRY_MODE: botocore retry mode (default: standard)
            WAITER_MIN_DELAY: First delay between delete polls (default: 15)
            WAITER_MAX_DELAY: Cap on the delay between delete polls (default: 120)
            WAITER_MAX_WAIT: Total budget for delete confirmation (default: 300)
            LOG_FORMAT: "json" or "github" (default: github inside Actions)
            RUNNER_DEBUG / ACTIONS_STEP_DEBUG: Enable debug logging
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None or value == "":
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        def get_log_format() -> LogFormat:
            value = os.environ.get("LOG_FORMAT", "").lower()
            if not value:
                return LogFormat.GITHUB if get_bool("GITHUB_ACTIONS", False) else LogFormat.JSON
            try:
                return LogFormat(value)
            except ValueError as e:
                valid = [f.value for f in LogFormat]
                raise ConfigurationError(f"LOG_FORMAT must be one of {valid}: {value}") from e

        region = os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or None

        return cls(
            client=ClientConfig(
                region=region,
                connect_timeout_seconds=get_int(
                    "APPMESH_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT_SECONDS
                ),
                read_timeout_seconds=get_int("APPMESH_READ_TIMEOUT", DEFAULT_READ_TIMEOUT_SECONDS),
                max_attempts=get_int("APPMESH_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
                retry_mode=os.environ.get("APPMESH_RETRY_MODE") or DEFAULT_RETRY_MODE,
            ),
            waiter=WaiterConfig(
                min_delay_seconds=get_int("WAITER_MIN_DELAY", DEFAULT_WAITER_MIN_DELAY_SECONDS),
                max_delay_seconds=get_int("WAITER_MAX_DELAY", DEFAULT_WAITER_MAX_DELAY_SECONDS),
                max_wait_seconds=get_int("WAITER_MAX_WAIT", DEFAULT_WAITER_MAX_WAIT_SECONDS),
            ),
            log_format=get_log_format(),
            debug=get_bool("RUNNER_DEBUG", False) or get_bool("ACTIONS_STEP_DEBUG", False),
        )

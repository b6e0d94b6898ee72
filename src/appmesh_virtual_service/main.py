"""Main entry point for the App Mesh virtual service action.

Runs one reconciliation per invocation:
- create (default): find the virtual service or create it
- delete: delete it and wait until App Mesh confirms it is gone

Exit codes: 0 on success, 1 on any failure.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import UTC, datetime

from .client import LoggingObserver, MeshClient
from .config import Config, ConfigurationError, LogFormat
from .errors import ActionError, format_error
from .pipeline import GitHubActions, escape_data, get_parameters, publish_result
from .reconciler import run_action

_HANDLER_NAME = "appmesh-virtual-service"

# LogRecord attributes that are not user-supplied extra fields
_RESERVED_RECORD_KEYS = frozenset(
    (
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    )
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class GitHubFormatter(logging.Formatter):
    """Format logs as GitHub workflow commands.

    DEBUG and WARNING/ERROR records become ``::debug::``, ``::warning::``
    and ``::error::`` annotations; INFO is printed as plain text.
    """

    _PREFIXES = {
        logging.DEBUG: "::debug::",
        logging.WARNING: "::warning::",
        logging.ERROR: "::error::",
        logging.CRITICAL: "::error::",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        extra = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_RECORD_KEYS}
        if extra:
            message = f"{message} {json.dumps(extra, default=str)}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        prefix = self._PREFIXES.get(record.levelno)
        if prefix is None:
            return message
        return f"{prefix}{escape_data(message)}"


def setup_logging(log_format: LogFormat = LogFormat.JSON, debug: bool = False) -> None:
    """Configure root logging for the selected output format."""
    handler = logging.StreamHandler(sys.stdout)
    if log_format == LogFormat.GITHUB:
        handler.setFormatter(GitHubFormatter())
    else:
        handler.setFormatter(JsonFormatter())

    handler.set_name(_HANDLER_NAME)

    root_logger = logging.getLogger()
    # Replace our own handler when called more than once (e.g. CLI then action)
    for existing in list(root_logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Reduce noise from the AWS SDK
    for name in ("boto3", "botocore", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


async def main(gh: GitHubActions | None = None, client: MeshClient | None = None) -> int:
    """Run the action.

    Args:
        gh: Runner interface. Defaults to one reading the process environment.
        client: App Mesh client. Built from configuration when omitted.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    gh = gh or GitHubActions()

    try:
        config = Config.from_env()
    except ConfigurationError as e:
        gh.set_failed(f"ConfigurationError (Status code: None): {e}")
        return 1

    setup_logging(config.log_format, config.debug)
    logger = logging.getLogger(__name__)

    try:
        parameters = get_parameters(gh)
        logger.info(
            "Starting App Mesh virtual service action",
            extra={
                "action": parameters.action.value,
                "virtual_service": str(parameters.identity),
                "region": config.client.region,
            },
        )

        if client is None:
            client = MeshClient(config.client, observer=LoggingObserver())

        response = await run_action(client, parameters, config.waiter)
        publish_result(gh, response)

    except ActionError as e:
        logger.debug(
            "Action failed",
            extra={"error_kind": e.kind.value, "status_code": e.status_code},
            exc_info=True,
        )
        gh.set_failed(format_error(e))
        return 1

    except Exception as e:
        # Unexpected error - log with full traceback for debugging
        logger.exception("Action failed unexpectedly", extra={"error": str(e)})
        gh.set_failed(format_error(e))
        return 1

    return 0


def run() -> None:
    """Entry point for the action."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

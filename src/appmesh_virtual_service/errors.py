"""Error taxonomy for the virtual service action.

Every failure the action can report belongs to one closed set of kinds.
Remote API failures are classified exactly once, at the client boundary
(see client.py); everything downstream dispatches on the exception type
rather than on error names or message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of error kinds surfaced by the action."""

    NOT_FOUND = "NotFoundException"
    INPUT_ERROR = "InputError"
    AMBIGUOUS_STATE = "AmbiguousStateError"
    REMOTE_ERROR = "RemoteError"
    TIMEOUT = "TimeoutError"


class ActionError(Exception):
    """Base class for all classified action failures.

    Attributes:
        kind: The error kind.
        message: Human-readable description.
        status_code: HTTP status code reported by the remote API, if any.
        code: Remote error code (e.g. "ThrottlingException"), if any.
    """

    kind: ErrorKind = ErrorKind.REMOTE_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    @property
    def name(self) -> str:
        """Display name used when the error is reported to the pipeline."""
        return self.code or self.kind.value


class NotFoundError(ActionError):
    """The remote API reported that the virtual service does not exist.

    Only meaningful while describing: the state classifier turns it into
    the MISSING state instead of letting it propagate.
    """

    kind = ErrorKind.NOT_FOUND


class InputError(ActionError):
    """An action input was missing or malformed.

    Raised before any remote call is made.
    """

    kind = ErrorKind.INPUT_ERROR

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class AmbiguousStateError(ActionError):
    """Describe succeeded but its payload cannot be classified safely."""

    kind = ErrorKind.AMBIGUOUS_STATE


class RemoteError(ActionError):
    """Any remote API failure other than not-found.

    Attributes:
        retryable: True for throttling and server-side failures. Only the
            deletion waiter honors this flag; the reconciler never retries.
    """

    kind = ErrorKind.REMOTE_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, status_code=status_code, code=code)
        self.retryable = retryable


class WaiterTimeoutError(ActionError):
    """The deletion waiter exhausted its wait budget."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str, *, elapsed_seconds: float, attempts: int) -> None:
        super().__init__(message)
        self.elapsed_seconds = elapsed_seconds
        self.attempts = attempts


def format_error(error: BaseException) -> str:
    """Format an error for the pipeline failure message.

    Produces "<name> (Status code: <code>): <message>", matching what the
    action has always reported.
    """
    if isinstance(error, ActionError):
        return f"{error.name} (Status code: {error.status_code}): {error.message}"
    return f"{type(error).__name__} (Status code: None): {error}"

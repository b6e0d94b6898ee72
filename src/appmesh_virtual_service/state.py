"""Classification of describe results into logical remote states.

Both the reconciler and the deletion waiter read remote state through
this module, so the two agree on what "present" and "absent" mean.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import AmbiguousStateError, NotFoundError
from .models import CanonicalParameters, RemoteState
from .params import describe_input

if TYPE_CHECKING:
    from .client import MeshClient

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    "ACTIVE": RemoteState.ACTIVE,
    "INACTIVE": RemoteState.INACTIVE,
    "DELETED": RemoteState.DELETED,
}


@dataclass(frozen=True)
class Observation:
    """A classified describe result.

    Attributes:
        state: The logical state.
        response: The describe response, or None when the resource is MISSING.
        status: The raw status literal reported by the API, if any.
    """

    state: RemoteState
    response: dict[str, Any] | None = None
    status: str | None = None


def read_status(response: Any) -> str:
    """Extract ``virtualService.status.status`` from a describe response.

    Raises:
        AmbiguousStateError: If the response does not have that shape.
    """
    virtual_service = response.get("virtualService") if isinstance(response, Mapping) else None
    if not isinstance(virtual_service, Mapping):
        raise AmbiguousStateError(f"Invalid response from describe: {response!r}")

    status = virtual_service.get("status")
    value = status.get("status") if isinstance(status, Mapping) else None
    if not isinstance(value, str) or not value:
        raise AmbiguousStateError(f"Describe response has no status: {response!r}")
    return value


def classify_response(response: Any) -> RemoteState:
    """Classify a successful describe response.

    Unrecognized status literals map to UNKNOWN; it is up to the caller to
    decide whether UNKNOWN is fatal.

    Raises:
        AmbiguousStateError: If the response is malformed.
    """
    return _STATUS_MAP.get(read_status(response), RemoteState.UNKNOWN)


async def describe_state(
    client: MeshClient,
    parameters: CanonicalParameters | Mapping[str, Any],
) -> Observation:
    """Describe the virtual service and classify the result.

    A not-found failure is the MISSING state, not an error. Any other
    failure propagates unchanged.

    Raises:
        AmbiguousStateError: If describe returned a malformed payload.
        RemoteError: If describe failed for any reason other than not-found.
    """
    try:
        response = await client.describe(describe_input(parameters))
    except NotFoundError:
        return Observation(state=RemoteState.MISSING)

    status = read_status(response)
    state = _STATUS_MAP.get(status, RemoteState.UNKNOWN)
    return Observation(state=state, response=response, status=status)

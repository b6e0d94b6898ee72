"""Find-or-create and delete-and-wait for a single virtual service.

This module implements the action's reconciliation decision:
1. Describe the virtual service and classify its state
2. Present (ACTIVE/INACTIVE): accept it as-is, never mutate it
3. Absent (MISSING/DELETED): create it exactly once
4. Anything else: fail without creating, since guessing could create a duplicate

Retries happen one level up: a rerun of the whole pipeline step is safe
because every run describes before it creates.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .config import WaiterConfig
from .errors import AmbiguousStateError
from .models import Action, CanonicalParameters, RemoteState
from .params import create_input, delete_input
from .state import describe_state
from .waiter import Clock, Sleep, wait_until_deleted

if TYPE_CHECKING:
    from .client import MeshClient

logger = logging.getLogger(__name__)


async def find_or_create(
    client: MeshClient,
    parameters: CanonicalParameters | Mapping[str, Any],
) -> dict[str, Any]:
    """Return the existing virtual service, creating it if it is absent.

    Args:
        client: App Mesh client.
        parameters: Canonical parameters (or a mapping in API field names).

    Returns:
        The describe response if the resource exists, otherwise the create
        response. Neither is modified.

    Raises:
        AmbiguousStateError: If describe returned an unrecognized status or
            a malformed payload. No create is attempted.
        RemoteError: If describe or create failed.
    """
    name = _service_name(parameters)
    logger.info(f"Searching for {name}")

    observation = await describe_state(client, parameters)

    match observation.state:
        case RemoteState.ACTIVE:
            logger.info(f"{name} found.")
            assert observation.response is not None
            return observation.response
        case RemoteState.INACTIVE:
            logger.warning(f"{name} found, but it is INACTIVE.")
            assert observation.response is not None
            return observation.response
        case RemoteState.DELETED:
            logger.info(f"{name} found, but it is DELETED. Creating newly.")
        case RemoteState.MISSING:
            logger.info(f"Unable to find {name}. Creating newly.")
        case _:
            raise AmbiguousStateError(
                f"{name} has unrecognized status {observation.status!r}; refusing to create"
            )

    response = await client.create(create_input(parameters))
    logger.info(f"{name} created.", extra={"virtual_service": name})
    return response


async def delete_and_wait(
    client: MeshClient,
    parameters: CanonicalParameters | Mapping[str, Any],
    waiter_config: WaiterConfig | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """Delete the virtual service and wait until it is gone.

    The delete call is issued once, whatever the current status, and is
    never retried; only its completion is polled for.

    Returns:
        The delete response.

    Raises:
        NotFoundError: If the virtual service does not exist.
        RemoteError: If the delete call or a poll failed fatally.
        WaiterTimeoutError: If deletion did not complete within the budget.
    """
    name = _service_name(parameters)
    logger.info(f"Deleting {name}")

    response = await client.delete(delete_input(parameters))
    await wait_until_deleted(
        client,
        parameters,
        waiter_config,
        sleep=sleep,
        clock=clock,
        rng=rng,
    )

    logger.info(f"{name} deleted.", extra={"virtual_service": name})
    return response


async def run_action(
    client: MeshClient,
    parameters: CanonicalParameters,
    waiter_config: WaiterConfig | None = None,
) -> dict[str, Any]:
    """Converge the virtual service to the requested action."""
    if parameters.action == Action.DELETE:
        return await delete_and_wait(client, parameters, waiter_config)
    return await find_or_create(client, parameters)


def _service_name(parameters: CanonicalParameters | Mapping[str, Any]) -> str:
    if isinstance(parameters, CanonicalParameters):
        return parameters.virtual_service_name
    return str(parameters.get("virtualServiceName", "<unnamed>"))

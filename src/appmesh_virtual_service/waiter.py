"""Poll-until-condition waiter for virtual service deletion.

App Mesh accepts DeleteVirtualService before the resource is actually
gone, and boto3 ships no waiter for it. This module provides one.

STATE MACHINE:
    POLLING ──> SUCCESS      resource is MISSING or DELETED
    POLLING ──> RETRY_WAIT   any other state, or a retryable API error
    RETRY_WAIT ──> POLLING   after the backoff delay
    POLLING ──> FAILED       fatal API error or malformed response
    POLLING ──> TIMED_OUT    next delay would exceed the wait budget

The loop in run_waiter() only knows about the check coroutine it is
given and the sleep/clock primitives passed in, so tests can drive it
with a fake clock and no real waiting.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .config import WAITER_JITTER_RATIO, WaiterConfig
from .errors import ActionError, RemoteError, WaiterTimeoutError
from .models import CanonicalParameters
from .state import describe_state

if TYPE_CHECKING:
    from .client import MeshClient

logger = logging.getLogger(__name__)


class WaiterState(str, Enum):
    """States of the deletion waiter."""

    POLLING = "POLLING"
    SUCCESS = "SUCCESS"
    RETRY_WAIT = "RETRY_WAIT"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_terminal(self) -> bool:
        return self in (WaiterState.SUCCESS, WaiterState.FAILED, WaiterState.TIMED_OUT)


@dataclass
class WaiterResult:
    """Outcome of a finished wait."""

    state: WaiterState
    attempts: int = 0
    elapsed_seconds: float = 0.0
    delays: list[float] = field(default_factory=list)
    reason: Exception | None = None
    last_response: Any = None

    @property
    def success(self) -> bool:
        return self.state == WaiterState.SUCCESS


# A check returns SUCCESS or RETRY_WAIT with the response it observed, and
# raises ActionError for anything fatal.
Check = Callable[[], Awaitable[tuple[WaiterState, Any]]]
Sleep = Callable[[float], Awaitable[Any]]
Clock = Callable[[], float]


def compute_delay(
    attempt: int,
    config: WaiterConfig,
    rng: random.Random | None = None,
) -> float:
    """Delay to sleep after the given (1-based) failed attempt.

    Exponential backoff starting at ``min_delay`` with up to 20% jitter,
    capped at ``max_delay``.
    """
    rng = rng or random.Random()
    backoff = config.min_delay_seconds * (2 ** max(attempt - 1, 0))
    if backoff >= config.max_delay_seconds:
        return float(config.max_delay_seconds)
    jitter = rng.uniform(0, backoff * WAITER_JITTER_RATIO)
    return float(min(config.max_delay_seconds, backoff + jitter))


async def run_waiter(
    check: Check,
    config: WaiterConfig,
    *,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
    rng: random.Random | None = None,
) -> WaiterResult:
    """Poll ``check`` until it succeeds, fails fatally or the budget runs out.

    Never raises for FAILED or TIMED_OUT; the result carries the reason.
    Use check_exceptions() to turn those into errors.
    """
    rng = rng or random.Random()
    start = clock()
    result = WaiterResult(state=WaiterState.POLLING)

    while True:
        result.attempts += 1
        try:
            state, response = await check()
        except ActionError as e:
            result.state = WaiterState.FAILED
            result.reason = e
            result.elapsed_seconds = clock() - start
            return result

        result.last_response = response
        if state == WaiterState.SUCCESS:
            result.state = WaiterState.SUCCESS
            result.elapsed_seconds = clock() - start
            return result

        delay = compute_delay(result.attempts, config, rng)
        elapsed = clock() - start
        if elapsed + delay > config.max_wait_seconds:
            result.state = WaiterState.TIMED_OUT
            result.elapsed_seconds = elapsed
            result.reason = WaiterTimeoutError(
                f"Gave up after {result.attempts} attempts and {elapsed:.0f}s "
                f"(limit {config.max_wait_seconds}s)",
                elapsed_seconds=elapsed,
                attempts=result.attempts,
            )
            return result

        result.state = WaiterState.RETRY_WAIT
        logger.debug(
            "Waiting before next poll",
            extra={"attempt": result.attempts, "delay_seconds": round(delay, 2)},
        )
        await sleep(delay)
        result.delays.append(delay)
        result.state = WaiterState.POLLING


def check_exceptions(result: WaiterResult) -> WaiterResult:
    """Raise the failure carried by a finished wait, if any.

    Raises:
        WaiterTimeoutError: If the wait timed out.
        ActionError: The fatal error that stopped the wait.
    """
    if result.state == WaiterState.SUCCESS:
        return result
    if result.reason is not None:
        raise result.reason
    raise RuntimeError(f"Waiter finished in non-terminal state {result.state.value}")


def deleted_check(
    client: MeshClient,
    parameters: CanonicalParameters | Mapping[str, Any],
) -> Check:
    """Build the check that succeeds once the virtual service is gone."""

    async def check() -> tuple[WaiterState, Any]:
        logger.info("... polling resource ...")
        try:
            observation = await describe_state(client, parameters)
        except RemoteError as e:
            if not e.retryable:
                raise
            logger.warning(
                "Transient error while polling, will retry",
                extra={"error": str(e), "error_code": e.code},
            )
            return WaiterState.RETRY_WAIT, None

        if observation.state.is_absent:
            logger.info(f"... and it is {observation.state.value} ...")
            return WaiterState.SUCCESS, observation.response
        return WaiterState.RETRY_WAIT, observation.response

    return check


async def wait_until_deleted(
    client: MeshClient,
    parameters: CanonicalParameters | Mapping[str, Any],
    config: WaiterConfig | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
    rng: random.Random | None = None,
) -> WaiterResult:
    """Wait for a virtual service to be deleted.

    Must only be called after DeleteVirtualService was accepted.

    Raises:
        WaiterTimeoutError: If the resource is still present when the
            wait budget runs out.
        ActionError: If polling hit a fatal error.
    """
    config = config or WaiterConfig()
    logger.info("Waiting for resource to be deleted...")

    result = await run_waiter(
        deleted_check(client, parameters),
        config,
        sleep=sleep,
        clock=clock,
        rng=rng,
    )

    logger.info(
        "...done waiting for resource to be deleted.",
        extra={
            "waiter_state": result.state.value,
            "attempts": result.attempts,
            "elapsed_seconds": round(result.elapsed_seconds, 2),
        },
    )
    return check_exceptions(result)

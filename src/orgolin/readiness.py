"""Readiness polling for Orgo virtual desktops.

A freshly created or restarted desktop needs anywhere from seconds to
minutes before it accepts commands. wait_until_ready polls its status at a
fixed interval against a deadline computed once from a monotonic clock.

Outcomes per status fetch:
- ready: return immediately
- error: raise VMStartupError immediately (no further retries)
- anything else, or a failed fetch: wait and poll again

A flaky status endpoint never aborts provisioning on its own; only the
deadline does.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from orgolin.computer import Computer, ComputerState, ComputerStatus
from orgolin.exceptions import (
    OrgoAPIError,
    ReadinessAbandonedError,
    ReadinessTimeoutError,
    VMStartupError,
)

logger = logging.getLogger(__name__)

DEFAULT_READINESS_TIMEOUT = 180.0
DEFAULT_POLL_INTERVAL = 1.0


async def wait_until_ready(
    computer: Computer,
    timeout: float = DEFAULT_READINESS_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    is_active: Callable[[], bool] | None = None,
) -> ComputerStatus:
    """Wait until the desktop reports ready.

    Args:
        computer: Handle to poll
        timeout: Overall budget in seconds
        poll_interval: Seconds between status fetches
        clock: Monotonic clock (injectable for tests)
        sleep: Async sleep (injectable for tests)
        is_active: Liveness check; polling stops when it returns False

    Returns:
        The ready ComputerStatus

    Raises:
        VMStartupError: Desktop reported an error state
        ReadinessTimeoutError: Deadline passed before the desktop was ready
        ReadinessAbandonedError: is_active() returned False
    """
    deadline = clock() + timeout
    attempt = 0

    while True:
        if is_active is not None and not is_active():
            raise ReadinessAbandonedError("Session is no longer active; stopped waiting")

        attempt += 1
        try:
            status = await computer.status()
        except OrgoAPIError as e:
            logger.debug(f"Status check {attempt} failed, will retry: {e}")
        else:
            if status.state is ComputerState.READY:
                if attempt > 1:
                    logger.info(f"Orgo VM ready after {attempt} status checks")
                return status
            if status.state is ComputerState.ERROR:
                raise VMStartupError("Orgo VM failed to start")
            logger.debug(f"Orgo VM state: {status.state} (check {attempt})")

        if clock() >= deadline:
            raise ReadinessTimeoutError(timeout)

        await sleep(poll_interval)


__all__ = ["DEFAULT_POLL_INTERVAL", "DEFAULT_READINESS_TIMEOUT", "wait_until_ready"]

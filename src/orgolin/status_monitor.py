"""Status Monitor - periodic remote status refresh for a connected session.

Philosophy:
- Single responsibility: keep the manager's is_running flag fresh
- Bound to one session: stops the moment the session is replaced or dropped
- Never raises: fetch failures are logged and the next tick tries again

Public API (Studs):
    StatusMonitor - Background refresh loop
    DEFAULT_REFRESH_INTERVAL, MIN_REFRESH_INTERVAL - Timing bounds (seconds)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from orgolin.lifecycle_manager import ConnectionStatus, SessionLifecycleManager

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 5.0
MIN_REFRESH_INTERVAL = 2.0


class StatusMonitor:
    """Refresh remote status on an interval while one session stays active.

    Example:
        >>> monitor = StatusMonitor(manager, interval=5.0)
        >>> monitor.start()
        >>> ...
        >>> await monitor.stop()
    """

    def __init__(
        self,
        manager: SessionLifecycleManager,
        interval: float = DEFAULT_REFRESH_INTERVAL,
        on_update: Callable[[ConnectionStatus], None] | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize monitor.

        Args:
            manager: Manager whose session is watched
            interval: Seconds between refreshes (clamped to MIN_REFRESH_INTERVAL)
            on_update: Called with the new status after each refresh
            sleep: Async sleep (injectable for tests)
        """
        if interval < MIN_REFRESH_INTERVAL:
            logger.debug(f"Refresh interval {interval}s raised to {MIN_REFRESH_INTERVAL}s")
            interval = MIN_REFRESH_INTERVAL
        self.manager = manager
        self.interval = interval
        self.on_update = on_update
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the refresh loop for the manager's current session."""
        if self.is_running:
            return self._task  # type: ignore[return-value]
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Cancel the refresh loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _session_alive(self, generation: int) -> bool:
        return self.manager.is_connected and self.manager.generation == generation

    async def run(self) -> int:
        """Refresh until the watched session goes away.

        Returns:
            Number of refreshes performed
        """
        generation = self.manager.generation
        refreshes = 0

        while self._session_alive(generation):
            await self._sleep(self.interval)
            if not self._session_alive(generation):
                break

            status = await self.manager.refresh_remote_status()
            refreshes += 1
            if self.on_update is not None:
                self.on_update(status)

        logger.debug(f"Status monitor stopped after {refreshes} refreshes")
        return refreshes


__all__ = ["DEFAULT_REFRESH_INTERVAL", "MIN_REFRESH_INTERVAL", "StatusMonitor"]

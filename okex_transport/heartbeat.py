"""Application-level keepalive sender."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .protocol import HEARTBEAT_TOKEN

_LOGGER = logging.getLogger(__name__)

HEARTBEAT_INTERVAL = 10.0


class HeartbeatSender:
    """Send a keepalive token every ``interval`` seconds.

    The send callable is expected to no-op while the connection is not open,
    so the loop needs no coordination with reconnects.
    """

    def __init__(
        self,
        send: Callable[[str], Awaitable[object]],
        *,
        token: str = HEARTBEAT_TOKEN,
        interval: float = HEARTBEAT_INTERVAL,
        logger: logging.Logger | None = None,
    ) -> None:
        self._send = send
        self._token = token
        self._interval = interval
        self._logger = logger or _LOGGER
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background loop. No-op if already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    await self._send(self._token)
                except Exception as err:
                    self._logger.error("Heartbeat send failed: %s", err)
        except asyncio.CancelledError:
            self._logger.debug("Heartbeat sender cancelled")

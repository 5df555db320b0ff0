"""Liveness tracking and the timer-driven recovery policy.

A feed that goes quiet is recovered in two tiers:

- more than ``reconnect_after`` seconds without data: close and reopen the
  same transport (soft reconnect);
- more than ``reinitialize_after`` seconds: the transport is assumed wedged
  and is torn down and rebuilt (full re-initialize).

The supervisor only decides and calls back; the client owns the transport.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from enum import Enum

_LOGGER = logging.getLogger(__name__)

CHECK_INTERVAL = 5.0
RECONNECT_AFTER = 60.0
REINITIALIZE_AFTER = 120.0


class RecoveryAction(Enum):
    """Action chosen for a given staleness."""

    NONE = "none"
    RECONNECT = "reconnect"
    REINITIALIZE = "reinitialize"


def classify_staleness(
    elapsed: float,
    *,
    reconnect_after: float = RECONNECT_AFTER,
    reinitialize_after: float = REINITIALIZE_AFTER,
) -> RecoveryAction:
    """Map seconds since the last received data to a recovery action.

    Both bounds are exclusive: exactly ``reconnect_after`` is still healthy
    and exactly ``reinitialize_after`` is still a soft reconnect.
    """
    if elapsed > reinitialize_after:
        return RecoveryAction.REINITIALIZE
    if elapsed > reconnect_after:
        return RecoveryAction.RECONNECT
    return RecoveryAction.NONE


class LivenessTracker:
    """Thread-safe timestamp of the last received frame or open."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._last_received = clock()

    @property
    def last_received(self) -> float:
        with self._lock:
            return self._last_received

    def touch(self) -> None:
        """Record data received now. Never moves the timestamp backwards."""
        now = self._clock()
        with self._lock:
            if now > self._last_received:
                self._last_received = now

    def reset(self) -> None:
        """Start a new baseline, e.g. for a freshly built transport."""
        now = self._clock()
        with self._lock:
            self._last_received = now

    def elapsed(self) -> float:
        """Seconds since the last received data."""
        now = self._clock()
        with self._lock:
            return now - self._last_received


class LivenessSupervisor:
    """Periodic staleness check driving soft reconnect / full re-initialize.

    Usage:
        supervisor = LivenessSupervisor(tracker, reconnect=..., reinitialize=...)
        supervisor.enable()   # inside a running event loop
        supervisor.disable()
    """

    def __init__(
        self,
        tracker: LivenessTracker,
        *,
        reconnect: Callable[[], Awaitable[None]],
        reinitialize: Callable[[], Awaitable[None]],
        interval: float = CHECK_INTERVAL,
        reconnect_after: float = RECONNECT_AFTER,
        reinitialize_after: float = REINITIALIZE_AFTER,
        logger: logging.Logger | None = None,
    ) -> None:
        self._tracker = tracker
        self._reconnect = reconnect
        self._reinitialize = reinitialize
        self._interval = interval
        self._reconnect_after = reconnect_after
        self._reinitialize_after = reinitialize_after
        self._logger = logger or _LOGGER

        self._enabled = False
        self._task: asyncio.Task[None] | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        """Arm the periodic check.

        Re-enabling from inside a running tick keeps the current task.
        """
        self._enabled = True
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    def disable(self) -> None:
        """Disarm the periodic check.

        Called from inside a tick (re-initialize disconnects first), the
        running tick is left to finish instead of being cancelled.
        """
        self._enabled = False
        task = self._task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            self._task = None

    async def tick(self) -> RecoveryAction:
        """Run one staleness check and the recovery it calls for."""
        elapsed = self._tracker.elapsed()
        action = classify_staleness(
            elapsed,
            reconnect_after=self._reconnect_after,
            reinitialize_after=self._reinitialize_after,
        )
        if action is RecoveryAction.RECONNECT:
            self._logger.info("No data for %.1fs, reconnecting", elapsed)
            await self._reconnect()
        elif action is RecoveryAction.REINITIALIZE:
            self._logger.info("No data for %.1fs, re-initializing transport", elapsed)
            await self._reinitialize()
        return action

    async def _run(self) -> None:
        try:
            while self._enabled:
                await asyncio.sleep(self._interval)
                if not self._enabled:
                    break
                try:
                    await self.tick()
                except Exception as err:
                    self._logger.exception("Liveness check failed: %s", err)
        except asyncio.CancelledError:
            self._logger.debug("Liveness supervisor cancelled")
        else:
            self._logger.debug("Liveness supervisor stopped")

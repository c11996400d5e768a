"""
Queue Watchdog - periodically retries delivery of still-buffered events.

Events can outlive initialization when the buffering policy waits for a
listener. The watchdog re-runs the drain on a fixed interval and stops
rescheduling itself once nothing is left.
"""

import asyncio
from collections.abc import Callable
from typing import Protocol

from structlog import get_logger

from storekit_bridge.config import settings

logger = get_logger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Single-threaded timer source."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""
        ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class QueueWatchdog:
    """
    Interval timer driving ``tick`` while it reports pending work.

    Usage:
        watchdog = QueueWatchdog(scheduler, tick=bridge.run_queue)
        watchdog.start()  # idempotent
    """

    def __init__(
        self,
        scheduler: Scheduler,
        tick: Callable[[], bool],
        interval: float | None = None,
    ) -> None:
        """
        Args:
            scheduler: Timer source
            tick: Delivery attempt; returns True while events remain buffered
            interval: Seconds between attempts (defaults to settings)
        """
        self.scheduler = scheduler
        self.tick = tick
        self.interval = interval if interval is not None else settings.watchdog_interval_seconds
        self._handle: TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is not None:
            return
        logger.debug("queue_watchdog_started", interval=self.interval)
        self._schedule()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("queue_watchdog_stopped")

    def _schedule(self) -> None:
        self._handle = self.scheduler.call_later(self.interval, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if self.tick():
            self._schedule()
        else:
            logger.debug("queue_watchdog_idle")

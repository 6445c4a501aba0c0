"""Time source and periodic timers for the inactivity check."""

import asyncio
import time
from typing import Callable, Optional, Protocol

from ..logging import get_logger

logger = get_logger("timer")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def now_ms(self) -> int: ...

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class IntervalTimer:
    """Runs a callback every `interval_ms` on the running asyncio loop until cancelled."""

    def __init__(self, interval_ms: int, callback: Callable[[], None]):
        self.interval_ms = interval_ms
        self.callback = callback
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "IntervalTimer":
        """Schedule the timer. Must be called from inside a running event loop."""
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run())
        return self

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            # Wait for the interval, but exit immediately on cancel
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.interval_ms / 1000,
                )
                break
            except asyncio.TimeoutError:
                pass

            try:
                self.callback()
            except Exception:
                logger.exception("Interval callback failed")

    def cancel(self) -> None:
        self._stop_event.set()


class SystemClock:
    """Wall-clock milliseconds and asyncio-backed intervals."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def call_every(self, interval_ms: int, callback: Callable[[], None]) -> IntervalTimer:
        return IntervalTimer(interval_ms, callback).start()

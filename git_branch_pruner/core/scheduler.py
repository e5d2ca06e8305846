"""Cancellable repeating tasks on the asyncio event loop."""

import asyncio
from datetime import timedelta
from typing import Awaitable, Callable, Optional, Set, Union

from git_branch_pruner.logging_config import get_logger

logger = get_logger(__name__)

TickCallback = Callable[[], Awaitable[None]]


class RepeatingTask:
    """Handle on a callback fired every `interval` until cancelled.

    Each tick runs in its own task, so cancelling the handle stops future ticks
    without interrupting a tick that is already running.
    """

    def __init__(self, callback: TickCallback, interval: float, name: Optional[str] = None):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.callback = callback
        self.interval = interval
        self.name = name or getattr(callback, "__qualname__", "repeating-task")
        self._ticks: Set[asyncio.Task] = set()
        self._loop_task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            tick = asyncio.ensure_future(self.callback())
            self._ticks.add(tick)
            tick.add_done_callback(self._tick_done)

    def _tick_done(self, tick: asyncio.Future) -> None:
        self._ticks.discard(tick)
        if tick.cancelled():
            return
        error = tick.exception()
        if error is not None:
            logger.error(f"Scheduled task {self.name} failed: {error!r}")

    @property
    def cancelled(self) -> bool:
        return self._loop_task.done()

    def cancel(self) -> None:
        """Stop scheduling ticks. Idempotent."""
        self._loop_task.cancel()

    async def wait_for_ticks(self) -> None:
        """Wait until every tick that already started has finished."""
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)


def schedule_repeating(
    callback: TickCallback, interval: Union[timedelta, float], name: Optional[str] = None
) -> RepeatingTask:
    """Run callback every interval (seconds or timedelta), first tick after one interval.

    Must be called from a running event loop.
    """
    if isinstance(interval, timedelta):
        interval = interval.total_seconds()
    return RepeatingTask(callback, interval, name=name)

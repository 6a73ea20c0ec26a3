"""
Cancellable asyncio timers driving entry switches and the countdown display.

Two named schedules are used per activation: ``advance`` fires once after the
entry's duration and ``tick`` fires every second so the remaining time can be
counted down. Re-arming always cancels both first, so one activation can
never produce two advance events.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)

ADVANCE = "advance"
TICK = "tick"

TimerCallback = Callable[[str], Union[None, Awaitable[None]]]


class SwitchTimer:
    """Named one-shot and recurring schedules on the running event loop.

    Cancelling a schedule that already fired (or was never armed) is a no-op.
    A schedule whose callback cancels it finishes after the callback instead
    of cancelling its own task mid-flight.

    ``generation`` changes whenever the schedules are re-armed or cancelled, so
    a consumer that queues fired names can recognise events from an earlier
    activation.

    Example:
        >>> timer = SwitchTimer(on_fire=queue.put_nowait)
        >>> timer.arm(30)
        >>> timer.is_armed(ADVANCE)
        True
        >>> timer.cancel()
    """

    def __init__(self, on_fire: TimerCallback, tick_interval: float = 1.0) -> None:
        """Initialize the timer.

        Args:
            on_fire: Called with the schedule name each time a schedule fires
            tick_interval: Period of the tick schedule in seconds
        """
        self._on_fire = on_fire
        self.tick_interval = tick_interval
        self._tasks: dict[str, asyncio.Task] = {}
        # Bumped on every arm and cancel; events queued before a bump are stale.
        self.generation = 0

    def arm(self, duration: float) -> None:
        """Clear pending schedules, then arm advance after duration and the tick."""
        self.cancel()
        self.schedule_once(ADVANCE, duration)
        self.schedule_recurring(TICK, self.tick_interval)

    def schedule_once(self, name: str, delay: float) -> None:
        self.cancel_schedule(name)
        self._tasks[name] = asyncio.create_task(self._run_once(name, delay), name=f"timer-{name}")

    def schedule_recurring(self, name: str, period: float) -> None:
        self.cancel_schedule(name)
        self._tasks[name] = asyncio.create_task(
            self._run_recurring(name, period), name=f"timer-{name}"
        )

    def cancel_schedule(self, name: str) -> None:
        task = self._tasks.pop(name, None)
        if task is None or task.done():
            return
        if task is _current_task():
            # The loop notices it is no longer registered and exits.
            return
        task.cancel()

    def cancel_tick(self) -> None:
        self.cancel_schedule(TICK)

    def cancel(self) -> None:
        """Cancel every pending schedule."""
        self.generation += 1
        for name in list(self._tasks):
            self.cancel_schedule(name)

    def is_armed(self, name: Optional[str] = None) -> bool:
        """Whether the named schedule (or any schedule) is pending."""
        if name is None:
            return any(not task.done() for task in self._tasks.values())
        task = self._tasks.get(name)
        return task is not None and not task.done()

    async def _run_once(self, name: str, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._tasks.get(name) is _current_task():
            del self._tasks[name]
        await self._fire(name)

    async def _run_recurring(self, name: str, period: float) -> None:
        while True:
            await asyncio.sleep(period)
            if self._tasks.get(name) is not _current_task():
                return
            await self._fire(name)

    async def _fire(self, name: str) -> None:
        try:
            result = self._on_fire(name)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Timer callback for '{name}' failed")


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None

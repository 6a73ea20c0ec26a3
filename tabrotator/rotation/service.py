"""
Rotation service: one event queue, one dispatcher, one state machine.

Commands, timer fires and tab-closed notifications are all turned into events
on a single asyncio queue. A single dispatcher task consumes the queue and
hands each event to the state machine, so every state change happens in
arrival order.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ..browser.base import BrowserEnvironment
from ..settings.models import RotationConfig
from ..settings.persistence import StateStore
from .activity_log import ActivityLog
from .router import START, STOP, CommandRouter, error_response
from .state_machine import RotationStateMachine, RotationTiming

logger = logging.getLogger(__name__)

SERVICE_STOPPED = "SERVICE_STOPPED"


@dataclass
class Command:
    """External command awaiting a response."""

    name: str
    payload: Optional[dict[str, Any]] = None
    future: Optional[asyncio.Future] = field(default=None, repr=False)


@dataclass
class TimerFired:
    """A timer schedule fired; generation identifies the activation that armed it."""

    name: str
    generation: Optional[int] = None


@dataclass
class TabClosed:
    tab_id: str


Event = Union[Command, TimerFired, TabClosed]


class RotationService:
    """Wires a browser environment and a state store to the rotation.

    Example:
        >>> service = RotationService(DevToolsBrowser(), StateStore(data_dir))
        >>> await service.start()
        >>> await service.dispatch("status")
        {'success': True, 'is_running': True, ...}
        >>> await service.shutdown()
    """

    def __init__(
        self,
        browser: BrowserEnvironment,
        store: Optional[StateStore] = None,
        timing: Optional[RotationTiming] = None,
        auto_start_delay: float = 1.0,
        activity_log: Optional[ActivityLog] = None,
    ) -> None:
        """Initialize the service.

        Args:
            browser: Browser capability implementation
            store: State store for settings, state and logs
            timing: Rotation delays and limits
            auto_start_delay: Seconds to wait before auto-starting
            activity_log: Activity log (created on the store if omitted)
        """
        self.browser = browser
        self.store = store
        self.auto_start_delay = auto_start_delay
        self.machine = RotationStateMachine(
            browser,
            store=store,
            activity_log=activity_log,
            timing=timing,
            timer_callback=self._on_timer,
        )
        self.router = CommandRouter(self.machine)

        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._dispatcher_task: Optional[asyncio.Task] = None
        self._auto_start_task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def activity_log(self) -> ActivityLog:
        return self.machine.activity_log

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(
        self, config: Optional[RotationConfig] = None, auto_start: Optional[bool] = None
    ) -> None:
        """Restore persisted state, start the browser and the dispatcher.

        A session persisted as running is reset to stopped; rotation resumes
        only through auto-start.

        Args:
            config: Replaces the stored entries and auto-start flag when given
            auto_start: Overrides the auto-start flag for this run only
        """
        if self._running:
            logger.debug("Rotation service already running")
            return

        logger.info("Starting rotation service...")
        was_running = self.machine.load_persisted()
        if config is not None:
            await self.machine.update_config(config.entries, config.auto_start)

        self.browser.on_tab_closed(self._on_tab_closed)
        await self.browser.start()

        self._dispatcher_task = asyncio.create_task(
            self._dispatch_loop(), name="rotation-dispatcher"
        )
        self._running = True

        if auto_start is None:
            auto_start = self.machine.config.auto_start

        if auto_start and self.machine.entries:
            self._auto_start_task = asyncio.create_task(
                self._auto_start(), name="rotation-auto-start"
            )
        elif was_running:
            logger.info("Auto-start disabled; previous session stays stopped")

        logger.info(
            f"Rotation service started ({len(self.machine.entries)} entries, "
            f"auto_start={auto_start})"
        )

    async def shutdown(self) -> None:
        """Stop rotation, the dispatcher and the browser connection."""
        if not self._running:
            return

        logger.info("Shutting down rotation service...")

        if self._auto_start_task and not self._auto_start_task.done():
            self._auto_start_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._auto_start_task

        try:
            await self.dispatch(STOP)
        except Exception:
            logger.exception("Error stopping rotation during shutdown")

        self._running = False

        if self._dispatcher_task and not self._dispatcher_task.done():
            self._dispatcher_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._dispatcher_task
        self._dispatcher_task = None
        self._fail_pending_commands()

        try:
            await self.browser.close()
        except Exception:
            logger.exception("Error closing browser connection")

        logger.info("Rotation service stopped")

    async def dispatch(
        self, command: str, payload: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """Queue a command and wait for its response."""
        if not self._running:
            return error_response("Rotation service is not running", SERVICE_STOPPED)

        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(Command(command, payload, future))
        return await future

    def status(self) -> dict[str, Any]:
        """Status snapshot read without queueing; never raises."""
        return self.machine.status().to_dict()

    async def wait_until_idle(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    def _on_timer(self, name: str) -> None:
        self._queue.put_nowait(TimerFired(name, self.machine.timer.generation))

    def _on_tab_closed(self, tab_id: str) -> None:
        self._queue.put_nowait(TabClosed(tab_id))

    async def _auto_start(self) -> None:
        await asyncio.sleep(self.auto_start_delay)
        self.activity_log.info("Auto-starting rotation")
        response = await self.dispatch(START)
        if not response.get("success"):
            logger.warning(f"Auto-start failed: {response.get('error')}")

    async def _dispatch_loop(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._handle(event)
            except Exception as e:
                logger.exception(f"Error handling {event!r}")
                if isinstance(event, Command) and event.future and not event.future.done():
                    event.future.set_result(error_response(str(e), "COMMAND_FAILED"))
            finally:
                self._queue.task_done()

    async def _handle(self, event: Event) -> None:
        if isinstance(event, Command):
            response = await self.router.dispatch(event.name, event.payload)
            if event.future is not None and not event.future.done():
                event.future.set_result(response)
        elif isinstance(event, TimerFired):
            await self.machine.handle_timer(event.name, event.generation)
        elif isinstance(event, TabClosed):
            await self.machine.managed_tab_closed(event.tab_id)

    def _fail_pending_commands(self) -> None:
        while not self._queue.empty():
            event = self._queue.get_nowait()
            if isinstance(event, Command) and event.future and not event.future.done():
                event.future.set_result(
                    error_response("Rotation service is shutting down", SERVICE_STOPPED)
                )
            self._queue.task_done()

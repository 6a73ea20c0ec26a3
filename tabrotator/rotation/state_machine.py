"""
Rotation state machine: the single owner of rotation state.

The machine provisions a tab for every entry on start, activates entries one
after another (focus, optional reload, countdown) and advances round-robin
when the advance timer fires. Every transition runs under one asyncio lock;
the transient STARTING and STOPPING phases keep re-entrant start/stop calls
from interleaving with an in-flight transition.

Classes:
    RotationPhase: Internal lifecycle phase
    RotationState: Mutable rotation state
    RotationTiming: Delays and limits used during provisioning and activation
    RotationStatus: Immutable status snapshot
    RotationStateMachine: The state machine

Example:
    >>> machine = RotationStateMachine(browser, store=store)
    >>> await machine.update_config([{"url": "https://example.com", "time": 30}])
    >>> await machine.start()
    >>> machine.status().current_index
    0
    >>> await machine.stop()
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional, Union

from ..browser.base import BrowserEnvironment, BrowserError, TabNotFoundError
from ..settings.exceptions import StorageError
from ..settings.models import RotationConfig, RotationEntry
from ..settings.persistence import (
    AUTO_START_KEY,
    CURRENT_INDEX_KEY,
    ENTRIES_KEY,
    IS_RUNNING_KEY,
    STATE_KEYS,
    StateStore,
)
from .activity_log import ActivityLog, LogSeverity
from .exceptions import (
    AllEntriesFailed,
    ManagedTabClosed,
    NoEntriesConfigured,
    ProvisionFailed,
    RotationError,
    TabUnreachable,
)
from .provisioner import TabProvisioner
from .registry import TabRegistry
from .timer import ADVANCE, TICK, SwitchTimer, TimerCallback

logger = logging.getLogger(__name__)

EntryLike = Union[RotationEntry, dict[str, Any]]

# Error code reported when start fails with something other than a rotation error
START_FAILED = "START_FAILED"


class RotationPhase(Enum):
    """Lifecycle phases. Only STOPPED and RUNNING are externally observable."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class RotationState:
    """Mutable rotation state, changed only by RotationStateMachine.

    Attributes:
        is_running: Whether rotation is active
        current_index: Index of the entry in front (valid while running)
        remaining_seconds: Countdown until the next switch
        current_entry_display: Truncated URL of the entry in front
        last_error: Most recent session- or entry-level failure
        last_error_code: Error code of last_error, when it came from a rotation error
    """

    is_running: bool = False
    current_index: int = 0
    remaining_seconds: int = 0
    current_entry_display: Optional[str] = None
    last_error: Optional[str] = None
    last_error_code: Optional[str] = None


@dataclass
class RotationTiming:
    """Delays and limits for provisioning and activation.

    Attributes:
        provision_interval: Pause between opening consecutive tabs on start
        settle_delay: Pause after all tabs are provisioned
        load_wait: Pause after an entry's tab had to be found or re-created
        tick_interval: Countdown tick period
        io_timeout: Upper bound for a single browser call during activation
        full_pass_guard: Stop after every entry failed in one pass instead of
            retrying forever
    """

    provision_interval: float = 0.3
    settle_delay: float = 1.5
    load_wait: float = 1.0
    tick_interval: float = 1.0
    io_timeout: float = 15.0
    full_pass_guard: bool = True


@dataclass(frozen=True)
class RotationStatus:
    """Consistent snapshot of the rotation for status queries."""

    is_running: bool
    current_entry_display: Optional[str]
    remaining_seconds: int
    current_index: int
    total_entries: int
    last_error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RotationStateMachine:
    """Owns rotation state and drives tabs through the browser environment."""

    def __init__(
        self,
        browser: BrowserEnvironment,
        store: Optional[StateStore] = None,
        activity_log: Optional[ActivityLog] = None,
        config: Optional[RotationConfig] = None,
        timing: Optional[RotationTiming] = None,
        registry: Optional[TabRegistry] = None,
        timer_callback: Optional[TimerCallback] = None,
    ) -> None:
        """Initialize the state machine.

        Args:
            browser: Browser capability implementation
            store: Optional state store for persistence
            activity_log: Activity log (created on the store if omitted)
            config: Initial rotation config
            timing: Delays and limits
            registry: Tab registry (a fresh one if omitted)
            timer_callback: Receives timer names when they fire; defaults to
                handling them directly with ``handle_timer``
        """
        self.browser = browser
        self.store = store
        self.activity_log = activity_log or ActivityLog(store)
        self.config = config or RotationConfig()
        self.timing = timing or RotationTiming()
        self.registry = registry or TabRegistry()
        self.provisioner = TabProvisioner(browser, self.registry)
        self.timer = SwitchTimer(
            on_fire=timer_callback or self.handle_timer,
            tick_interval=self.timing.tick_interval,
        )

        self.state = RotationState()
        self.phase = RotationPhase.STOPPED
        self._lock = asyncio.Lock()

    @property
    def entries(self) -> list[RotationEntry]:
        return self.config.entries

    @property
    def is_running(self) -> bool:
        return self.phase is RotationPhase.RUNNING

    def load_persisted(self) -> bool:
        """Load config and last-known state from the store.

        A session persisted as running is never resumed as-is: tabs and timers
        did not survive the restart, so the flag is reset to stopped and the
        caller decides whether to start afresh.

        Returns:
            Whether the previous session was persisted as running
        """
        if self.store is None:
            return False

        values = self.store.get(STATE_KEYS)
        self.config = RotationConfig.from_storage(values[ENTRIES_KEY], values[AUTO_START_KEY])

        index = values[CURRENT_INDEX_KEY]
        if not isinstance(index, int) or not 0 <= index < max(len(self.entries), 1):
            index = 0
        self.state.current_index = index

        was_running = bool(values[IS_RUNNING_KEY])
        if was_running:
            self.activity_log.info("Previous session was marked running; state reset to stopped")
            self._persist_state()
        return was_running

    async def start(self) -> bool:
        """Provision every entry and activate the first one.

        Returns:
            True if rotation is running afterwards

        Raises:
            NoEntriesConfigured: If there are no entries (state unchanged)
        """
        async with self._lock:
            return await self._start_locked()

    async def stop(self) -> bool:
        """Stop rotation. Stopping a stopped machine is a no-op success."""
        async with self._lock:
            await self._stop_locked("Rotation stopped")
        return True

    async def advance(self) -> bool:
        """Move to the next entry, wrapping to the first after the last.

        Returns:
            True if rotation is still running afterwards
        """
        async with self._lock:
            if self.phase is not RotationPhase.RUNNING:
                return False
            # Pending ticks belong to the entry being left
            self.timer.cancel()
            self._step_index()
            await self._activate_current()
            return self.is_running

    async def tick(self) -> None:
        """Count the remaining time down by one; the tick stops itself at zero."""
        async with self._lock:
            if self.phase is not RotationPhase.RUNNING:
                self.timer.cancel_tick()
                return
            if self.state.remaining_seconds > 0:
                self.state.remaining_seconds -= 1
            if self.state.remaining_seconds <= 0:
                self.timer.cancel_tick()

    async def handle_timer(self, name: str, generation: Optional[int] = None) -> None:
        """Run the operation for a fired timer.

        Args:
            name: ADVANCE or TICK
            generation: Timer generation when the event was queued; events from
                an earlier generation are dropped
        """
        if generation is not None and generation != self.timer.generation:
            logger.debug(f"Dropping stale '{name}' timer event (generation {generation})")
            return
        if name == ADVANCE:
            await self.advance()
        elif name == TICK:
            await self.tick()
        else:
            logger.warning(f"Ignoring unknown timer '{name}'")

    async def managed_tab_closed(self, tab_id: str) -> bool:
        """Handle a tab-closed notification.

        Bindings to the tab are always purged. If the tab belonged to an entry
        while rotation runs, the whole rotation stops.

        Returns:
            True if rotation was stopped because of the closure
        """
        async with self._lock:
            urls = self.registry.invalidate_if_missing(tab_id)
            if not urls or self.phase is not RotationPhase.RUNNING:
                return False

            self._record_error(ManagedTabClosed(tab_id, urls))
            await self._stop_locked(
                "Managed tab was closed; rotation stopped", LogSeverity.ERROR
            )
            return True

    async def update_config(
        self, entries: Sequence[EntryLike], auto_start: Optional[bool] = None
    ) -> bool:
        """Replace the entries (and optionally auto-start) and restart if running.

        Args:
            entries: New entries, as models or dictionaries
            auto_start: New auto-start flag; None keeps the current one

        Returns:
            True if rotation is running afterwards

        Raises:
            SettingsValidationError, pydantic.ValidationError: If an entry is invalid
        """
        new_entries = [
            entry if isinstance(entry, RotationEntry) else RotationEntry.model_validate(entry)
            for entry in entries
        ]
        new_config = RotationConfig(
            entries=new_entries,
            auto_start=self.config.auto_start if auto_start is None else auto_start,
        )

        async with self._lock:
            was_running = self.phase is RotationPhase.RUNNING
            self.config = new_config
            self._persist_config()
            self.activity_log.info(f"Settings updated ({len(new_entries)} entries)")

            if was_running:
                await self._stop_locked("Restarting rotation with new settings")
                if new_entries:
                    return await self._start_locked()
            return self.is_running

    def status(self) -> RotationStatus:
        """Return a consistent status snapshot; never raises."""
        try:
            return RotationStatus(
                is_running=self.is_running,
                current_entry_display=self.state.current_entry_display,
                remaining_seconds=self.state.remaining_seconds,
                current_index=self.state.current_index,
                total_entries=len(self.entries),
                last_error=self.state.last_error,
            )
        except Exception as e:
            logger.exception("Error building rotation status")
            return RotationStatus(
                is_running=False,
                current_entry_display=f"Status unavailable: {e}",
                remaining_seconds=0,
                current_index=0,
                total_entries=0,
                last_error=str(e),
            )

    async def _start_locked(self) -> bool:
        if self.phase is RotationPhase.RUNNING:
            logger.debug("Rotation already running")
            return True
        if self.phase is not RotationPhase.STOPPED:
            logger.warning(f"Start ignored while {self.phase.value}")
            return False

        entries = list(self.entries)
        if not entries:
            self.activity_log.error("No rotation entries are configured")
            raise NoEntriesConfigured()

        self.phase = RotationPhase.STARTING
        try:
            self.activity_log.success(f"Starting rotation ({len(entries)} entries)")
            await self._provision_all(entries)

            self.state.is_running = True
            self.state.current_index = 0
            self.state.last_error = None
            self.state.last_error_code = None
            self.phase = RotationPhase.RUNNING
            self._persist_state()

            await self._activate_current()

        except Exception as e:
            self.activity_log.error(f"Rotation start failed: {e}")
            if isinstance(e, RotationError):
                self._record_error(e)
            else:
                self.state.last_error = str(e)
                self.state.last_error_code = START_FAILED
            self._reset_to_stopped()
            raise

        return self.is_running

    async def _stop_locked(
        self, message: Optional[str] = None, severity: LogSeverity = LogSeverity.INFO
    ) -> None:
        self.timer.cancel()
        if self.phase is RotationPhase.STOPPED and not self.state.is_running:
            return

        self.phase = RotationPhase.STOPPING
        try:
            if message:
                self.activity_log.append(message, severity)
        finally:
            self._reset_to_stopped()

    def _reset_to_stopped(self) -> None:
        self.timer.cancel()
        self.state.is_running = False
        self.state.remaining_seconds = 0
        self.state.current_entry_display = None
        self.phase = RotationPhase.STOPPED
        self._persist_state()

    async def _provision_all(self, entries: list[RotationEntry]) -> None:
        self.activity_log.info("Opening configured tabs...")

        reused = await self.provisioner.scan_existing(entries)
        self.activity_log.info(f"Existing tab scan complete: {reused} tabs reused")

        for entry in entries:
            try:
                tab_id = await self._bounded(self.provisioner.ensure_tab(entry), entry)
                self.activity_log.info(f"Prepared tab: {entry.display_url} (ID: {tab_id})")
            except ProvisionFailed as e:
                self.activity_log.error(e.message)

            if self.timing.provision_interval > 0:
                await asyncio.sleep(self.timing.provision_interval)

        if self.timing.settle_delay > 0:
            await asyncio.sleep(self.timing.settle_delay)
        logger.debug(f"Tab bindings after provisioning: {self.registry.bindings()}")

    async def _activate_current(self) -> None:
        """Activate the current entry, skipping ahead past entries that fail.

        Any exception other than cancellation counts as a failed entry.
        """
        total = len(self.entries)
        failures = 0

        while self.phase is RotationPhase.RUNNING:
            entry = self.entries[self.state.current_index]
            try:
                await self._activate(entry)
                return
            except (ProvisionFailed, TabUnreachable) as e:
                error: RotationError = e
            except Exception as e:
                logger.exception(f"Unexpected error activating {entry.display_url}")
                tab_id = self.registry.resolve(entry.url) or "unknown"
                error = TabUnreachable(entry.url, tab_id, f"{type(e).__name__}: {e}")

            failures += 1
            self._record_error(error)
            self.activity_log.error(f"{error.message}; moving to next entry")

            if failures >= total:
                if self.timing.full_pass_guard:
                    all_failed = AllEntriesFailed(failures)
                    self._record_error(all_failed)
                    await self._stop_locked(all_failed.message, LogSeverity.ERROR)
                else:
                    self._schedule_retry(entry)
                return

            self._step_index()

    async def _activate(self, entry: RotationEntry) -> None:
        had_binding = self.registry.resolve(entry.url) is not None
        tab_id = await self._bounded(self.provisioner.ensure_tab(entry), entry)
        if not had_binding and self.timing.load_wait > 0:
            await asyncio.sleep(self.timing.load_wait)

        try:
            tab = await self._bounded(self.browser.get_tab(tab_id), entry, tab_id)
            await self._bounded(self.browser.focus_tab(tab_id), entry, tab_id)
            if tab.window_id is not None:
                await self._bounded(self.browser.focus_window(tab.window_id), entry, tab_id)
        except BrowserError as e:
            if isinstance(e, TabNotFoundError):
                self.registry.unbind(entry.url)
            raise TabUnreachable(entry.url, tab_id, e.message) from e

        if entry.reload:
            try:
                await self._bounded(self.browser.reload_tab(tab_id), entry, tab_id)
                self.activity_log.info(f"Reloaded page: {entry.display_url}")
            except BrowserError as e:
                self.activity_log.error(f"Reload failed for {entry.display_url}: {e.message}")

        self.state.current_entry_display = entry.display_url
        self.state.remaining_seconds = entry.duration_seconds
        self._persist_state()

        self.activity_log.success(
            f"Showing {entry.display_url} ({entry.duration_seconds}s)"
        )
        self.timer.arm(entry.duration_seconds)

    def _schedule_retry(self, entry: RotationEntry) -> None:
        """Keep rotating after a fully failed pass by retrying on the advance timer."""
        self.state.current_entry_display = f"Retrying: {entry.display_url}"
        self.state.remaining_seconds = entry.duration_seconds
        self.activity_log.error(
            f"Every entry failed; retrying in {entry.duration_seconds}s"
        )
        self.timer.arm(entry.duration_seconds)

    def _record_error(self, error: RotationError) -> None:
        self.state.last_error = error.message
        self.state.last_error_code = error.error_code

    def _step_index(self) -> None:
        total = len(self.entries)
        self.state.current_index = (self.state.current_index + 1) % total if total else 0
        self._persist_state()

    async def _bounded(self, awaitable: Any, entry: RotationEntry, tab_id: Optional[str] = None) -> Any:
        """Await a browser call with the configured upper bound.

        A timeout becomes ProvisionFailed before a tab is known and
        BrowserError once one is.
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timing.io_timeout)
        except asyncio.TimeoutError as e:
            if tab_id is None:
                raise ProvisionFailed(entry.url, "browser did not respond") from e
            raise BrowserError(
                f"Browser did not respond within {self.timing.io_timeout}s", "TIMEOUT"
            ) from e

    def _persist_state(self) -> None:
        if self.store is None:
            return
        try:
            self.store.set(
                {
                    IS_RUNNING_KEY: self.state.is_running,
                    CURRENT_INDEX_KEY: self.state.current_index,
                }
            )
        except StorageError as e:
            logger.warning(f"Rotation state not persisted: {e}")

    def _persist_config(self) -> None:
        if self.store is None:
            return
        try:
            self.store.set(
                {
                    ENTRIES_KEY: self.config.entries_for_storage(),
                    AUTO_START_KEY: self.config.auto_start,
                }
            )
        except StorageError as e:
            logger.warning(f"Rotation settings not persisted: {e}")

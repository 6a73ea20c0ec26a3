"""Shared test fixtures: an in-memory browser environment and a temp state store."""

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any, Optional

import pytest
import pytest_asyncio

from tabrotator.browser.base import BrowserEnvironment, BrowserError, TabInfo, TabNotFoundError
from tabrotator.rotation.state_machine import RotationStateMachine, RotationTiming
from tabrotator.settings.models import RotationEntry
from tabrotator.settings.persistence import StateStore


class FakeBrowser(BrowserEnvironment):
    """In-memory browser with failure injection and call recording."""

    def __init__(self, window_id: Optional[int] = 1) -> None:
        super().__init__()
        self.tabs: dict[str, TabInfo] = {}
        self.window_id = window_id
        self.calls: list[tuple[str, Any]] = []
        self.fail_create: set[str] = set()
        self.fail_focus: set[str] = set()
        self.fail_reload: set[str] = set()
        self.unavailable = False
        self.started = False
        self.closed = False
        self._next_id = 1

    def add_tab(self, url: str) -> TabInfo:
        tab = TabInfo(id=f"tab-{self._next_id}", url=url, window_id=self.window_id)
        self._next_id += 1
        self.tabs[tab.id] = tab
        return tab

    def calls_to(self, name: str) -> list[Any]:
        return [arg for call_name, arg in self.calls if call_name == name]

    async def close_tab(self, tab_id: str) -> None:
        """Simulate the user closing a tab."""
        self.tabs.pop(tab_id, None)
        await self._notify_tab_closed(tab_id)

    def _check_available(self) -> None:
        if self.unavailable:
            raise BrowserError("Browser unavailable", "CONNECTION_FAILED")

    async def list_open_tabs(self) -> list[TabInfo]:
        self.calls.append(("list_open_tabs", None))
        self._check_available()
        return list(self.tabs.values())

    async def create_tab(self, url: str, active: bool = False) -> TabInfo:
        self.calls.append(("create_tab", (url, active)))
        self._check_available()
        if url in self.fail_create:
            raise BrowserError(f"Cannot open {url}", "CREATE_FAILED")
        return self.add_tab(url)

    async def get_tab(self, tab_id: str) -> TabInfo:
        self.calls.append(("get_tab", tab_id))
        self._check_available()
        if tab_id not in self.tabs:
            raise TabNotFoundError(tab_id)
        return self.tabs[tab_id]

    async def focus_tab(self, tab_id: str) -> None:
        self.calls.append(("focus_tab", tab_id))
        if tab_id not in self.tabs:
            raise TabNotFoundError(tab_id)
        if tab_id in self.fail_focus:
            raise BrowserError(f"Cannot focus {tab_id}", "FOCUS_FAILED")

    async def focus_window(self, window_id: int) -> None:
        self.calls.append(("focus_window", window_id))

    async def reload_tab(self, tab_id: str) -> None:
        self.calls.append(("reload_tab", tab_id))
        if tab_id in self.fail_reload:
            raise BrowserError(f"Cannot reload {tab_id}", "PROTOCOL_ERROR")

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def browser() -> FakeBrowser:
    """Create an empty fake browser."""
    return FakeBrowser()


@pytest.fixture
def store(tmp_path: Path) -> StateStore:
    """Create a state store in a temporary directory."""
    return StateStore(tmp_path / "data")


@pytest.fixture
def fast_timing() -> RotationTiming:
    """Rotation timing without provisioning pauses."""
    return RotationTiming(
        provision_interval=0,
        settle_delay=0,
        load_wait=0,
        tick_interval=1.0,
        io_timeout=2.0,
    )


@pytest.fixture
def make_entries():
    """Build rotation entries from URLs."""

    def _make(*urls: str, duration: int = 10, reload: bool = True) -> list[RotationEntry]:
        return [RotationEntry(url=url, duration_seconds=duration, reload=reload) for url in urls]

    return _make


@pytest_asyncio.fixture
async def machine(
    browser: FakeBrowser, store: StateStore, fast_timing: RotationTiming
) -> AsyncGenerator[RotationStateMachine, None]:
    """Create a state machine on the fake browser; timers are cancelled afterwards."""
    rotation = RotationStateMachine(browser, store=store, timing=fast_timing)
    yield rotation
    rotation.timer.cancel()

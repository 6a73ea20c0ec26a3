"""Capability interface for the browser that rotation drives."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)

TabClosedCallback = Callable[[str], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class TabInfo:
    """A browser tab as seen by the rotation core.

    Attributes:
        id: Browser-assigned tab identifier
        url: URL currently loaded in the tab
        window_id: Identifier of the window holding the tab (None if unknown)
    """

    id: str
    url: str
    window_id: Optional[int] = None


class BrowserError(Exception):
    """Exception raised when a browser request fails.

    Attributes:
        message: Error description
        error_code: Optional error code for categorization
    """

    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class TabNotFoundError(BrowserError):
    """Raised when a tab id no longer refers to an open tab."""

    def __init__(self, tab_id: str) -> None:
        super().__init__(f"Tab not found: {tab_id}", "TAB_NOT_FOUND")
        self.tab_id = tab_id


class BrowserEnvironment(ABC):
    """Abstract base class for the browser tab, window and notification primitives."""

    def __init__(self) -> None:
        self._tab_closed_callbacks: list[TabClosedCallback] = []

    @abstractmethod
    async def list_open_tabs(self) -> list[TabInfo]:
        """Return every tab currently open in the browser.

        Implementations may leave ``window_id`` as None when the window is not
        known without an extra request per tab; callers that need the window
        use ``get_tab``.
        """

    @abstractmethod
    async def create_tab(self, url: str, active: bool = False) -> TabInfo:
        """Open a new tab for url.

        Args:
            url: URL to load
            active: Whether the new tab should take focus

        Returns:
            The created tab
        """

    @abstractmethod
    async def get_tab(self, tab_id: str) -> TabInfo:
        """Return the tab with the given id.

        Raises:
            TabNotFoundError: If the tab does not exist
        """

    @abstractmethod
    async def focus_tab(self, tab_id: str) -> None:
        """Make the tab the selected tab of its window."""

    @abstractmethod
    async def focus_window(self, window_id: int) -> None:
        """Bring the window to the front."""

    @abstractmethod
    async def reload_tab(self, tab_id: str) -> None:
        """Reload the page shown in the tab."""

    async def start(self) -> None:
        """Begin delivering notifications such as tab-closed events."""

    async def close(self) -> None:
        """Release connections and stop notification delivery."""

    def on_tab_closed(self, callback: TabClosedCallback) -> None:
        """Register a callback invoked with the id of every tab that closes."""
        self._tab_closed_callbacks.append(callback)

    async def _notify_tab_closed(self, tab_id: str) -> None:
        for callback in list(self._tab_closed_callbacks):
            try:
                result = callback(tab_id)
                if result is not None:
                    await result
            except Exception:
                logger.exception(f"Tab-closed callback failed for tab {tab_id}")

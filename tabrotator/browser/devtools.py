"""
Chrome DevTools Protocol client implementing the browser capability interface.

Talks to a Chromium-family browser started with ``--remote-debugging-port``
using the DevTools HTTP endpoints (``/json/list``, ``/json/activate``,
``/json/version``) and short-lived WebSocket sessions for protocol commands
(``Target.createTarget``, ``Page.reload``, ``Browser.*Window*``). Every request
is bounded by ``request_timeout``.

Example:
    >>> browser = DevToolsBrowser("http://127.0.0.1:9222")
    >>> await browser.start()
    >>> tabs = await browser.list_open_tabs()
    >>> await browser.close()
"""

import asyncio
import contextlib
import json
import logging
from typing import Any, Optional

import aiohttp

from ..utils.logging import VERBOSE
from .base import BrowserEnvironment, BrowserError, TabInfo, TabNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_DEVTOOLS_URL = "http://127.0.0.1:9222"


class DevToolsBrowser(BrowserEnvironment):
    """Browser environment backed by the Chrome DevTools remote-debugging API.

    Tab closures are detected by polling ``/json/list`` and diffing tab ids, so
    a closed tab is reported within one ``poll_interval``.
    """

    def __init__(
        self,
        devtools_url: str = DEFAULT_DEVTOOLS_URL,
        request_timeout: float = 10.0,
        poll_interval: float = 2.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """Initialize the DevTools client.

        Args:
            devtools_url: Base URL of the remote-debugging endpoint
            request_timeout: Upper bound in seconds for every request
            poll_interval: Seconds between tab-list polls for closed-tab detection
            session: Optional pre-built aiohttp session (not closed by this client)
        """
        super().__init__()
        self.devtools_url = devtools_url.rstrip("/")
        self.request_timeout = request_timeout
        self.poll_interval = poll_interval

        self._session = session
        self._owns_session = session is None
        self._poll_task: Optional[asyncio.Task] = None
        self._known_tab_ids: set[str] = set()
        self._message_id = 0

    async def list_open_tabs(self) -> list[TabInfo]:
        """List page targets. window_id is left unset; get_tab resolves it per tab."""
        targets = await self._list_page_targets()
        return [TabInfo(id=t["id"], url=t.get("url", "")) for t in targets]

    async def create_tab(self, url: str, active: bool = False) -> TabInfo:
        result = await self._browser_command(
            "Target.createTarget", {"url": url, "background": not active}
        )
        tab_id = result.get("targetId")
        if not tab_id:
            raise BrowserError(f"Browser did not return a tab id for {url}", "CREATE_FAILED")

        self._known_tab_ids.add(tab_id)
        logger.debug(f"Created tab {tab_id} for {url} (active={active})")
        return TabInfo(id=tab_id, url=url)

    async def get_tab(self, tab_id: str) -> TabInfo:
        for target in await self._list_page_targets():
            if target["id"] == tab_id:
                return TabInfo(
                    id=tab_id,
                    url=target.get("url", ""),
                    window_id=await self._get_window_id(tab_id),
                )
        raise TabNotFoundError(tab_id)

    async def focus_tab(self, tab_id: str) -> None:
        status, body = await self._http_request("GET", f"/json/activate/{tab_id}")
        if status == 404:
            raise TabNotFoundError(tab_id)
        if status != 200:
            raise BrowserError(f"Activating tab {tab_id} failed ({status}): {body}", "FOCUS_FAILED")

    async def focus_window(self, window_id: int) -> None:
        result = await self._browser_command("Browser.getWindowBounds", {"windowId": window_id})
        state = result.get("bounds", {}).get("windowState")
        if state == "minimized":
            await self._browser_command(
                "Browser.setWindowBounds",
                {"windowId": window_id, "bounds": {"windowState": "normal"}},
            )
            logger.debug(f"Restored minimized window {window_id}")

    async def reload_tab(self, tab_id: str) -> None:
        for target in await self._list_page_targets():
            if target["id"] == tab_id:
                ws_url = target.get("webSocketDebuggerUrl")
                if not ws_url:
                    raise BrowserError(
                        f"Tab {tab_id} has no debugger endpoint (another client attached?)",
                        "NO_DEBUGGER_URL",
                    )
                await self._send_command(ws_url, "Page.reload", {"ignoreCache": False})
                return
        raise TabNotFoundError(tab_id)

    async def start(self) -> None:
        """Snapshot the open tabs and start polling for closed ones."""
        if self._poll_task and not self._poll_task.done():
            return

        try:
            self._known_tab_ids = {tab.id for tab in await self.list_open_tabs()}
        except BrowserError as e:
            logger.warning(f"Initial tab snapshot failed, polling will retry: {e}")
            self._known_tab_ids = set()

        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info(f"DevTools tab polling started ({self.devtools_url})")

    async def close(self) -> None:
        if self._poll_task and not self._poll_task.done():
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
        self._poll_task = None

        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.poll_closed_tabs()

    async def poll_closed_tabs(self) -> list[str]:
        """Compare the open tabs against the last snapshot and report closures.

        Returns:
            Ids of tabs that disappeared since the previous poll
        """
        try:
            current = {tab.id for tab in await self.list_open_tabs()}
        except BrowserError as e:
            logger.debug(f"Tab poll failed: {e}")
            return []

        if logger.isEnabledFor(VERBOSE):
            logger.verbose(f"Tab poll: {len(current)} open, {len(self._known_tab_ids)} known")  # type: ignore[attr-defined]

        closed = sorted(self._known_tab_ids - current)
        self._known_tab_ids = current

        for tab_id in closed:
            logger.debug(f"Tab {tab_id} closed")
            await self._notify_tab_closed(tab_id)
        return closed

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )
            self._owns_session = True
        return self._session

    async def _http_request(self, method: str, path: str) -> tuple[int, str]:
        session = await self._get_session()
        url = f"{self.devtools_url}{path}"
        try:
            async with session.request(method, url) as response:
                return response.status, await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BrowserError(f"DevTools request {method} {path} failed: {e}", "CONNECTION_FAILED") from e

    async def _get_json(self, path: str) -> Any:
        status, body = await self._http_request("GET", path)
        if status != 200:
            raise BrowserError(f"DevTools request {path} returned {status}", "HTTP_ERROR")
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise BrowserError(f"Invalid JSON from {path}", "INVALID_RESPONSE") from e

    async def _list_page_targets(self) -> list[dict[str, Any]]:
        targets = await self._get_json("/json/list")
        if not isinstance(targets, list):
            raise BrowserError("Unexpected /json/list payload", "INVALID_RESPONSE")
        return [t for t in targets if isinstance(t, dict) and t.get("type") == "page" and "id" in t]

    async def _get_window_id(self, tab_id: str) -> Optional[int]:
        try:
            result = await self._browser_command("Browser.getWindowForTarget", {"targetId": tab_id})
        except BrowserError as e:
            logger.debug(f"Window lookup for tab {tab_id} failed: {e}")
            return None
        return result.get("windowId")

    async def _browser_command(self, method: str, params: Optional[dict[str, Any]] = None) -> dict:
        version = await self._get_json("/json/version")
        ws_url = version.get("webSocketDebuggerUrl") if isinstance(version, dict) else None
        if not ws_url:
            raise BrowserError("Browser endpoint has no webSocketDebuggerUrl", "NO_DEBUGGER_URL")
        return await self._send_command(ws_url, method, params)

    async def _send_command(
        self, ws_url: str, method: str, params: Optional[dict[str, Any]] = None
    ) -> dict:
        """Send one protocol command over a fresh WebSocket and wait for its result."""
        self._message_id += 1
        message_id = self._message_id
        session = await self._get_session()

        async def _exchange() -> dict:
            async with session.ws_connect(ws_url, max_msg_size=0) as ws:
                await ws.send_json({"id": message_id, "method": method, "params": params or {}})
                async for msg in ws:
                    if msg.type != aiohttp.WSMsgType.TEXT:
                        break
                    try:
                        data = json.loads(msg.data)
                    except json.JSONDecodeError as e:
                        raise BrowserError(
                            f"Invalid protocol message during {method}", "INVALID_RESPONSE"
                        ) from e
                    if not isinstance(data, dict) or data.get("id") != message_id:
                        continue  # protocol event
                    if "error" in data:
                        error = data["error"]
                        raise BrowserError(
                            f"{method} failed: {error.get('message', error)}", "PROTOCOL_ERROR"
                        )
                    return data.get("result", {})
            raise BrowserError(f"Connection closed before {method} completed", "CONNECTION_CLOSED")

        try:
            return await asyncio.wait_for(_exchange(), timeout=self.request_timeout)
        except asyncio.TimeoutError as e:
            raise BrowserError(f"{method} timed out after {self.request_timeout}s", "TIMEOUT") from e
        except aiohttp.ClientError as e:
            raise BrowserError(f"{method} failed: {e}", "CONNECTION_FAILED") from e

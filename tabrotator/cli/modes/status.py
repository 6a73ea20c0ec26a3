"""Status and log display modes."""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from tabrotator.rotation.activity_log import ActivityLog, LogSeverity
from tabrotator.settings.exceptions import StorageError
from tabrotator.settings.models import RotationConfig
from tabrotator.settings.persistence import (
    AUTO_START_KEY,
    CURRENT_INDEX_KEY,
    ENTRIES_KEY,
    IS_RUNNING_KEY,
    StateStore,
)

from ..config import load_settings

logger = logging.getLogger(__name__)

LIVE_STATUS_TIMEOUT = 2.0

COLORS = {
    "green": "\033[92m",
    "red": "\033[91m",
    "yellow": "\033[93m",
    "bold": "\033[1m",
    "reset": "\033[0m",
}


def _colorize(text: str, color: str, enabled: bool) -> str:
    if not enabled:
        return text
    return f"{COLORS.get(color, '')}{text}{COLORS['reset']}"


async def fetch_live_status(host: str, port: int) -> Optional[dict[str, Any]]:
    """Ask a running instance for its status; None if nothing answers."""
    url = f"http://{host}:{port}/api/status"
    timeout = aiohttp.ClientTimeout(total=LIVE_STATUS_TIMEOUT)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session, session.get(url) as response:
            if response.status != 200:
                return None
            data = await response.json()
            return data if isinstance(data, dict) else None
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.debug(f"No live instance at {url}: {e}")
        return None


def format_status(
    status: dict[str, Any], entries: list[Any], live: bool, color_output: bool = True
) -> str:
    """Format a status snapshot for console display."""
    running = bool(status.get("is_running"))
    state_color = "green" if running else "red"
    source = "live" if live else "last known"

    lines = [
        _colorize("TabRotator Status", "bold", color_output),
        "=" * 30,
        f"Rotation: {_colorize('Running' if running else 'Stopped', state_color, color_output)}"
        f" ({source})",
        f"Entries: {status.get('total_entries', len(entries))}",
        f"Current Index: {status.get('current_index', 0)}",
    ]

    if running:
        lines.append(f"Showing: {status.get('current_entry_display') or 'N/A'}")
        lines.append(f"Next Switch In: {status.get('remaining_seconds', 0)}s")

    if status.get("last_error"):
        lines.append(_colorize(f"Last Error: {status['last_error']}", "red", color_output))

    if entries:
        lines.append("")
        for index, entry in enumerate(entries):
            reload_note = "" if entry.reload else ", no reload"
            lines.append(f"  {index}. {entry.display_url} ({entry.duration_seconds}s{reload_note})")

    return "\n".join(lines)


async def show_status(args: Any) -> int:
    """Print live status if an instance answers, else the persisted state.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    settings = load_settings(args)
    color_output = not getattr(args, "no_log_colors", False)

    try:
        store = StateStore(settings.data_dir)
        stored = store.get([ENTRIES_KEY, AUTO_START_KEY, IS_RUNNING_KEY, CURRENT_INDEX_KEY])
    except StorageError as e:
        print(f"Error reading rotation state: {e}")
        return 1

    config = RotationConfig.from_storage(stored[ENTRIES_KEY], stored[AUTO_START_KEY])

    live_status = await fetch_live_status(settings.server.host, settings.server.port)
    if live_status is not None:
        status = live_status
    else:
        status = {
            "is_running": bool(stored[IS_RUNNING_KEY]),
            "current_index": stored[CURRENT_INDEX_KEY] or 0,
            "total_entries": len(config.entries),
        }

    print(format_status(status, config.entries, live_status is not None, color_output))
    return 0


def show_logs(args: Any) -> int:
    """Print the persisted activity log, oldest first.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    settings = load_settings(args)
    color_output = not getattr(args, "no_log_colors", False)

    try:
        activity_log = ActivityLog(StateStore(settings.data_dir))
    except StorageError as e:
        print(f"Error reading activity log: {e}")
        return 1

    entries = activity_log.entries()
    if not entries:
        print("Activity log is empty")
        return 0

    severity_colors = {LogSeverity.SUCCESS: "green", LogSeverity.ERROR: "red"}
    for entry in entries:
        color = severity_colors.get(entry.severity)
        line = entry.format()
        print(_colorize(line, color, color_output) if color else line)
    return 0

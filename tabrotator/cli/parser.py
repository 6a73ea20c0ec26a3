"""Command-line argument parsing for TabRotator.

This module handles all command-line argument parsing functionality,
including setup of argument groups, validation, and parsing logic.
"""

import argparse
import logging

from tabrotator import __version__
from tabrotator.settings.models import (
    DEFAULT_DURATION_SECONDS,
    MAX_DURATION_SECONDS,
    MIN_DURATION_SECONDS,
    RotationEntry,
)

logger = logging.getLogger(__name__)

COMMANDS = ("run", "status", "logs")
NO_RELOAD_FLAG = "noreload"


def parse_entry(value: str) -> RotationEntry:
    """Parse a ``URL[,SECONDS[,noreload]]`` rotation entry argument.

    Commas inside the URL are kept; only trailing seconds and ``noreload``
    parts are split off.

    Args:
        value: Command line value

    Returns:
        The parsed rotation entry

    Raises:
        argparse.ArgumentTypeError: If the value is not a valid entry

    Example:
        >>> parse_entry("https://example.com,30,noreload").reload
        False
    """
    parts = value.split(",")
    reload_page = True
    duration = DEFAULT_DURATION_SECONDS

    if len(parts) > 1 and parts[-1].strip().lower() == NO_RELOAD_FLAG:
        reload_page = False
        parts.pop()

    if len(parts) > 1 and parts[-1].strip().isdigit():
        duration = int(parts.pop().strip())
        if not MIN_DURATION_SECONDS <= duration <= MAX_DURATION_SECONDS:
            raise argparse.ArgumentTypeError(
                f"duration must be between {MIN_DURATION_SECONDS} and "
                f"{MAX_DURATION_SECONDS} seconds: {value}"
            )

    url = ",".join(parts).strip()
    if not url:
        raise argparse.ArgumentTypeError(f"entry has no URL: {value}")

    return RotationEntry(url=url, duration_seconds=duration, reload=reload_page)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the command line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="TabRotator - Rotate browser tabs on a kiosk display",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                        # Run with stored settings
  %(prog)s run --entry https://example.com,30     # Rotate a single page every 30s
  %(prog)s run --entry file:///srv/board.html,60,noreload --entry https://example.com
  %(prog)s run --devtools-url http://127.0.0.1:9222 --port 8765
  %(prog)s status                                 # Show rotation status
  %(prog)s logs                                   # Show the activity log

Start the browser with remote debugging enabled, e.g.:
  chromium --remote-debugging-port=9222 --kiosk
        """,
    )

    parser.add_argument(
        "command",
        nargs="?",
        choices=COMMANDS,
        default="run",
        help="Operation to perform (default: run)",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument(
        "--data-dir",
        type=str,
        help="Directory holding the persisted rotation state",
    )

    # Rotation arguments
    rotation_group = parser.add_argument_group("rotation", "Rotation options for 'run'")
    rotation_group.add_argument(
        "--entry",
        dest="entries",
        action="append",
        type=parse_entry,
        metavar="URL[,SECONDS[,noreload]]",
        help=(
            "Rotation entry (repeatable); replaces the stored entries. "
            f"SECONDS defaults to {DEFAULT_DURATION_SECONDS}"
        ),
    )
    rotation_group.add_argument(
        "--no-auto-start",
        action="store_true",
        help="Do not start rotating automatically for this run",
    )

    # Browser and server arguments
    browser_group = parser.add_argument_group("browser", "Browser and control API options")
    browser_group.add_argument(
        "--devtools-url",
        type=str,
        help="Chrome DevTools endpoint (default: http://127.0.0.1:9222)",
    )
    browser_group.add_argument(
        "--host",
        type=str,
        help="Control API bind address (default: 127.0.0.1)",
    )
    browser_group.add_argument(
        "--port",
        type=int,
        help="Control API port (default: 8765)",
    )
    browser_group.add_argument(
        "--no-server",
        action="store_true",
        help="Do not serve the HTTP control API",
    )

    # Logging arguments
    logging_group = parser.add_argument_group("logging", "Logging configuration options")
    logging_group.add_argument(
        "--log-level",
        choices=["DEBUG", "VERBOSE", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log level for both console and file",
    )
    logging_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (equivalent to --log-level VERBOSE)",
    )
    logging_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Quiet mode - only show errors",
    )
    logging_group.add_argument(
        "--log-dir",
        type=str,
        help="Write timestamped log files to this directory",
    )
    logging_group.add_argument(
        "--no-log-colors",
        action="store_true",
        help="Disable colored console output",
    )

    return parser

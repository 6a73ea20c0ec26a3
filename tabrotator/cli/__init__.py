"""CLI module for TabRotator.

This module provides the command-line interface: argument parsing, settings
resolution and mode execution.
"""

from .modes import run_rotation_mode, show_logs, show_status
from .parser import create_parser, parse_entry


async def main_entry() -> int:
    """Main entry point with argument parsing.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = create_parser()
    args = parser.parse_args()

    if args.command == "status":
        return await show_status(args)
    if args.command == "logs":
        return show_logs(args)
    return await run_rotation_mode(args)


__all__ = ["create_parser", "main_entry", "parse_entry"]

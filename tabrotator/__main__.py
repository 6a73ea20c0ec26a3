"""Entry point for `python -m tabrotator` command."""

import asyncio
import sys

from tabrotator.cli import main_entry


def main() -> None:
    """Entry point for python -m tabrotator and the console script."""
    try:
        exit_code = asyncio.run(main_entry())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("Operation cancelled by user")
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

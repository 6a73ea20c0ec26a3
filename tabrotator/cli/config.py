"""Settings resolution for CLI operations."""

import logging
from pathlib import Path
from typing import Any, Optional

from tabrotator.config.settings import TabRotatorSettings, get_settings
from tabrotator.settings.models import RotationConfig
from tabrotator.settings.persistence import AUTO_START_KEY, ENTRIES_KEY, StateStore
from tabrotator.utils.logging import apply_command_line_overrides

logger = logging.getLogger(__name__)


def load_settings(args: Any) -> TabRotatorSettings:
    """Resolve settings and apply command line overrides.

    Priority: Command-line > Environment > YAML > Defaults.

    Args:
        args: Parsed command line arguments

    Returns:
        Settings for this invocation
    """
    data_dir = getattr(args, "data_dir", None)
    settings = TabRotatorSettings(data_dir=Path(data_dir).expanduser()) if data_dir else get_settings()
    return apply_cli_overrides(settings, args)


def apply_cli_overrides(settings: TabRotatorSettings, args: Any) -> TabRotatorSettings:
    """Apply browser, server and logging overrides in place."""
    if getattr(args, "devtools_url", None):
        settings.browser.devtools_url = args.devtools_url
    if getattr(args, "host", None):
        settings.server.host = args.host
    if getattr(args, "port", None):
        settings.server.port = args.port
    if getattr(args, "no_server", False):
        settings.server.enabled = False

    return apply_command_line_overrides(settings, args)


def resolve_initial_config(
    args: Any, settings: TabRotatorSettings, store: StateStore
) -> Optional[RotationConfig]:
    """Pick the rotation config to install before the service starts.

    Command line entries replace the stored ones. The YAML ``rotation`` seed
    is only used while the store holds no entries. Otherwise the stored
    config is kept and None is returned.
    """
    stored = store.get([ENTRIES_KEY, AUTO_START_KEY])

    cli_entries = getattr(args, "entries", None)
    if cli_entries:
        auto_start = stored[AUTO_START_KEY] is not False
        logger.info(f"Using {len(cli_entries)} entries from the command line")
        return RotationConfig(entries=cli_entries, auto_start=auto_start)

    if not stored[ENTRIES_KEY] and settings.rotation is not None:
        logger.info(f"Seeding {len(settings.rotation.entries)} entries from config file")
        return settings.rotation

    return None

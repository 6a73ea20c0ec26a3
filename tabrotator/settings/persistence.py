"""
State persistence layer for JSON file-based key-value storage.

This module provides the persisted key-value store used by the rotation
service for its entries, auto-start flag, last-known running state, current
index and activity log. Writes are atomic so a crash mid-write never leaves a
truncated state file behind.
"""

import contextlib
import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Optional

from .exceptions import StorageError

logger = logging.getLogger(__name__)

# Keys understood by the rotation service
ENTRIES_KEY = "entries"
AUTO_START_KEY = "auto_start"
IS_RUNNING_KEY = "is_running"
CURRENT_INDEX_KEY = "current_index"
LOGS_KEY = "logs"

STATE_KEYS = (ENTRIES_KEY, AUTO_START_KEY, IS_RUNNING_KEY, CURRENT_INDEX_KEY, LOGS_KEY)


class StateStore:
    """Persistent key-value store backed by a single JSON document.

    Values are cached in memory after the first load; every ``set`` merges the
    given keys into the cache and rewrites the whole document atomically.

    Attributes:
        data_dir: Directory holding the state file
        state_file: Path of the JSON state file

    Example:
        >>> store = StateStore(Path("/home/user/.local/share/tabrotator"))
        >>> store.set({"auto_start": False})
        >>> store.get(["auto_start", "entries"])
        {'auto_start': False, 'entries': None}
    """

    def __init__(self, data_dir: Path, state_filename: str = "state.json") -> None:
        """Initialize the store in the given directory.

        Args:
            data_dir: Directory path for the state file
            state_filename: Name of the state file

        Raises:
            StorageError: If the directory cannot be created
        """
        self.data_dir = Path(data_dir)
        self.state_file = self.data_dir / state_filename
        self._cache: Optional[dict[str, Any]] = None

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.debug(f"State directory: {self.data_dir}")
        except OSError as e:
            raise StorageError(
                f"Failed to create state directory: {data_dir}",
                operation="initialize",
                file_path=str(data_dir),
                original_error=e,
            ) from e

    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return the stored value for each key, None for missing keys."""
        data = self._load()
        return {key: data.get(key) for key in keys}

    def set(self, values: Mapping[str, Any]) -> None:
        """Merge values into the store and write it to disk.

        Raises:
            StorageError: If the write fails; the in-memory cache keeps the values
        """
        data = self._load()
        data.update(values)

        try:
            self._atomic_write(self.state_file, data)
        except Exception as e:
            raise StorageError(
                "Failed to save state",
                operation="save",
                file_path=str(self.state_file),
                original_error=e,
            ) from e

    def _load(self) -> dict[str, Any]:
        if self._cache is None:
            self._cache = self._load_from_file(self.state_file)
        return self._cache

    def _load_from_file(self, file_path: Path) -> dict[str, Any]:
        """Read the state document, treating a missing or corrupt file as empty."""
        if not file_path.exists():
            logger.debug(f"No state file at {file_path}, starting empty")
            return {}

        try:
            with file_path.open(encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError:
            logger.exception(f"Invalid JSON in state file {file_path}")
            return {}
        except OSError:
            logger.exception(f"Error reading state from {file_path}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring state file {file_path}: top level is not an object")
            return {}
        return data

    def _atomic_write(self, file_path: Path, data: dict[str, Any]) -> None:
        """Write to a temporary file and move it over the target."""
        temp_file = file_path.with_suffix(".tmp")

        try:
            with temp_file.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, default=str, ensure_ascii=False)
                f.flush()

            temp_file.replace(file_path)

        except Exception:
            if temp_file.exists():
                with contextlib.suppress(Exception):
                    temp_file.unlink()
            raise

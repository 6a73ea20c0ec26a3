"""
Bounded activity log of rotation state transitions and errors.

The log keeps the most recent entries (50 by default), dropping the oldest
first, persists them in the state store under ``logs`` and mirrors every
entry to the Python logger.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from ..settings.exceptions import StorageError
from ..settings.persistence import LOGS_KEY, StateStore

logger = logging.getLogger(__name__)

DEFAULT_LOG_CAPACITY = 50


class LogSeverity(str, Enum):
    """Severity of an activity log entry."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class LogEntry:
    """One activity log record.

    Attributes:
        timestamp_ms: Unix time in milliseconds
        severity: info, success or error
        message: Human-readable description
    """

    timestamp_ms: int
    severity: LogSeverity
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp_ms": self.timestamp_ms,
            "severity": self.severity.value,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        try:
            severity = LogSeverity(data.get("severity", LogSeverity.INFO.value))
        except ValueError:
            severity = LogSeverity.INFO
        return cls(
            timestamp_ms=int(data.get("timestamp_ms", 0)),
            severity=severity,
            message=str(data.get("message", "")),
        )

    def format(self) -> str:
        """Render as ``[HH:MM:SS] message`` in local time."""
        stamp = datetime.fromtimestamp(self.timestamp_ms / 1000).strftime("%H:%M:%S")
        return f"[{stamp}] {self.message}"


class ActivityLog:
    """Append-only log capped to the most recent entries."""

    def __init__(
        self,
        store: Optional[StateStore] = None,
        capacity: int = DEFAULT_LOG_CAPACITY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the log, restoring persisted entries from store.

        Args:
            store: Optional state store the log is persisted to
            capacity: Maximum number of entries kept
            clock: Returns the current Unix time in seconds
        """
        self.store = store
        self.capacity = capacity
        self._clock = clock
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

        if store is not None:
            stored = store.get([LOGS_KEY])[LOGS_KEY] or []
            if not isinstance(stored, list):
                logger.warning(f"Ignoring stored activity log of type {type(stored).__name__}")
                stored = []
            for raw in stored[-capacity:]:
                if not isinstance(raw, dict):
                    continue
                try:
                    self._entries.append(LogEntry.from_dict(raw))
                except (TypeError, ValueError) as e:
                    logger.warning(f"Skipping unreadable activity log entry: {e}")

    def append(self, message: str, severity: LogSeverity = LogSeverity.INFO) -> LogEntry:
        entry = LogEntry(
            timestamp_ms=int(self._clock() * 1000), severity=severity, message=message
        )
        self._entries.append(entry)

        level = logging.ERROR if severity is LogSeverity.ERROR else logging.INFO
        logger.log(level, message)

        self._persist()
        return entry

    def info(self, message: str) -> LogEntry:
        return self.append(message, LogSeverity.INFO)

    def success(self, message: str) -> LogEntry:
        return self.append(message, LogSeverity.SUCCESS)

    def error(self, message: str) -> LogEntry:
        return self.append(message, LogSeverity.ERROR)

    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._persist()

    def __len__(self) -> int:
        return len(self._entries)

    def _persist(self) -> None:
        if self.store is None:
            return
        try:
            self.store.set({LOGS_KEY: [entry.to_dict() for entry in self._entries]})
        except StorageError as e:
            logger.warning(f"Activity log not persisted: {e}")

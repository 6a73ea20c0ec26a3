"""Unit tests for the activity log."""

import logging
import re
from unittest.mock import Mock

import pytest

from tabrotator.rotation.activity_log import ActivityLog, LogEntry, LogSeverity
from tabrotator.settings.exceptions import StorageError
from tabrotator.settings.persistence import LOGS_KEY


class TestActivityLog:
    """Test cases for ActivityLog."""

    def test_append_when_over_capacity_then_keeps_most_recent(self):
        """Test 60 pushes keep exactly the last 50 in order."""
        activity_log = ActivityLog()

        for i in range(60):
            activity_log.info(f"message {i}")

        messages = [entry.message for entry in activity_log.entries()]
        assert len(messages) == 50
        assert messages[0] == "message 10"
        assert messages[-1] == "message 59"

    def test_append_records_severity_and_timestamp(self):
        """Test entries carry severity and millisecond timestamps."""
        activity_log = ActivityLog(clock=lambda: 1700000000.5)

        entry = activity_log.error("Tab failed")

        assert entry.severity is LogSeverity.ERROR
        assert entry.timestamp_ms == 1700000000500
        assert activity_log.entries() == [entry]

    def test_append_persists_to_store(self, store):
        """Test entries are written under the logs key."""
        activity_log = ActivityLog(store)

        activity_log.success("Started")

        stored = store.get([LOGS_KEY])[LOGS_KEY]
        assert len(stored) == 1
        assert stored[0]["message"] == "Started"
        assert stored[0]["severity"] == "success"

    def test_init_restores_persisted_entries(self, store):
        """Test a new log picks up the persisted entries."""
        ActivityLog(store).info("before restart")

        restored = ActivityLog(store)

        assert [entry.message for entry in restored.entries()] == ["before restart"]

    def test_append_when_store_fails_then_keeps_entry_in_memory(self):
        """Test storage failures are tolerated."""
        store = Mock()
        store.get.return_value = {LOGS_KEY: None}
        store.set.side_effect = StorageError("disk full", operation="save")
        activity_log = ActivityLog(store)

        activity_log.info("still logged")

        assert len(activity_log) == 1

    def test_append_mirrors_to_python_logger(self, caplog):
        """Test error entries are logged at ERROR level."""
        activity_log = ActivityLog()

        with caplog.at_level(logging.INFO, logger="tabrotator.rotation.activity_log"):
            activity_log.error("Reload failed")
            activity_log.success("Switched")

        levels = {record.getMessage(): record.levelno for record in caplog.records}
        assert levels["Reload failed"] == logging.ERROR
        assert levels["Switched"] == logging.INFO

    def test_clear_empties_log(self, store):
        activity_log = ActivityLog(store)
        activity_log.info("one")

        activity_log.clear()

        assert len(activity_log) == 0
        assert store.get([LOGS_KEY])[LOGS_KEY] == []

    @pytest.mark.parametrize("stored", [{"bad": 1}, "not a list", 42])
    def test_init_when_stored_logs_not_a_list_then_starts_empty(self, store, stored):
        """Test a malformed persisted log does not prevent startup."""
        store.set({LOGS_KEY: stored})

        activity_log = ActivityLog(store)
        activity_log.info("fresh")

        assert [entry.message for entry in activity_log.entries()] == ["fresh"]

    def test_init_skips_unreadable_entries(self, store):
        store.set(
            {
                LOGS_KEY: [
                    {"timestamp_ms": "soon", "message": "broken"},
                    "text",
                    {"timestamp_ms": 1, "severity": "error", "message": "kept"},
                ]
            }
        )

        activity_log = ActivityLog(store)

        assert [entry.message for entry in activity_log.entries()] == ["kept"]


class TestLogEntry:
    """Test cases for LogEntry."""

    def test_from_dict_when_unknown_severity_then_info(self):
        entry = LogEntry.from_dict({"timestamp_ms": 5, "severity": "weird", "message": "x"})

        assert entry.severity is LogSeverity.INFO
        assert entry.timestamp_ms == 5

    def test_format_prefixes_time(self):
        """Test the display format."""
        entry = LogEntry(timestamp_ms=0, severity=LogSeverity.INFO, message="hello")

        assert re.fullmatch(r"\[\d{2}:\d{2}:\d{2}\] hello", entry.format())

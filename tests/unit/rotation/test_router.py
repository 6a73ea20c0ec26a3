"""Unit tests for the command router."""

from unittest.mock import patch

import pytest

from tabrotator.rotation.router import CommandRouter
from tabrotator.settings.persistence import AUTO_START_KEY, ENTRIES_KEY

URL_A = "https://a.example"
URL_B = "https://b.example"


class TestCommandRouter:
    """Test cases for CommandRouter."""

    @pytest.fixture
    def router(self, machine):
        return CommandRouter(machine)

    @pytest.mark.asyncio
    async def test_status_returns_snapshot(self, router):
        """Test status carries every snapshot field."""
        response = await router.dispatch("status")

        assert response["success"] is True
        for key in (
            "is_running",
            "current_entry_display",
            "remaining_seconds",
            "current_index",
            "total_entries",
            "last_error",
        ):
            assert key in response

    @pytest.mark.asyncio
    async def test_start_when_no_entries_then_error_response(self, router):
        """Test start failures are reported, not raised."""
        response = await router.dispatch("start")

        assert response["success"] is False
        assert response["error_code"] == "NO_ENTRIES_CONFIGURED"

    @pytest.mark.asyncio
    async def test_start_when_every_entry_fails_then_error_code(self, router, browser):
        """Test a start that ends stopped reports why with an error code."""
        await router.dispatch(
            "update_config", {"entries": [{"url": URL_A}, {"url": URL_B}], "auto_start": False}
        )
        browser.fail_create.update({URL_A, URL_B})

        response = await router.dispatch("start")

        assert response["success"] is False
        assert response["is_running"] is False
        assert response["error_code"] == "ALL_ENTRIES_FAILED"
        assert "All 2 entries failed" in response["error"]

    @pytest.mark.asyncio
    async def test_update_config_then_start_then_stop(self, router):
        """Test the full command cycle."""
        update = await router.dispatch(
            "update_config", {"entries": [{"url": URL_A, "time": 15}], "auto_start": False}
        )
        assert update["success"] is True
        assert update["total_entries"] == 1

        start = await router.dispatch("start")
        assert start["success"] is True
        assert start["is_running"] is True
        assert start["remaining_seconds"] == 15

        stop = await router.dispatch("stop")
        assert stop["success"] is True
        assert stop["is_running"] is False

    @pytest.mark.parametrize(
        "alias,expected_running",
        [("startSwitching", True), ("stopSwitching", False)],
    )
    @pytest.mark.asyncio
    async def test_popup_command_names_are_aliases(self, router, alias, expected_running):
        """Test the popup command names route to the same operations."""
        await router.dispatch("update_config", {"entries": [{"url": URL_A}]})

        response = await router.dispatch(alias)

        assert response["success"] is True
        assert response["is_running"] is expected_running

    @pytest.mark.asyncio
    async def test_get_status_alias(self, router):
        response = await router.dispatch("getStatus")

        assert response["success"] is True
        assert response["is_running"] is False

    @pytest.mark.asyncio
    async def test_settings_updated_without_payload_reloads_store(self, router, store):
        """Test settingsUpdated picks up settings saved directly to the store."""
        store.set({ENTRIES_KEY: [{"url": URL_A}, {"url": URL_B}], AUTO_START_KEY: False})

        response = await router.dispatch("settingsUpdated")

        assert response["success"] is True
        assert response["total_entries"] == 2
        assert router.machine.config.auto_start is False

    @pytest.mark.asyncio
    async def test_unknown_command_then_unsupported(self, router):
        """Test unknown commands produce an error response."""
        response = await router.dispatch("selfDestruct")

        assert response == {
            "success": False,
            "error": "Unsupported command: selfDestruct",
            "error_code": "UNSUPPORTED_COMMAND",
        }

    @pytest.mark.parametrize(
        "payload",
        [
            {"entries": [{"url": URL_A, "time": 0}]},
            {"entries": [{"url": URL_A, "time": 3601}]},
            {"entries": [{"url": "   "}]},
            {"entries": [{"time": 10}]},
            {"entries": "not-a-list"},
            {"entries": [], "auto_start": "yes"},
        ],
    )
    @pytest.mark.asyncio
    async def test_update_config_when_invalid_then_invalid_settings(self, router, payload):
        """Test invalid settings are rejected without changing the config."""
        response = await router.dispatch("update_config", payload)

        assert response["success"] is False
        assert response["error_code"] == "INVALID_SETTINGS"
        assert router.machine.status().total_entries == 0

    @pytest.mark.asyncio
    async def test_logs_returns_activity_entries(self, router):
        await router.dispatch("update_config", {"entries": [{"url": URL_A}]})

        response = await router.dispatch("logs")

        assert response["success"] is True
        assert response["logs"][-1]["message"] == "Settings updated (1 entries)"

    @pytest.mark.asyncio
    async def test_clear_logs_empties_activity_log(self, router):
        await router.dispatch("update_config", {"entries": [{"url": URL_A}]})

        response = await router.dispatch("clearLogs")

        assert response == {"success": True, "logs": []}
        assert (await router.dispatch("getLogs"))["logs"] == []

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_error_response(self, router):
        """Test the router never raises to its caller."""
        with patch.object(router.machine, "stop", side_effect=RuntimeError("boom")):
            response = await router.dispatch("stop")

        assert response["success"] is False
        assert response["error"] == "boom"
        assert response["error_code"] == "COMMAND_FAILED"

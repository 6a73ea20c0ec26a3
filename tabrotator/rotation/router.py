"""
Request/response boundary in front of the rotation state machine.

Commands arrive as a name plus an optional payload and always produce a
dictionary response; failures are reported as ``{"success": False, ...}``
rather than raised to the caller.
"""

import logging
from typing import Any, Callable, Optional

from ..settings.exceptions import SettingsValidationError
from ..settings.persistence import AUTO_START_KEY, ENTRIES_KEY
from ..settings.models import RotationConfig
from .exceptions import RotationError, UnsupportedCommand
from .state_machine import START_FAILED, RotationStateMachine

logger = logging.getLogger(__name__)

START = "start"
STOP = "stop"
STATUS = "status"
UPDATE_CONFIG = "update_config"
LOGS = "logs"
CLEAR_LOGS = "clear_logs"

# Command names used by the browser-extension popup
COMMAND_ALIASES = {
    "startSwitching": START,
    "stopSwitching": STOP,
    "getStatus": STATUS,
    "settingsUpdated": UPDATE_CONFIG,
    "getLogs": LOGS,
    "clearLogs": CLEAR_LOGS,
}

INVALID_SETTINGS = "INVALID_SETTINGS"
COMMAND_FAILED = "COMMAND_FAILED"


def error_response(
    message: str, error_code: str, details: Optional[Any] = None
) -> dict[str, Any]:
    response: dict[str, Any] = {"success": False, "error": message, "error_code": error_code}
    if details:
        response["details"] = details
    return response


class CommandRouter:
    """Maps command names onto state machine operations.

    Example:
        >>> router = CommandRouter(machine)
        >>> await router.dispatch("getStatus")
        {'success': True, 'is_running': False, ...}
    """

    def __init__(self, machine: RotationStateMachine) -> None:
        self.machine = machine
        self._handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
            START: self._start,
            STOP: self._stop,
            STATUS: self._status,
            UPDATE_CONFIG: self._update_config,
            LOGS: self._logs,
            CLEAR_LOGS: self._clear_logs,
        }

    @staticmethod
    def canonical_name(command: str) -> str:
        return COMMAND_ALIASES.get(command, command)

    async def dispatch(
        self, command: str, payload: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """Run a command and return its response dictionary.

        Args:
            command: Command name or one of its aliases
            payload: Command arguments (update_config: entries, auto_start)

        Returns:
            Response with a ``success`` flag
        """
        handler = self._handlers.get(self.canonical_name(command))
        if handler is None:
            error = UnsupportedCommand(command)
            logger.warning(error.message)
            return error_response(error.message, error.error_code)

        try:
            return await handler(payload or {})
        except RotationError as e:
            return error_response(e.message, e.error_code, e.details)
        except Exception as e:
            logger.exception(f"Command '{command}' failed")
            return error_response(str(e), COMMAND_FAILED)

    async def _start(self, payload: dict[str, Any]) -> dict[str, Any]:
        running = await self.machine.start()
        response = {"success": running, **self.machine.status().to_dict()}
        if not running:
            response["error"] = self.machine.state.last_error or "Rotation did not start"
            response["error_code"] = self.machine.state.last_error_code or START_FAILED
        return response

    async def _stop(self, payload: dict[str, Any]) -> dict[str, Any]:
        await self.machine.stop()
        return {"success": True, **self.machine.status().to_dict()}

    async def _status(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {"success": True, **self.machine.status().to_dict()}

    async def _logs(self, payload: dict[str, Any]) -> dict[str, Any]:
        entries = self.machine.activity_log.entries()
        return {"success": True, "logs": [entry.to_dict() for entry in entries]}

    async def _clear_logs(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.machine.activity_log.clear()
        return {"success": True, "logs": []}

    async def _update_config(self, payload: dict[str, Any]) -> dict[str, Any]:
        if ENTRIES_KEY in payload:
            entries = payload[ENTRIES_KEY]
            auto_start = payload.get(AUTO_START_KEY)
        elif self.machine.store is not None:
            # settingsUpdated carries no payload: the settings were already saved
            stored = self.machine.store.get([ENTRIES_KEY, AUTO_START_KEY])
            config = RotationConfig.from_storage(stored[ENTRIES_KEY], stored[AUTO_START_KEY])
            entries = config.entries
            auto_start = config.auto_start
        else:
            return error_response("No entries supplied", INVALID_SETTINGS)

        if not isinstance(entries, list):
            return error_response("'entries' must be a list", INVALID_SETTINGS)
        if auto_start is not None and not isinstance(auto_start, bool):
            return error_response("'auto_start' must be a boolean", INVALID_SETTINGS)

        try:
            running = await self.machine.update_config(entries, auto_start)
        except SettingsValidationError as e:
            return error_response(e.message, INVALID_SETTINGS, e.validation_errors)
        except ValueError as e:
            # pydantic.ValidationError
            errors = e.errors() if hasattr(e, "errors") else None
            return error_response("Invalid rotation entries", INVALID_SETTINGS, _plain_errors(errors))

        response = {"success": True, **self.machine.status().to_dict()}
        response["is_running"] = running
        return response


def _plain_errors(errors: Optional[list[dict[str, Any]]]) -> Optional[list[str]]:
    if not errors:
        return None
    return [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}"
        for error in errors
    ]

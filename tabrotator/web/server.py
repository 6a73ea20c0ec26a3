"""HTTP control API for the rotation service."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from aiohttp import web

logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("rotation_service", object)

# HTTP status per response error code; unlisted codes on a failed response map to 500
STATUS_BY_ERROR_CODE = {
    "INVALID_SETTINGS": 400,
    "UNSUPPORTED_COMMAND": 400,
    "INVALID_REQUEST": 400,
    "NO_ENTRIES_CONFIGURED": 409,
    "MANAGED_TAB_CLOSED": 409,
    "SERVICE_STOPPED": 503,
    "COMMAND_FAILED": 500,
    "START_FAILED": 500,
    "ALL_ENTRIES_FAILED": 500,
    "PROVISION_FAILED": 500,
    "TAB_UNREACHABLE": 500,
}


class CommandTarget(Protocol):
    """Anything that dispatches rotation commands (service or router)."""

    async def dispatch(
        self, command: str, payload: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]: ...


def _http_status(response: dict[str, Any]) -> int:
    if response.get("success"):
        return 200
    return STATUS_BY_ERROR_CODE.get(response.get("error_code", ""), 500)


def _invalid_request(message: str) -> web.Response:
    return web.json_response(
        {"success": False, "error": message, "error_code": "INVALID_REQUEST"}, status=400
    )


async def _read_json_object(request: web.Request) -> Optional[dict[str, Any]]:
    try:
        data = await request.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def register_api_routes(app: web.Application, target: CommandTarget) -> None:
    """Register control API routes.

    Args:
        app: aiohttp web application
        target: Rotation service (or router) receiving the commands
    """

    async def _respond(command: str, payload: Optional[dict[str, Any]] = None) -> web.Response:
        response = await target.dispatch(command, payload)
        return web.json_response(response, status=_http_status(response))

    async def get_status(_request: web.Request) -> web.Response:
        """Current rotation status snapshot."""
        return await _respond("status")

    async def post_start(_request: web.Request) -> web.Response:
        return await _respond("start")

    async def post_stop(_request: web.Request) -> web.Response:
        return await _respond("stop")

    async def get_logs(_request: web.Request) -> web.Response:
        """Activity log entries, oldest first."""
        return await _respond("logs")

    async def delete_logs(_request: web.Request) -> web.Response:
        return await _respond("clear_logs")

    async def put_settings(request: web.Request) -> web.Response:
        """Replace rotation entries; restarts rotation if it is running."""
        data = await _read_json_object(request)
        if data is None:
            return _invalid_request("invalid json")
        if "entries" not in data:
            return _invalid_request("missing 'entries'")
        return await _respond("update_config", data)

    async def post_command(request: web.Request) -> web.Response:
        """Raw command dispatch: ``{"command": ..., "payload": {...}}``."""
        data = await _read_json_object(request)
        if data is None:
            return _invalid_request("invalid json")

        command = data.get("command") or data.get("action")
        if not isinstance(command, str) or not command:
            return _invalid_request("missing or invalid command")

        payload = data.get("payload")
        if payload is not None and not isinstance(payload, dict):
            return _invalid_request("payload must be an object")

        return await _respond(command, payload)

    app.router.add_get("/api/status", get_status)
    app.router.add_post("/api/start", post_start)
    app.router.add_post("/api/stop", post_stop)
    app.router.add_get("/api/logs", get_logs)
    app.router.add_delete("/api/logs", delete_logs)
    app.router.add_put("/api/settings", put_settings)
    app.router.add_post("/api/command", post_command)


def create_app(target: CommandTarget) -> web.Application:
    """Create the control API application."""
    app = web.Application()
    app[SERVICE_KEY] = target
    register_api_routes(app, target)
    return app


class ControlServer:
    """Runs the control API on a TCP site."""

    def __init__(self, target: CommandTarget, host: str = "127.0.0.1", port: int = 8765) -> None:
        self.target = target
        self.host = host
        self.port = port
        self._runner: Optional[web.AppRunner] = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        if self._runner is not None:
            return

        runner = web.AppRunner(create_app(self.target), access_log=None)
        await runner.setup()

        site = web.TCPSite(runner, host=self.host, port=self.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            logger.exception(f"Could not bind control API to {self.host}:{self.port}")
            raise

        self._runner = runner
        logger.info(f"Control API listening on http://{self.host}:{self.port}")

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        logger.info("Control API stopped")

"""HTTP control API."""

from .server import ControlServer, create_app, register_api_routes

__all__ = ["ControlServer", "create_app", "register_api_routes"]

"""Configuration management for TabRotator."""

from .settings import (
    BrowserSettings,
    ControlServerSettings,
    LoggingSettings,
    RotationTimingSettings,
    TabRotatorSettings,
    get_settings,
    reset_settings,
)

__all__ = [
    "BrowserSettings",
    "ControlServerSettings",
    "LoggingSettings",
    "RotationTimingSettings",
    "TabRotatorSettings",
    "get_settings",
    "reset_settings",
]

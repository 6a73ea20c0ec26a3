"""
TabRotator Settings Module.

Public API:
    RotationEntry: One URL with its display duration and reload flag
    RotationConfig: Ordered entries plus the auto-start preference
    StateStore: Persisted JSON key-value store
    SettingsError: Base exception for settings-related errors
    SettingsValidationError: Entry validation error
    StorageError: State persistence error
"""

from .exceptions import SettingsError, SettingsValidationError, StorageError
from .models import RotationConfig, RotationEntry, display_url
from .persistence import StateStore

__all__ = [
    "RotationConfig",
    "RotationEntry",
    "SettingsError",
    "SettingsValidationError",
    "StateStore",
    "StorageError",
    "display_url",
]

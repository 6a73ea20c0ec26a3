"""CLI operation modes."""

from .run import run_rotation_mode
from .status import show_logs, show_status

__all__ = ["run_rotation_mode", "show_logs", "show_status"]

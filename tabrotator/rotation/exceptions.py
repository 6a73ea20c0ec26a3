"""
Rotation-specific exceptions.

Entry-level failures (ProvisionFailed, TabUnreachable) are recovered by
advancing to the next entry. Session-level failures (NoEntriesConfigured,
ManagedTabClosed, AllEntriesFailed) stop rotation and are surfaced through
the activity log and the status snapshot.
"""

from typing import Any, Optional

from ..settings.exceptions import StorageError


class RotationError(Exception):
    """Base exception for rotation errors.

    Attributes:
        message: Error description
        error_code: Error code for categorization
        details: Additional error context
    """

    error_code = "ROTATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}


class NoEntriesConfigured(RotationError):
    """Start was refused because the rotation has no entries."""

    error_code = "NO_ENTRIES_CONFIGURED"

    def __init__(self) -> None:
        super().__init__("No rotation entries are configured")


class ProvisionFailed(RotationError):
    """An entry's tab could not be found or created."""

    error_code = "PROVISION_FAILED"

    def __init__(self, url: str, reason: Optional[str] = None) -> None:
        message = f"Could not provision a tab for {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details={"url": url})
        self.url = url


class TabUnreachable(RotationError):
    """A resolved tab could not be brought to the front."""

    error_code = "TAB_UNREACHABLE"

    def __init__(self, url: str, tab_id: str, reason: Optional[str] = None) -> None:
        message = f"Tab {tab_id} for {url} is unreachable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, details={"url": url, "tab_id": tab_id})
        self.url = url
        self.tab_id = tab_id


class ManagedTabClosed(RotationError):
    """A tab bound to a rotation entry was closed."""

    error_code = "MANAGED_TAB_CLOSED"

    def __init__(self, tab_id: str, urls: list[str]) -> None:
        super().__init__(
            f"Managed tab {tab_id} was closed", details={"tab_id": tab_id, "urls": urls}
        )
        self.tab_id = tab_id
        self.urls = urls


class AllEntriesFailed(RotationError):
    """Every entry failed to activate within one full pass."""

    error_code = "ALL_ENTRIES_FAILED"

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"All {attempts} entries failed to activate in one pass", details={"attempts": attempts}
        )
        self.attempts = attempts


class UnsupportedCommand(RotationError):
    """The command surface received an unknown command."""

    error_code = "UNSUPPORTED_COMMAND"

    def __init__(self, command: str) -> None:
        super().__init__(f"Unsupported command: {command}", details={"command": command})
        self.command = command


__all__ = [
    "AllEntriesFailed",
    "ManagedTabClosed",
    "NoEntriesConfigured",
    "ProvisionFailed",
    "RotationError",
    "StorageError",
    "TabUnreachable",
    "UnsupportedCommand",
]

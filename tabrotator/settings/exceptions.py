"""Errors raised while validating rotation entries and touching the state file."""

from typing import Optional


class SettingsError(Exception):
    """Base class for entry validation and state storage errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SettingsValidationError(SettingsError):
    """A rotation entry field holds an unusable value.

    Attributes:
        field_name: Entry field that was rejected (e.g. ``url``)
        validation_errors: One human-readable reason per problem
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        validation_errors: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.field_name = field_name
        self.validation_errors = validation_errors or [message]


class StorageError(SettingsError):
    """The state file could not be created, read or written.

    Rotation keeps running in memory; only the state for this cycle may be
    missing after a restart.

    Attributes:
        operation: ``initialize``, ``load`` or ``save``
        file_path: State file or directory involved
        original_error: Underlying OS or JSON error
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        file_path: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.file_path = file_path
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error is None:
            return self.message
        return f"{self.message} ({type(self.original_error).__name__}: {self.original_error})"

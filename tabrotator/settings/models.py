"""
Rotation settings models using Pydantic for validation and type safety.

Defines the configuration unit of a rotation (one URL, how long it stays in
front, whether it is reloaded on each visit) and the ordered collection of
entries together with the auto-start flag.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import SettingsValidationError

logger = logging.getLogger(__name__)

MIN_DURATION_SECONDS = 1
MAX_DURATION_SECONDS = 3600
DEFAULT_DURATION_SECONDS = 10
DISPLAY_URL_MAX_LENGTH = 50


def display_url(url: str, max_length: int = DISPLAY_URL_MAX_LENGTH) -> str:
    """Return a UI-safe rendition of a URL, truncated with an ellipsis suffix.

    Example:
        >>> display_url("https://example.com")
        'https://example.com'
    """
    if len(url) > max_length:
        return url[:max_length] + "..."
    return url


class RotationEntry(BaseModel):
    """A single page in the rotation sequence.

    Attributes:
        url: Web URL or file:// reference shown by this entry
        duration_seconds: Seconds the entry stays in front (1-3600)
        reload: Reload the page every time the entry is activated

    Example:
        >>> entry = RotationEntry(url="https://example.com", duration_seconds=30)
        >>> entry.to_storage()
        {'url': 'https://example.com', 'time': 30, 'reload': True}
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    url: str = Field(description="Web URL or file:// reference")

    duration_seconds: int = Field(
        default=DEFAULT_DURATION_SECONDS,
        ge=MIN_DURATION_SECONDS,
        le=MAX_DURATION_SECONDS,
        alias="time",
        description="Display duration in seconds",
    )

    reload: bool = Field(default=True, description="Reload the page on each activation")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate that the URL is present.

        Args:
            v: The URL string to validate

        Returns:
            The stripped URL

        Raises:
            SettingsValidationError: If the URL is empty
        """
        stripped = v.strip()
        if not stripped:
            raise SettingsValidationError(
                "Rotation entry URL must not be empty",
                field_name="url",
                validation_errors=["URL must not be empty"],
            )
        return stripped

    @property
    def display_url(self) -> str:
        """URL truncated for status display."""
        return display_url(self.url)

    def to_storage(self) -> dict[str, Any]:
        """Serialize using the persisted key layout (url, time, reload)."""
        return self.model_dump(by_alias=True)


class RotationConfig(BaseModel):
    """Ordered rotation entries plus the auto-start preference.

    Attributes:
        entries: Entries in rotation order; duplicates are allowed
        auto_start: Start rotating automatically when the service starts
    """

    entries: list[RotationEntry] = Field(default_factory=list)

    auto_start: bool = Field(default=True, description="Start rotation on service startup")

    @classmethod
    def from_storage(
        cls, raw_entries: Optional[list[Any]], auto_start: Optional[bool] = None
    ) -> "RotationConfig":
        """Build a config from persisted values, skipping entries that fail validation.

        Args:
            raw_entries: Entry dictionaries as stored (may be None)
            auto_start: Stored auto-start flag; None means the default (True)

        Returns:
            RotationConfig with every valid entry in stored order
        """
        entries: list[RotationEntry] = []
        for index, raw in enumerate(raw_entries or []):
            try:
                if isinstance(raw, RotationEntry):
                    entries.append(raw)
                else:
                    entries.append(RotationEntry.model_validate(raw))
            except (SettingsValidationError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid stored entry #{index}: {e}")

        return cls(entries=entries, auto_start=auto_start is not False)

    def entries_for_storage(self) -> list[dict[str, Any]]:
        return [entry.to_storage() for entry in self.entries]

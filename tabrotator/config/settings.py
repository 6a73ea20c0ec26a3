"""Settings management using Pydantic for type validation and configuration."""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..settings.models import RotationConfig

ENV_PREFIX = "TABROTATOR_"


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    # Console Logging
    console_enabled: bool = Field(default=True, description="Enable console logging")
    console_level: str = Field(
        default="INFO",
        description="Console log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    console_colors: bool = Field(
        default=True, description="Enable colored console output (auto-detected)"
    )

    # File Logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_level: str = Field(
        default="DEBUG",
        description="File log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    file_directory: Optional[str] = Field(
        default=None, description="Custom log directory (defaults to data_dir/logs)"
    )
    file_prefix: str = Field(default="tabrotator", description="Log file prefix")
    max_log_files: int = Field(default=5, description="Maximum number of log files to keep")
    include_function_names: bool = Field(
        default=True, description="Include function names and line numbers in file logs"
    )

    # Third-party Libraries
    third_party_level: str = Field(
        default="WARNING", description="Log level for third-party libraries"
    )


class BrowserSettings(BaseModel):
    """Connection to the browser's remote debugging endpoint."""

    devtools_url: str = Field(
        default="http://127.0.0.1:9222", description="Chrome DevTools HTTP endpoint"
    )
    request_timeout: float = Field(
        default=10.0, gt=0, description="Timeout for a single DevTools request in seconds"
    )
    poll_interval: float = Field(
        default=2.0, gt=0, description="Closed-tab detection interval in seconds"
    )


class RotationTimingSettings(BaseModel):
    """Delays used while provisioning and switching tabs."""

    provision_interval: float = Field(
        default=0.3, ge=0, description="Pause between opening consecutive tabs"
    )
    settle_delay: float = Field(
        default=1.5, ge=0, description="Pause after all tabs were opened"
    )
    load_wait: float = Field(
        default=1.0, ge=0, description="Pause after a missing tab was re-created"
    )
    auto_start_delay: float = Field(
        default=1.0, ge=0, description="Delay before auto-starting on service startup"
    )
    tick_interval: float = Field(default=1.0, gt=0, description="Countdown tick period")
    io_timeout: float = Field(
        default=15.0, gt=0, description="Upper bound for one browser call during activation"
    )
    full_pass_guard: bool = Field(
        default=True, description="Stop when every entry failed within one pass"
    )


class ControlServerSettings(BaseModel):
    """HTTP control API settings."""

    enabled: bool = Field(default=True, description="Serve the HTTP control API")
    host: str = Field(default="127.0.0.1", description="Control API bind address")
    port: int = Field(default=8765, ge=1, le=65535, description="Control API port")


class TabRotatorSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Private attributes
    _explicit_args: set = PrivateAttr(default_factory=set)

    # Application Settings
    app_name: str = Field(default="TabRotator", description="Application name")
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "tabrotator")
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local" / "share" / "tabrotator")

    # Sections
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    timing: RotationTimingSettings = Field(default_factory=RotationTimingSettings)
    server: ControlServerSettings = Field(default_factory=ControlServerSettings)

    # Seed rotation used when the state store holds no entries yet
    rotation: Optional[RotationConfig] = Field(
        default=None, description="Initial rotation entries and auto-start flag"
    )

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)

        # Track which arguments were explicitly provided
        self._explicit_args = set(kwargs.keys())

        # Load YAML configuration after basic initialization
        self._load_yaml_config()

    def _find_config_file(self) -> Optional[Path]:
        """Find config file, checking project directory first, then user config dir."""
        project_root = Path(__file__).parent.parent.parent
        project_config = project_root / "config" / "config.yaml"
        if project_config.exists():
            return project_config

        user_config = self.config_dir / "config.yaml"
        if user_config.exists():
            return user_config

        return None

    def _load_section(self, config_data: dict, key: str) -> None:
        """Overlay one YAML mapping onto the matching settings section."""
        section_data = config_data.get(key)
        if not isinstance(section_data, dict):
            return

        section = getattr(self, key)
        merged = section.model_dump()
        merged.update(section_data)
        setattr(self, key, type(section).model_validate(merged))

    def _load_basic_settings(self, config_data: dict) -> None:
        for setting in ("app_name", "data_dir"):
            if setting in config_data and setting not in self._explicit_args:
                value = config_data[setting]
                setattr(self, setting, Path(value).expanduser() if setting == "data_dir" else value)

    def _load_rotation_config(self, config_data: dict) -> None:
        rotation_data = config_data.get("rotation")
        if not isinstance(rotation_data, dict):
            return

        self.rotation = RotationConfig.from_storage(
            rotation_data.get("entries"), rotation_data.get("auto_start")
        )

    def _load_yaml_config(self) -> None:
        """Load configuration from YAML file if it exists."""
        config_file = self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open() as f:
                config_data = yaml.safe_load(f)

            if not config_data:
                return

            # Load configuration in logical sections
            self._load_basic_settings(config_data)
            for section in ("logging", "browser", "timing", "server"):
                if section not in self._explicit_args:
                    self._load_section(config_data, section)
            self._load_rotation_config(config_data)

        except Exception as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logging.warning(f"Could not load YAML config from {config_file}: {e}")

    @property
    def config_file(self) -> Path:
        """Path to YAML configuration file."""
        return self.config_dir / "config.yaml"

    @property
    def state_file(self) -> Path:
        """Path to the persisted rotation state."""
        return self.data_dir / "state.json"

    @property
    def log_dir(self) -> Path:
        """Directory for timestamped log files."""
        if self.logging.file_directory:
            return Path(self.logging.file_directory).expanduser()
        return self.data_dir / "logs"


# Global settings management
_settings_instance: Optional[TabRotatorSettings] = None


def get_settings() -> TabRotatorSettings:
    """Get the global settings instance, creating it lazily if needed.

    Returns:
        TabRotatorSettings: The global settings instance
    """
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = TabRotatorSettings()
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None

"""Unit tests for application settings: defaults, environment and YAML overlay."""

import os
from pathlib import Path

import pytest
import yaml

from tabrotator.config.settings import TabRotatorSettings, get_settings, reset_settings


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Clear cached settings and any TABROTATOR_ variables from the environment."""
    for name in list(os.environ):
        if name.startswith("TABROTATOR_"):
            monkeypatch.delenv(name)
    reset_settings()
    yield
    reset_settings()


def write_config(config_dir: Path, data: dict) -> None:
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.yaml").write_text(yaml.safe_dump(data), encoding="utf-8")


class TestDefaults:
    """Test default settings values."""

    def test_section_defaults(self, tmp_path):
        settings = TabRotatorSettings(config_dir=tmp_path)

        assert settings.browser.devtools_url == "http://127.0.0.1:9222"
        assert settings.server.enabled is True
        assert settings.server.port == 8765
        assert settings.timing.provision_interval == 0.3
        assert settings.timing.settle_delay == 1.5
        assert settings.timing.load_wait == 1.0
        assert settings.timing.full_pass_guard is True
        assert settings.logging.file_enabled is False
        assert settings.rotation is None

    def test_derived_paths(self, tmp_path):
        """Test state and log paths derive from data_dir."""
        settings = TabRotatorSettings(config_dir=tmp_path, data_dir=tmp_path / "data")

        assert settings.config_file == tmp_path / "config.yaml"
        assert settings.state_file == tmp_path / "data" / "state.json"
        assert settings.log_dir == tmp_path / "data" / "logs"

    def test_custom_log_directory(self, tmp_path):
        settings = TabRotatorSettings(config_dir=tmp_path)
        settings.logging.file_directory = str(tmp_path / "custom")

        assert settings.log_dir == tmp_path / "custom"


class TestEnvironmentOverrides:
    """Test TABROTATOR_ environment variables."""

    def test_nested_browser_url(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TABROTATOR_BROWSER__DEVTOOLS_URL", "http://10.0.0.5:9222")

        settings = TabRotatorSettings(config_dir=tmp_path)

        assert settings.browser.devtools_url == "http://10.0.0.5:9222"

    def test_nested_values_are_coerced(self, tmp_path, monkeypatch):
        """Test environment strings are validated into field types."""
        monkeypatch.setenv("TABROTATOR_SERVER__PORT", "9100")
        monkeypatch.setenv("TABROTATOR_SERVER__ENABLED", "false")

        settings = TabRotatorSettings(config_dir=tmp_path)

        assert settings.server.port == 9100
        assert settings.server.enabled is False


class TestYamlConfig:
    """Test the YAML configuration overlay."""

    def test_sections_are_overlaid(self, tmp_path):
        """Test YAML values replace defaults and leave the rest untouched."""
        write_config(
            tmp_path,
            {
                "timing": {"settle_delay": 0.5},
                "server": {"port": 9200},
                "browser": {"poll_interval": 5},
            },
        )

        settings = TabRotatorSettings(config_dir=tmp_path)

        assert settings.timing.settle_delay == 0.5
        assert settings.timing.provision_interval == 0.3
        assert settings.server.port == 9200
        assert settings.server.host == "127.0.0.1"
        assert settings.browser.poll_interval == 5

    def test_rotation_seed_is_loaded(self, tmp_path):
        write_config(
            tmp_path,
            {
                "rotation": {
                    "auto_start": False,
                    "entries": [
                        {"url": "https://a.example", "time": 30},
                        {"url": "file:///srv/board.html", "time": 60, "reload": False},
                    ],
                }
            },
        )

        settings = TabRotatorSettings(config_dir=tmp_path)

        assert settings.rotation.auto_start is False
        assert [entry.duration_seconds for entry in settings.rotation.entries] == [30, 60]
        assert settings.rotation.entries[1].reload is False

    def test_data_dir_from_yaml(self, tmp_path):
        write_config(tmp_path, {"data_dir": str(tmp_path / "state")})

        settings = TabRotatorSettings(config_dir=tmp_path)

        assert settings.data_dir == tmp_path / "state"

    def test_explicit_data_dir_wins_over_yaml(self, tmp_path):
        write_config(tmp_path, {"data_dir": str(tmp_path / "state")})

        settings = TabRotatorSettings(config_dir=tmp_path, data_dir=tmp_path / "explicit")

        assert settings.data_dir == tmp_path / "explicit"

    def test_malformed_yaml_falls_back_to_defaults(self, tmp_path):
        """Test a broken config file does not prevent startup."""
        (tmp_path / "config.yaml").write_text("server: [unclosed\n", encoding="utf-8")

        settings = TabRotatorSettings(config_dir=tmp_path)

        assert settings.server.port == 8765


class TestGlobalSettings:
    """Test the lazily created global settings instance."""

    def test_get_settings_is_cached_until_reset(self):
        first = get_settings()

        assert get_settings() is first

        reset_settings()
        assert get_settings() is not first

"""Tests for CLI settings resolution."""

from argparse import Namespace

import pytest

from tabrotator.cli.config import apply_cli_overrides, resolve_initial_config
from tabrotator.config.settings import TabRotatorSettings
from tabrotator.settings.models import RotationConfig, RotationEntry
from tabrotator.settings.persistence import AUTO_START_KEY, ENTRIES_KEY


@pytest.fixture
def settings(tmp_path):
    return TabRotatorSettings(config_dir=tmp_path / "config", data_dir=tmp_path / "data")


def make_args(**overrides):
    defaults = {
        "entries": None,
        "devtools_url": None,
        "host": None,
        "port": None,
        "no_server": False,
        "log_level": None,
        "verbose": False,
        "quiet": False,
        "log_dir": None,
        "no_log_colors": False,
    }
    defaults.update(overrides)
    return Namespace(**defaults)


class TestApplyCliOverrides:
    """Test command line overrides of settings."""

    def test_browser_and_server_overrides(self, settings):
        args = make_args(devtools_url="http://10.0.0.5:9222", port=9000, no_server=True)

        apply_cli_overrides(settings, args)

        assert settings.browser.devtools_url == "http://10.0.0.5:9222"
        assert settings.server.port == 9000
        assert settings.server.enabled is False
        assert settings.server.host == "127.0.0.1"

    def test_log_dir_enables_file_logging(self, settings, tmp_path):
        apply_cli_overrides(settings, make_args(log_dir=str(tmp_path / "logs"), quiet=True))

        assert settings.logging.file_enabled is True
        assert settings.logging.file_directory == str(tmp_path / "logs")
        assert settings.logging.console_level == "ERROR"


class TestResolveInitialConfig:
    """Test which rotation config is installed at startup."""

    def test_cli_entries_replace_stored_and_keep_auto_start(self, settings, store):
        """Test command line entries win and the stored auto-start flag is kept."""
        store.set({ENTRIES_KEY: [{"url": "https://old.example"}], AUTO_START_KEY: False})
        entries = [RotationEntry(url="https://new.example", duration_seconds=20)]

        config = resolve_initial_config(make_args(entries=entries), settings, store)

        assert config.entries == entries
        assert config.auto_start is False

    def test_yaml_seed_used_when_store_is_empty(self, settings, store):
        settings.rotation = RotationConfig(entries=[RotationEntry(url="https://seed.example")])

        config = resolve_initial_config(make_args(), settings, store)

        assert config is settings.rotation

    def test_stored_entries_win_over_yaml_seed(self, settings, store):
        store.set({ENTRIES_KEY: [{"url": "https://stored.example"}]})
        settings.rotation = RotationConfig(entries=[RotationEntry(url="https://seed.example")])

        assert resolve_initial_config(make_args(), settings, store) is None

    def test_nothing_configured(self, settings, store):
        assert resolve_initial_config(make_args(), settings, store) is None

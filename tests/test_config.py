"""Tests for sdd.lib.config and sdd.lib.envparse."""

import pytest
from unittest.mock import patch

from sdd.lib import envparse
from sdd.lib.config import LOG_LEVELS, SddConfig, load_config, set_config_value
from sdd.lib.errors import ConfigError


class TestLoadEnv:
    """Test the sdd.env parser."""

    def test_parses_keys_and_strips_quotes(self, tmp_path):
        env = tmp_path / "sdd.env"
        env.write_text('# comment\nSDD_A=1\nSDD_B="two"\nexport SDD_C=\'three\'\n\n')
        assert envparse.load_env(env) == {"SDD_A": "1", "SDD_B": "two", "SDD_C": "three"}

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            envparse.load_env(tmp_path / "nope.env")

    def test_line_without_equals_raises(self, tmp_path):
        env = tmp_path / "sdd.env"
        env.write_text("SDD_A\n")
        with pytest.raises(ValueError, match="Line 1"):
            envparse.load_env(env)

    def test_lowercase_key_rejected(self, tmp_path):
        env = tmp_path / "sdd.env"
        env.write_text("sdd_a=1\n")
        with pytest.raises(ValueError, match="Invalid key"):
            envparse.load_env(env)

    @pytest.mark.parametrize("value", ["`id`", "$(id)", "${HOME}", "a;b", "a && b", "a || b"])
    def test_shell_patterns_rejected(self, tmp_path, value):
        env = tmp_path / "sdd.env"
        env.write_text(f"SDD_A={value}\n")
        with pytest.raises(ValueError, match="Forbidden pattern"):
            envparse.load_env(env)


class TestLoadConfig:
    """Test load_config defaults, file values and environment overrides."""

    def test_defaults_without_sdd_dir(self):
        config = load_config(None, environ={})
        assert config == SddConfig()
        assert config.cache_enabled is True
        assert config.sync_threshold == 80.0

    def test_reads_sdd_env(self, tmp_path):
        (tmp_path / "sdd.env").write_text(
            "SDD_CACHE_ENABLED=false\nSDD_CACHE_MAX_ENTRIES=5\nSDD_SYNC_THRESHOLD=65.5\n"
        )
        config = load_config(tmp_path, environ={})
        assert config.cache_enabled is False
        assert config.cache_max_entries == 5
        assert config.sync_threshold == 65.5

    def test_environment_overrides_file(self, tmp_path):
        (tmp_path / "sdd.env").write_text("SDD_WATCH_DEBOUNCE_MS=100\n")
        config = load_config(tmp_path, environ={"SDD_WATCH_DEBOUNCE_MS": "250", "OTHER": "x"})
        assert config.watch_debounce_ms == 250

    def test_log_level_is_upper_cased(self):
        assert load_config(None, environ={"SDD_LOG_LEVEL": "debug"}).log_level == "DEBUG"

    def test_invalid_log_level_raises(self):
        with pytest.raises(ConfigError, match="SDD_LOG_LEVEL"):
            load_config(None, environ={"SDD_LOG_LEVEL": "LOUD"})

    def test_non_integer_raises(self):
        with pytest.raises(ConfigError, match="SDD_CACHE_MAX_ENTRIES"):
            load_config(None, environ={"SDD_CACHE_MAX_ENTRIES": "many"})

    def test_non_number_threshold_raises(self):
        with pytest.raises(ConfigError, match="SDD_SYNC_THRESHOLD"):
            load_config(None, environ={"SDD_SYNC_THRESHOLD": "high"})

    @patch("sdd.lib.config.envparse.load_env")
    def test_malformed_file_raises_config_error(self, mock_load_env, tmp_path):
        (tmp_path / "sdd.env").write_text("x")
        mock_load_env.side_effect = ValueError("Line 1: Invalid syntax (no '=')")
        with pytest.raises(ConfigError, match="Invalid syntax"):
            load_config(tmp_path, environ={})

    def test_serena_settings(self):
        config = load_config(None, environ={"SDD_SERENA_AVAILABLE": "yes", "SDD_SERENA_PROJECT": "demo"})
        assert config.serena_available is True
        assert config.serena_project == "demo"


class TestSetConfigValue:
    """Test set_config_value."""

    def test_appends_new_key(self, tmp_path):
        set_config_value(tmp_path, "SDD_CACHE_ENABLED", "false")
        assert (tmp_path / "sdd.env").read_text() == 'SDD_CACHE_ENABLED="false"\n'

    def test_replaces_existing_key_and_keeps_others(self, tmp_path):
        (tmp_path / "sdd.env").write_text("# settings\nSDD_CACHE_ENABLED=true\nSDD_DEFAULT_AUTHOR=ann\n")
        set_config_value(tmp_path, "SDD_CACHE_ENABLED", "false")
        lines = (tmp_path / "sdd.env").read_text().splitlines()
        assert lines == ["# settings", 'SDD_CACHE_ENABLED="false"', "SDD_DEFAULT_AUTHOR=ann"]
        assert load_config(tmp_path, environ={}).cache_enabled is False

    def test_invalid_key_raises(self, tmp_path):
        with pytest.raises(ConfigError):
            set_config_value(tmp_path, "bad-key", "1")


class TestLogLevels:
    def test_contains_standard_levels(self):
        assert LOG_LEVELS == ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

"""Unit tests for settings loading and validation."""

import pytest

from devrecap.config import Settings, load_settings, write_default_config
from devrecap.config.settings import DEFAULT_EXCLUDE_PATTERNS
from devrecap.core.exceptions import ConfigurationError


class TestDefaults:
    def test_defaults(self):
        settings = Settings()

        assert settings.default_timespan_days == 14
        assert settings.cache_ttl_hours == 168
        assert settings.cache_enabled is True
        assert settings.match_committer is False
        assert settings.max_scan_depth is None
        assert settings.exclude_patterns == DEFAULT_EXCLUDE_PATTERNS
        assert settings.api_key_configured is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DEVRECAP_DEFAULT_TIMESPAN_DAYS", "7")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-from-env")

        settings = Settings()

        assert settings.default_timespan_days == 7
        assert settings.anthropic_api_key == "sk-ant-from-env"

    def test_cache_db_path(self, tmp_path):
        settings = Settings(cache_dir=tmp_path)
        assert settings.cache_db_path == tmp_path / "summaries.db"


class TestValidateForRun:
    """Tests for Settings.validate_for_run()."""

    def test_valid(self):
        Settings(anthropic_api_key="sk-ant-abc").validate_for_run()

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="anthropic_api_key is required"):
            Settings().validate_for_run()

    def test_wrong_key_prefix(self):
        with pytest.raises(ConfigurationError, match="sk-ant-"):
            Settings(anthropic_api_key="not-a-key").validate_for_run()

    @pytest.mark.parametrize(
        "field", ["default_timespan_days", "cache_ttl_hours", "max_concurrency", "summary_max_attempts"]
    )
    def test_non_positive_values(self, field):
        settings = Settings(anthropic_api_key="sk-ant-abc", **{field: 0})
        with pytest.raises(ConfigurationError, match=field):
            settings.validate_for_run()

    def test_masked_api_key(self):
        assert Settings().masked_api_key() == "<not set>"
        masked = Settings(anthropic_api_key="sk-ant-REDACTED").masked_api_key()
        assert masked == "sk-ant-...1234"
        assert "secret" not in masked


class TestConfigFile:
    def test_write_and_load_default_config(self, tmp_path):
        path = write_default_config(tmp_path / "config.toml")

        settings = load_settings(path)

        assert settings.anthropic_api_key == "sk-ant-YOUR_API_KEY_HERE"
        assert settings.default_timespan_days == 14
        assert settings.exclude_patterns == DEFAULT_EXCLUDE_PATTERNS

    def test_refuses_to_overwrite_without_force(self, tmp_path):
        path = write_default_config(tmp_path / "config.toml")
        with pytest.raises(ConfigurationError, match="already exists"):
            write_default_config(path)
        assert write_default_config(path, force=True) == path

    def test_legacy_key_name_is_accepted(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('claude_api_key = "sk-ant-legacy"\nmax_scan_depth = 3\n')

        settings = load_settings(path)

        assert settings.anthropic_api_key == "sk-ant-legacy"
        assert settings.max_scan_depth == 3

    def test_overrides_beat_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("cache_enabled = true\n")
        assert load_settings(path, cache_enabled=False).cache_enabled is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "missing.toml")

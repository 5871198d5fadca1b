"""
Tests for configuration system.
"""

import pytest

from actwright.config import (
    CacheSettings,
    ConfigLoader,
    ExecutorSettings,
    Settings,
    get_settings,
    load_config,
    reset_settings,
)
from actwright.exceptions import ConfigurationError


class TestSettings:
    """Test the Settings classes."""

    def test_default_settings(self):
        """Test default settings are created correctly."""
        settings = Settings()

        assert settings.executor.type_delay_min_ms == 25
        assert settings.executor.type_delay_max_ms == 75
        assert settings.executor.resolve_retry_delay_ms == 250
        assert settings.cache.enabled is True
        assert settings.cache.depth_bound == 3
        assert settings.browser.headless is True
        assert settings.llm.provider == "openai"

    def test_override_settings(self):
        """Test overriding settings."""
        settings = Settings(cache=CacheSettings(depth_bound=5, path="cache.json"))

        assert settings.cache.depth_bound == 5
        assert settings.cache.path == "cache.json"

    def test_merge_with_overrides(self):
        """Test merging settings with overrides."""
        settings = Settings()
        new_settings = settings.merge_with({
            "browser": {"headless": False},
            "executor": {"type_delay_max_ms": 120},
        })

        assert new_settings.browser.headless is False
        assert new_settings.executor.type_delay_max_ms == 120
        # Other settings should remain default
        assert new_settings.executor.type_delay_min_ms == 25
        assert settings.executor.type_delay_max_ms == 75

    def test_delay_range_validation(self):
        """Test the keystroke delay bounds must be ordered."""
        assert ExecutorSettings(type_delay_min_ms=10, type_delay_max_ms=10).type_delay_max_ms == 10

        with pytest.raises(ValueError):
            ExecutorSettings(type_delay_min_ms=80, type_delay_max_ms=40)

    def test_field_bounds(self):
        with pytest.raises(ValueError):
            CacheSettings(depth_bound=-1)
        with pytest.raises(ValueError):
            ExecutorSettings(actionable_poll_ms=0)

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("ACTWRIGHT__CACHE__DEPTH_BOUND", "4")
        monkeypatch.setenv("ACTWRIGHT__LLM__MODEL", "gpt-4o-mini")

        settings = Settings()

        assert settings.cache.depth_bound == 4
        assert settings.llm.model == "gpt-4o-mini"


class TestConfigLoader:
    """Test loading settings from files and overrides."""

    def test_yaml_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "actwright.yaml"
        path.write_text("executor:\n  type_delay_min_ms: 30\ncache:\n  enabled: false\n")

        settings = ConfigLoader(path).load()

        assert settings.executor.type_delay_min_ms == 30
        assert settings.cache.enabled is False

    def test_environment_beats_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "actwright.yaml"
        path.write_text("cache:\n  depth_bound: 2\n")
        monkeypatch.setenv("ACTWRIGHT__CACHE__DEPTH_BOUND", "6")

        assert ConfigLoader(path).load().cache.depth_bound == 6

    def test_overrides_beat_everything(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "actwright.yaml"
        path.write_text("cache:\n  depth_bound: 2\n")

        settings = load_config(config_path=path, cache={"depth_bound": 7})

        assert settings.cache.depth_bound == 7

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigLoader(tmp_path / "absent.yaml").load()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("cache: [unclosed\n")

        with pytest.raises(ConfigurationError):
            ConfigLoader(path).load()

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            ConfigLoader(path).load()

    def test_empty_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "actwright.yaml"
        path.write_text("")

        assert ConfigLoader(path).load() == Settings()

    def test_global_settings_singleton(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        first = get_settings()
        assert get_settings() is first

        reset_settings()
        assert get_settings() is not first

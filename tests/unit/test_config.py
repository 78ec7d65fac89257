"""
Unit tests for configuration defaults and the settings-file overlay.
"""
import json

import pytest

from config import Config, SETTINGS_FILENAME


@pytest.fixture
def settings_dir(temp_dir, monkeypatch):
    config_dir = temp_dir / "config"
    config_dir.mkdir()
    monkeypatch.setenv("CONFIG_DIR", str(config_dir))
    for name in ("WARNING_THRESHOLD", "LLM_MODEL", "LLM_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    return config_dir


def _write_settings(config_dir, values):
    (config_dir / SETTINGS_FILENAME).write_text(json.dumps(values), encoding="utf-8")


@pytest.mark.unit
class TestConfig:

    def test_defaults(self, settings_dir):
        config = Config()
        assert config.warning_threshold == 10
        assert config.llm_temperature == 0.3

    def test_environment_threshold(self, settings_dir, monkeypatch):
        monkeypatch.setenv("WARNING_THRESHOLD", "7")
        assert Config().warning_threshold == 7

    def test_settings_file_overlay(self, settings_dir):
        _write_settings(settings_dir, {
            "_comment": "edited by the purchasing lead",
            "warning_threshold": "15",
            "llm_model": "gpt-4o-mini",
            "unknown_key": 1,
        })

        config = Config()

        assert config.warning_threshold == 15
        assert config.llm_model == "gpt-4o-mini"

    def test_environment_beats_settings_file(self, settings_dir, monkeypatch):
        _write_settings(settings_dir, {"warning_threshold": 15})
        monkeypatch.setenv("WARNING_THRESHOLD", "5")

        assert Config().warning_threshold == 5

    def test_invalid_values_ignored(self, settings_dir):
        _write_settings(settings_dir, {"warning_threshold": "soon", "llm_temperature": 0.1})

        config = Config()

        assert config.warning_threshold == 10
        assert config.llm_temperature == 0.1

    def test_broken_settings_file_ignored(self, settings_dir):
        (settings_dir / SETTINGS_FILENAME).write_text("{not json", encoding="utf-8")
        assert Config().warning_threshold == 10

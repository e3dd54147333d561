"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest

from config import OCRSettings, get_settings, load_config


class TestLoadConfig:
    """Defaults, user files and environment overrides."""

    def test_defaults(self):
        """Packaged defaults load without a user file."""
        cfg = load_config(environ={})
        assert cfg["prepare"]["max_working_dimension"] == 2600
        assert cfg["strategy"]["batch_size"] == 2
        assert cfg["debug"]["enabled"] is False

    def test_user_file_deep_merged(self, tmp_path):
        """A user file overrides single keys and keeps the rest of a section."""
        user = tmp_path / "user.toml"
        user.write_text("[strategy]\nbatch_size = 3\n\n[regions]\nmax_regions = 10\n")

        cfg = load_config(user, environ={})

        assert cfg["strategy"]["batch_size"] == 3
        assert cfg["regions"]["max_regions"] == 10
        assert cfg["regions"]["merge_distance"] == 12.0

    def test_env_overrides_with_types(self):
        """Environment values are coerced to the type of the default."""
        cfg = load_config(
            environ={
                "SCREEN_OCR_STRATEGY_BATCH_SIZE": "4",
                "SCREEN_OCR_DEBUG_ENABLED": "true",
                "SCREEN_OCR_SCORING_STRONG_MIN_RATIO": "0.7",
                "SCREEN_OCR_ENGINE_RECOGNIZER": "vision",
            }
        )
        assert cfg["strategy"]["batch_size"] == 4
        assert cfg["debug"]["enabled"] is True
        assert cfg["scoring"]["strong_min_ratio"] == pytest.approx(0.7)
        assert cfg["engine"]["recognizer"] == "vision"

    def test_invalid_env_value(self):
        """A value that cannot be coerced names the variable in the error."""
        with pytest.raises(ValueError, match="SCREEN_OCR_STRATEGY_BATCH_SIZE"):
            load_config(environ={"SCREEN_OCR_STRATEGY_BATCH_SIZE": "many"})

    def test_unknown_env_keys_ignored(self):
        """Variables for keys missing from the defaults are ignored."""
        cfg = load_config(environ={"SCREEN_OCR_STRATEGY_UNKNOWN": "1"})
        assert "unknown" not in cfg["strategy"]


class TestSettings:
    """Typed settings view."""

    def test_from_defaults(self):
        """Settings built from the default file equal the dataclass defaults."""
        settings = OCRSettings.from_config(load_config(environ={}))
        assert settings == OCRSettings()
        assert isinstance(settings.debug_output_dir, Path)

    def test_invalid_batch_size(self):
        """A batch size below one is rejected."""
        cfg = load_config(environ={})
        cfg["strategy"]["batch_size"] = 0
        with pytest.raises(ValueError, match="batch_size"):
            OCRSettings.from_config(cfg)

    def test_invalid_ratio(self):
        """Scoring ratios outside [0, 1] are rejected."""
        cfg = load_config(environ={})
        cfg["scoring"]["good_min_ratio"] = 1.5
        with pytest.raises(ValueError):
            OCRSettings.from_config(cfg)

    def test_get_settings_with_file(self, tmp_path, monkeypatch):
        """get_settings reads the given user file."""
        for key in list(os.environ):
            if key.startswith("SCREEN_OCR_"):
                monkeypatch.delenv(key)
        user = tmp_path / "user.toml"
        user.write_text('[engine]\nrecognizer = "vision"\n')
        assert get_settings(user).recognizer == "vision"

"""
Configuration Management

Defaults live in ``config.default.toml`` next to this module.  A user file can
be layered on top, and ``SCREEN_OCR_<SECTION>_<KEY>`` environment variables
override individual values last.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib as tomli
else:  # pragma: no cover
    import tomli  # type: ignore

ENV_PREFIX = "SCREEN_OCR_"


def load_config(config_path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Load the default configuration, merge ``config_path`` and env overrides."""
    cfg_path = resources.files("config").joinpath("config.default.toml")
    with cfg_path.open("rb") as f:
        config = tomli.load(f)
    if config_path:
        with config_path.open("rb") as f:
            user_cfg = tomli.load(f)
        _deep_update(config, user_cfg)
    _apply_env_overrides(config, os.environ if environ is None else environ)
    return config


def _deep_update(d: Dict[str, Any], u: Dict[str, Any]) -> Dict[str, Any]:
    for k, v in u.items():
        if isinstance(v, dict) and isinstance(d.get(k), dict):
            _deep_update(d[k], v)
        else:
            d[k] = v
    return d


def _coerce(raw: str, current: Any) -> Any:
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


def _apply_env_overrides(config: Dict[str, Any], environ) -> None:
    # Only keys that already exist in the defaults can be overridden, so the
    # value type is always known.
    for section, values in config.items():
        if not isinstance(values, dict):
            continue
        for key, current in list(values.items()):
            env_key = f"{ENV_PREFIX}{section}_{key}".upper()
            if env_key in environ:
                try:
                    values[key] = _coerce(environ[env_key], current)
                except ValueError as exc:
                    raise ValueError(f"Invalid value for {env_key}: {environ[env_key]!r}") from exc


@dataclass(frozen=True)
class OCRSettings:
    """Typed view over the loaded configuration."""

    max_working_dimension: int = 2600
    min_preprocess_area: int = 800 * 800
    dark_luminance_threshold: float = 0.45
    upscale_limit: int = 1400
    min_box_size: int = 6
    padding_min: float = 6.0
    padding_fraction: float = 0.08
    merge_distance: float = 12.0
    max_regions: int = 24
    batch_size: int = 2
    strong_min_letters: int = 8
    strong_min_ratio: float = 0.6
    good_min_ratio: float = 0.2
    recognizer: str = "tesseract"
    detector: str = "tesseract"
    tesseract_cmd: str = ""
    debug_enabled: bool = False
    debug_output_dir: Path = Path("/tmp/screen_ocr_debug")

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "OCRSettings":
        prepare = cfg.get("prepare", {})
        candidates = cfg.get("candidates", {})
        regions = cfg.get("regions", {})
        strategy = cfg.get("strategy", {})
        scoring = cfg.get("scoring", {})
        engine = cfg.get("engine", {})
        debug = cfg.get("debug", {})
        defaults = cls()
        settings = cls(
            max_working_dimension=int(prepare.get("max_working_dimension", defaults.max_working_dimension)),
            min_preprocess_area=int(prepare.get("min_preprocess_area", defaults.min_preprocess_area)),
            dark_luminance_threshold=float(
                candidates.get("dark_luminance_threshold", defaults.dark_luminance_threshold)
            ),
            upscale_limit=int(candidates.get("upscale_limit", defaults.upscale_limit)),
            min_box_size=int(regions.get("min_box_size", defaults.min_box_size)),
            padding_min=float(regions.get("padding_min", defaults.padding_min)),
            padding_fraction=float(regions.get("padding_fraction", defaults.padding_fraction)),
            merge_distance=float(regions.get("merge_distance", defaults.merge_distance)),
            max_regions=int(regions.get("max_regions", defaults.max_regions)),
            batch_size=int(strategy.get("batch_size", defaults.batch_size)),
            strong_min_letters=int(scoring.get("strong_min_letters", defaults.strong_min_letters)),
            strong_min_ratio=float(scoring.get("strong_min_ratio", defaults.strong_min_ratio)),
            good_min_ratio=float(scoring.get("good_min_ratio", defaults.good_min_ratio)),
            recognizer=str(engine.get("recognizer", defaults.recognizer)),
            detector=str(engine.get("detector", defaults.detector)),
            tesseract_cmd=str(engine.get("tesseract_cmd", defaults.tesseract_cmd)),
            debug_enabled=bool(debug.get("enabled", defaults.debug_enabled)),
            debug_output_dir=Path(debug.get("output_dir", defaults.debug_output_dir)),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raise ``ValueError`` for settings the pipeline cannot work with."""
        if self.max_working_dimension < 1:
            raise ValueError("prepare.max_working_dimension must be positive")
        if self.batch_size < 1:
            raise ValueError("strategy.batch_size must be at least 1")
        if self.max_regions < 0:
            raise ValueError("regions.max_regions must not be negative")
        if not 0.0 <= self.good_min_ratio <= 1.0 or not 0.0 <= self.strong_min_ratio <= 1.0:
            raise ValueError("scoring ratios must be within [0, 1]")


def get_settings(config_path: Optional[Path] = None) -> OCRSettings:
    """Load configuration and return validated settings."""
    return OCRSettings.from_config(load_config(config_path))


__all__ = ["ENV_PREFIX", "OCRSettings", "get_settings", "load_config"]

"""Configuration loading and defaults."""

import copy
import logging
import pathlib
from typing import Any, Dict, List, Optional, TypedDict

import yaml

from .discovery import IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)


class OutputConfig(TypedDict, total=False):
    """How upright copies are written."""

    format: str
    quality: int
    long_edge: int
    suffix: str
    overwrite: bool
    keep_exif: bool


class LoggingConfig(TypedDict, total=False):
    """Root logger level and optional log file."""

    level: str
    file: Optional[str]


class AppConfig(TypedDict, total=False):
    """Top-level application configuration."""

    input_dir: str
    exclude_dirs: List[str]
    extensions: List[str]
    output: OutputConfig
    concurrency: int
    logging: LoggingConfig


DEFAULT_CONFIG: AppConfig = {
    "input_dir": "./input",
    "exclude_dirs": ["upright"],
    "extensions": list(IMAGE_EXTENSIONS),
    "output": {
        "format": "keep",
        "quality": 92,
        "long_edge": 0,
        "suffix": "",
        "overwrite": False,
        "keep_exif": True,
    },
    "concurrency": 4,
    "logging": {"level": "INFO", "file": None},
}


def _deep_update(base: AppConfig, override: Dict[str, Any]) -> AppConfig:
    """Recursively merge override values into base and return the updated mapping."""
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def _clone_defaults() -> AppConfig:
    """Create a safe deep copy of the default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def default_config() -> AppConfig:
    """Return a deep copy of the default configuration."""
    return _clone_defaults()


def load_config(path: Optional[str]) -> AppConfig:
    """
    Load configuration from YAML if present; otherwise return defaults.

    Path resolution prefers the provided path and falls back to ``upright.yaml``.
    """
    cfg = _clone_defaults()

    cfg_path = pathlib.Path(path) if path else pathlib.Path("upright.yaml")
    if not cfg_path.exists():
        if path:
            logger.warning("Config file not found, using defaults: %s", cfg_path)
        return cfg

    with cfg_path.open("r", encoding="utf-8") as file_handle:
        loaded = yaml.safe_load(file_handle) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"{cfg_path} must contain a mapping at the top level")
    logger.debug("Loaded configuration from %s", cfg_path)
    return _deep_update(cfg, loaded)


def save_config(path: str, cfg: AppConfig) -> None:
    """Persist configuration to a YAML file."""
    cfg_path = pathlib.Path(path)
    with cfg_path.open("w", encoding="utf-8") as file_handle:
        yaml.safe_dump(dict(cfg), file_handle, sort_keys=False)

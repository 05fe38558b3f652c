"""Configuration loading with smart defaults."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

import fastjsonschema
import pyjson5

from .exceptions import ConfigError

CONFIG_DIR = Path.home() / ".gotestcolor"
CONFIG_PATH = CONFIG_DIR / "config.json"

COLOR_NAMES = ["black", "red", "green", "yellow", "blue", "magenta", "cyan", "white"]

DEFAULT_COLORS = {
    "progress": "yellow",
    "info": "cyan",
    "success": "green",
    "failure": "red",
    "skip": "blue",
    "link": "yellow",
}

_CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "log_level": {"type": "string"},
        "go_binary": {"type": "string", "minLength": 1},
        "exclude_dirs": {"type": "array", "items": {"type": "string"}},
        "count_nested_failures": {"type": "boolean"},
        "count_resolved_links": {"type": "boolean"},
        "hide_untested_packages": {"type": "boolean"},
        "loop_debounce": {"type": "number", "minimum": 0},
        "emoji": {"type": "boolean"},
        "colors": {
            "type": "object",
            "properties": {
                tag: {"enum": COLOR_NAMES} for tag in DEFAULT_COLORS
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}

_VALIDATE = fastjsonschema.compile(_CONFIG_SCHEMA)

_config: Optional[Dict[str, Any]] = None
_config_lock = threading.Lock()


def apply_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    config.setdefault("log_level", "INFO")
    config.setdefault("go_binary", "go")
    config.setdefault("exclude_dirs", ["vendor", "testdata"])
    config.setdefault("count_nested_failures", False)
    config.setdefault("count_resolved_links", False)
    config.setdefault("hide_untested_packages", False)
    config.setdefault("loop_debounce", 0.5)
    config.setdefault("emoji", True)
    colors = dict(DEFAULT_COLORS)
    colors.update(config.get("colors") or {})
    config["colors"] = colors
    return config


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Read and validate a configuration file

    Args:
        path: Config file (defaults to ~/.gotestcolor/config.json)

    Returns:
        Configuration dict with defaults applied

    Raises:
        ConfigError: If the file is not valid JSON5 or fails validation
    """
    config_path = Path(path) if path else CONFIG_PATH
    if not config_path.exists():
        if path:
            raise ConfigError(f"Config file not found: {config_path}")
        return apply_defaults({})

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            payload = pyjson5.load(handle)
    except Exception as exc:
        raise ConfigError(f"Failed to load config {config_path}: {exc}") from exc

    try:
        _VALIDATE(payload)
    except fastjsonschema.JsonSchemaValueException as exc:
        raise ConfigError(f"Invalid config {config_path}: {exc.message}") from exc

    return apply_defaults(dict(payload))


def _load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load configuration once per process"""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_config(path)
    return _config


def _reset_config() -> None:
    global _config
    with _config_lock:
        _config = None

"""Utilities for loading engine configuration files."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parents[1] / "config" / "settings.yaml"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "browser": {
        "headless": True,
        "slow_mo": 0,
        "extension_path": None,
        "user_data_dir": None,
        "launch_args": ["--no-sandbox", "--disable-dev-shm-usage"],
    },
    "timeouts": {
        "navigate_ms": 15000,
        "action_ms": 10000,
        "wait_for_selector_ms": 30000,
        "wait_ms": 1000,
        "type_delay_ms": 50,
    },
    "navigation": {"wait_until": "load"},
    "scheduler": {"max_parallel": 5, "fail_fast": False},
    "interrupts": {
        "enabled": True,
        "settle_ms": 300,
        "wait_timeout_ms": 3000,
        "ready_timeout_ms": 2000,
        "close_timeout_ms": 3000,
        "click_timeout_ms": 5000,
        "probe_timeout_ms": 5000,
        "trigger_actions": ["click"],
        "extension_id": None,
        "url_markers": ["notification", "popup", "confirm"],
        "min_content_chars": 50,
    },
    "output": {"dir": "test-output", "screenshots": True},
    "logging": {"level": "INFO", "dir": None},
}


def merge_settings(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``."""

    merged = copy.deepcopy(dict(base))
    for key, value in (override or {}).items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = merge_settings(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_settings(path: Path | str | None = None) -> Dict[str, Any]:
    """Return parsed settings YAML merged over :data:`DEFAULT_SETTINGS`.

    An explicit ``path`` must exist. The bundled default file is optional.
    """

    if path is not None:
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Missing settings file at {file_path}")
    else:
        file_path = DEFAULT_SETTINGS_PATH
        if not file_path.exists():
            return copy.deepcopy(DEFAULT_SETTINGS)
    with file_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {file_path} must contain a mapping")
    return merge_settings(DEFAULT_SETTINGS, data)


__all__ = ["DEFAULT_SETTINGS", "DEFAULT_SETTINGS_PATH", "load_settings", "merge_settings"]

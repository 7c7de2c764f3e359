"""Helpers for environment flags shared across the app."""

from __future__ import annotations

import os
from pathlib import Path

_TRUTHY = {"1", "true", "yes", "on"}


def is_mock_audio_forced() -> bool:
    """Return True when playback should run on the mock backend."""

    flag = os.environ.get("CLIPLOOP_FORCE_MOCK_AUDIO", "")
    return str(flag).strip().lower() in _TRUTHY


def resolve_config_path(default_path: Path) -> Path:
    """Pick config path based on environment overrides."""

    env_path = os.environ.get("CLIPLOOP_CONFIG_PATH")
    if env_path:
        return Path(env_path)
    env_dir = os.environ.get("CLIPLOOP_CONFIG_DIR")
    if env_dir:
        return Path(env_dir) / "settings.yaml"
    return default_path

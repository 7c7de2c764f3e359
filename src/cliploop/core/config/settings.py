"""Application configuration management module."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .crossfade import CrossfadeSettings, MAX_POLL_INTERVAL, MIN_POLL_INTERVAL
from .defaults import AUDIO_BACKENDS, DEFAULT_CONFIG, LOG_LEVELS
from .merge import merge_config
from cliploop.core.env import resolve_config_path


@dataclass
class SettingsManager:
    """YAML configuration with default values."""

    config_path: Path = Path("config/settings.yaml")

    def __post_init__(self) -> None:
        self.config_path = resolve_config_path(self.config_path)
        self._data: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        if self.config_path.exists():
            with self.config_path.open("r", encoding="utf-8") as file:
                user_config = yaml.safe_load(file) or {}
            if not isinstance(user_config, dict):
                user_config = {}
            self._data = merge_config(DEFAULT_CONFIG, user_config)
        else:
            self._data = copy.deepcopy(DEFAULT_CONFIG)

    def save(self) -> None:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with self.config_path.open("w", encoding="utf-8") as file:
            yaml.safe_dump(self._data, file, allow_unicode=False, sort_keys=True)

    def get_raw(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    def _get_float(self, section: str, key: str, *, minimum: float = 0.0) -> float:
        default = DEFAULT_CONFIG[section][key]
        value = self._data.get(section, {}).get(key, default)
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        if number < minimum:
            return default
        return number

    def _set_value(self, section: str, key: str, value: Any) -> None:
        self._data.setdefault(section, {})[key] = value

    # playback

    def get_fade_seconds(self) -> float:
        return self._get_float("playback", "fade_seconds", minimum=0.01)

    def set_fade_seconds(self, seconds: float) -> None:
        self._set_value("playback", "fade_seconds", max(0.01, float(seconds)))

    def get_lead_seconds(self) -> float:
        return self._get_float("playback", "lead_seconds", minimum=0.01)

    def set_lead_seconds(self, seconds: float) -> None:
        self._set_value("playback", "lead_seconds", max(0.01, float(seconds)))

    def get_fade_poll_interval(self) -> float:
        value = self._get_float("playback", "fade_poll_interval", minimum=0.001)
        return min(MAX_POLL_INTERVAL, max(MIN_POLL_INTERVAL, value))

    def set_fade_poll_interval(self, seconds: float) -> None:
        self._set_value("playback", "fade_poll_interval", float(seconds))

    def get_progress_interval(self) -> float:
        return self._get_float("playback", "progress_interval", minimum=0.01)

    def set_progress_interval(self, seconds: float) -> None:
        self._set_value("playback", "progress_interval", max(0.01, float(seconds)))

    def get_crossfade_settings(self) -> CrossfadeSettings:
        """Return validated crossfade timing.

        Raises `ConfigurationError` when the configured fade does not fit into
        the lead time.
        """

        return CrossfadeSettings(
            fade_seconds=self.get_fade_seconds(),
            lead_seconds=self.get_lead_seconds(),
            fade_poll_interval=self.get_fade_poll_interval(),
            progress_interval=self.get_progress_interval(),
        )

    # visibility

    def get_visibility_threshold(self) -> float:
        value = self._get_float("visibility", "threshold", minimum=0.0)
        if value <= 0.0 or value > 1.0:
            return DEFAULT_CONFIG["visibility"]["threshold"]
        return value

    def set_visibility_threshold(self, ratio: float) -> None:
        self._set_value("visibility", "threshold", min(1.0, max(0.01, float(ratio))))

    # audio

    def get_audio_backend(self) -> str:
        value = str(self._data.get("audio", {}).get("backend", DEFAULT_CONFIG["audio"]["backend"])).lower()
        if value not in AUDIO_BACKENDS:
            return DEFAULT_CONFIG["audio"]["backend"]
        return value

    def set_audio_backend(self, backend: str) -> None:
        value = str(backend).lower()
        if value not in AUDIO_BACKENDS:
            raise ValueError(f"Unknown audio backend: {backend}")
        self._set_value("audio", "backend", value)

    def get_audio_device(self) -> Optional[str]:
        value = self._data.get("audio", {}).get("device")
        if value in (None, "", False):
            return None
        return str(value)

    def set_audio_device(self, device_id: Optional[str]) -> None:
        self._set_value("audio", "device", str(device_id) if device_id else None)

    # store / library

    def get_database_path(self) -> Path:
        value = self._data.get("store", {}).get("database") or DEFAULT_CONFIG["store"]["database"]
        return Path(str(value))

    def set_database_path(self, path: Path | str) -> None:
        self._set_value("store", "database", str(path))

    def get_library_path(self) -> Optional[Path]:
        value = self._data.get("library", {}).get("path")
        if not value:
            return None
        return Path(str(value))

    def set_library_path(self, path: Path | str | None) -> None:
        self._set_value("library", "path", str(path) if path else None)

    # diagnostics

    def get_log_level(self) -> str:
        value = str(self._data.get("diagnostics", {}).get("log_level", "")).upper()
        if value not in LOG_LEVELS:
            return DEFAULT_CONFIG["diagnostics"]["log_level"]
        return value

    def set_log_level(self, level: str) -> None:
        value = str(level).upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        self._set_value("diagnostics", "log_level", value)

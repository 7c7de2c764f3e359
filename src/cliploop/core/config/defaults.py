"""Default configuration values."""

from __future__ import annotations

from typing import Any, Dict

DEFAULT_CONFIG: Dict[str, Any] = {
    "playback": {
        "fade_seconds": 1.5,
        "lead_seconds": 2.5,
        "fade_poll_interval": 0.05,
        "progress_interval": 0.1,
    },
    "visibility": {
        "threshold": 0.5,
    },
    "audio": {
        "backend": "sounddevice",
        "device": None,
    },
    "store": {
        "database": "posts.db",
    },
    "library": {
        "path": None,
    },
    "diagnostics": {
        "log_level": "WARNING",
    },
}

AUDIO_BACKENDS = ("sounddevice", "mock")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

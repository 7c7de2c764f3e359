"""Application configuration management package.

The public API is available as `cliploop.core.config` while implementation is
split into focused modules.
"""

from __future__ import annotations

from .crossfade import CrossfadeSettings
from .defaults import DEFAULT_CONFIG
from .settings import SettingsManager

__all__ = [
    "CrossfadeSettings",
    "DEFAULT_CONFIG",
    "SettingsManager",
]

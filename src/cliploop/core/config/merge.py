"""Overlay of user configuration on top of the defaults."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


def merge_config(defaults: Dict[str, Any], override: Dict[str, Any], *, path: str = "") -> Dict[str, Any]:
    """Return `defaults` with the values of `override` applied.

    A section that is a mapping in the defaults stays a mapping: a user value
    of another type (an empty `playback:` key, a scalar) is dropped with a
    warning instead of replacing the whole section.
    """

    merged: Dict[str, Any] = copy.deepcopy(defaults)
    for key, value in override.items():
        name = f"{path}.{key}" if path else str(key)
        current = merged.get(key)
        if isinstance(current, dict):
            if isinstance(value, dict):
                merged[key] = merge_config(current, value, path=name)
            else:
                logger.warning("Ignoring config section %s: expected a mapping, got %r", name, value)
            continue
        merged[key] = copy.deepcopy(value)
    return merged

"""Auto-play of the on-screen item that becomes sufficiently visible."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from cliploop.core.clip import Clip
from cliploop.core.config import SettingsManager
from cliploop.playback.session import PlaybackSession

logger = logging.getLogger(__name__)

DEFAULT_VISIBILITY_THRESHOLD = 0.5


class VisibilityController:
    """Switch playback to an item when its visibility ratio rises past the threshold.

    Falling ratios never stop playback; only a different item crossing the
    threshold upwards causes a switch. Events for the current item are
    idempotent.
    """

    def __init__(self, session: PlaybackSession, threshold: float = DEFAULT_VISIBILITY_THRESHOLD) -> None:
        if not 0.0 < threshold <= 1.0:
            raise ValueError(f"Visibility threshold must be within (0, 1], got {threshold}")
        self._session = session
        self._threshold = threshold
        self._clips: Dict[str, Clip] = {}
        self._ratios: Dict[str, float] = {}
        self._current_item_id: Optional[str] = None

    @classmethod
    def from_settings(cls, session: PlaybackSession, settings: SettingsManager) -> "VisibilityController":
        return cls(session, settings.get_visibility_threshold())

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def current_item_id(self) -> Optional[str]:
        return self._current_item_id

    def register(self, item_id: str, clip: Clip) -> None:
        self._clips[item_id] = clip
        self._ratios.setdefault(item_id, 0.0)

    async def prefetch(self, item_id: str) -> bool:
        """Load the clip of an item that is about to scroll into view."""

        clip = self._clips.get(item_id)
        if clip is None:
            return False
        return await self._session.prefetch(clip)

    def unregister(self, item_id: str) -> None:
        self._clips.pop(item_id, None)
        self._ratios.pop(item_id, None)
        if item_id == self._current_item_id:
            logger.debug("Auto-playing item %s removed, stopping playback", item_id)
            self._current_item_id = None
            self._session.visible_item_id = None
            self._session.stop()

    def on_visibility_changed(self, item_id: str, ratio: float) -> bool:
        """Handle a visibility change event; return True if playback switched."""

        ratio = min(1.0, max(0.0, float(ratio)))
        previous = self._ratios.get(item_id, 0.0)
        self._ratios[item_id] = ratio
        if item_id not in self._clips:
            logger.debug("Visibility event for unknown item %s ignored", item_id)
            return False
        crossed_upwards = previous < self._threshold <= ratio
        if not crossed_upwards or item_id == self._current_item_id:
            return False
        return self._switch_to(item_id)

    def _switch_to(self, item_id: str) -> bool:
        clip = self._clips[item_id]
        previous_item = self._current_item_id
        if previous_item is not None:
            logger.debug("Stopping auto-played item %s", previous_item)
            self._session.stop()
        self._current_item_id = item_id
        self._session.visible_item_id = item_id
        logger.info("Auto-playing item %s (%s)", item_id, clip.display_name)
        self._session.select(clip)
        return True

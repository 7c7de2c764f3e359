"""Two interchangeable playback channels with an active/inactive role."""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Optional, Tuple

from cliploop.audio.types import ChannelPlayer

logger = logging.getLogger(__name__)

PairProgressCallback = Callable[[ChannelPlayer, str, float], None]
PairFinishedCallback = Callable[[ChannelPlayer, str], None]


class ChannelPair:
    """Fixed pair of channels; the active role moves by flipping an index.

    The channels themselves are never replaced, only rebound to clips.
    """

    def __init__(self, first: ChannelPlayer, second: ChannelPlayer) -> None:
        if first is second:
            raise ValueError("ChannelPair requires two distinct channels")
        self._channels: Tuple[ChannelPlayer, ChannelPlayer] = (first, second)
        self._active_index = 0
        self._swap_count = 0

    @property
    def channels(self) -> Tuple[ChannelPlayer, ChannelPlayer]:
        return self._channels

    @property
    def active(self) -> ChannelPlayer:
        return self._channels[self._active_index]

    @property
    def inactive(self) -> ChannelPlayer:
        return self._channels[1 - self._active_index]

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def swap_count(self) -> int:
        return self._swap_count

    def index_of(self, channel: ChannelPlayer) -> int:
        for index, candidate in enumerate(self._channels):
            if candidate is channel:
                return index
        raise ValueError(f"Channel {getattr(channel, 'name', channel)!r} is not part of this pair")

    def is_active(self, channel: ChannelPlayer) -> bool:
        return channel is self.active

    def swap(self) -> None:
        self._active_index = 1 - self._active_index
        self._swap_count += 1
        logger.debug("Channel roles swapped: active=%s inactive=%s", self.active.name, self.inactive.name)

    def pause_all(self) -> None:
        for channel in self._channels:
            channel.pause()

    @staticmethod
    def reset(channel: ChannelPlayer) -> None:
        channel.pause()
        channel.seek(0.0)

    def prefetch(self, uri: str) -> None:
        for channel in self._channels:
            channel.prefetch(uri)

    def reset_all(self) -> None:
        for channel in self._channels:
            self.reset(channel)

    def unbind_all(self) -> None:
        for channel in self._channels:
            channel.pause()
            channel.unbind()

    def set_progress_callback(self, callback: Optional[PairProgressCallback]) -> None:
        for channel in self._channels:
            channel.set_progress_callback(partial(callback, channel) if callback else None)

    def set_finished_callback(self, callback: Optional[PairFinishedCallback]) -> None:
        for channel in self._channels:
            channel.set_finished_callback(partial(callback, channel) if callback else None)

    def close(self) -> None:
        for channel in self._channels:
            try:
                channel.close()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Failed to close channel %s: %s", channel.name, exc)

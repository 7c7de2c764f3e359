"""Per-clip playback session used by the UI layer."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from cliploop.core.clip import Clip, format_seconds
from cliploop.playback.loop_coordinator import LoopCoordinator, LoopState

logger = logging.getLogger(__name__)

SessionErrorCallback = Callable[[Optional[Clip], Exception], None]


class PlaybackSession:
    """Front door for user intents: select, toggle, pause, seek, stop.

    Failures of the audio engine never leave this class; they are logged,
    kept in `last_error` and reported through `on_error` while the session
    falls back to idle.
    """

    def __init__(
        self,
        coordinator: LoopCoordinator,
        *,
        on_error: Optional[SessionErrorCallback] = None,
    ) -> None:
        self._coordinator = coordinator
        self._on_error = on_error
        self._user_paused = False
        self._visible_item_id: Optional[str] = None
        self._last_error: Optional[Exception] = None
        coordinator.set_error_callback(self.record_error)

    @property
    def coordinator(self) -> LoopCoordinator:
        return self._coordinator

    @property
    def clip(self) -> Optional[Clip]:
        return self._coordinator.clip

    @property
    def state(self) -> LoopState:
        return self._coordinator.state

    @property
    def user_paused(self) -> bool:
        return self._user_paused

    @property
    def visible_item_id(self) -> Optional[str]:
        return self._visible_item_id

    @visible_item_id.setter
    def visible_item_id(self, item_id: Optional[str]) -> None:
        self._visible_item_id = item_id

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error

    def is_playing(self, clip: Optional[Clip] = None) -> bool:
        if not self._coordinator.is_running():
            return False
        return clip is None or self._is_current(clip)

    def _is_current(self, clip: Clip) -> bool:
        current = self._coordinator.clip
        return current is not None and current.id == clip.id

    # ------------------------------------------------------------------
    # intents

    async def prefetch(self, clip: Clip) -> bool:
        """Download and decode `clip` on a worker thread ahead of `select`.

        Sources are loaded synchronously when a channel is bound; prefetching
        keeps that I/O off the event loop so running fades are not stalled.
        Returns False (and records the error) when the source cannot be loaded.
        """

        try:
            await asyncio.to_thread(self._coordinator.pair.prefetch, clip.playable_uri)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Prefetching %s failed: %s", clip.display_name, exc)
            self.record_error(clip, exc)
            return False
        return True

    def select(self, clip: Clip) -> bool:
        """Start looping `clip`, replacing whatever was playing."""

        if self._is_current(clip):
            if self._coordinator.is_running():
                return True
            if self._coordinator.state is LoopState.PAUSED:
                return self.resume()
        self._user_paused = False
        self._last_error = None
        started = self._guarded(self._coordinator.start, clip, clip=clip)
        return bool(started) and self._coordinator.is_running()

    def toggle(self, clip: Clip) -> bool:
        """Pause `clip` if it is playing, otherwise (re)start it.

        Returns True when the clip is playing afterwards.
        """

        if self._is_current(clip):
            if self._coordinator.is_running():
                self.pause()
                return False
            if self._coordinator.state is LoopState.PAUSED:
                return self.resume()
        return self.select(clip)

    def pause(self) -> None:
        if not self._coordinator.is_running():
            return
        self._guarded(self._coordinator.pause)
        self._user_paused = True

    def resume(self) -> bool:
        if self._coordinator.state is not LoopState.PAUSED:
            return self._coordinator.is_running()
        resumed = self._guarded(self._coordinator.resume)
        if resumed:
            self._user_paused = False
        return bool(resumed)

    def stop(self) -> None:
        self._guarded(self._coordinator.stop)
        self._user_paused = False

    def seek(self, seconds: float) -> None:
        self._guarded(self._coordinator.seek, seconds)

    # ------------------------------------------------------------------
    # readouts

    def elapsed(self) -> float:
        return self._coordinator.elapsed()

    def duration(self) -> Optional[float]:
        return self._coordinator.duration()

    def progress_fraction(self) -> float:
        return self._coordinator.progress_fraction()

    def progress_display(self) -> str:
        if self._coordinator.clip is None:
            return "--:-- / --:--"
        return f"{format_seconds(self.elapsed())} / {format_seconds(self.duration())}"

    # ------------------------------------------------------------------

    def record_error(self, clip: Optional[Clip], exc: Exception) -> None:
        """Error listener for the coordinator; also used for local failures."""

        self._last_error = exc
        self._user_paused = False
        if self._on_error:
            try:
                self._on_error(clip, exc)
            except Exception as callback_exc:  # pylint: disable=broad-except
                logger.error("Session error callback failed: %s", callback_exc)

    def _guarded(self, action: Callable, *args, clip: Optional[Clip] = None):
        try:
            return action(*args)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Playback action %s failed", getattr(action, "__name__", action))
            failed_clip = clip or self._coordinator.clip
            try:
                self._coordinator.stop()
            except Exception:  # pylint: disable=broad-except
                logger.exception("Failed to reset playback after error")
            self.record_error(failed_clip, exc)
            return None

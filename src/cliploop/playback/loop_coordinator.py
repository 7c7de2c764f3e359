"""Loop coordinator: crossfades a clip into itself at the loop boundary.

The coordinator watches the progress ticks of the active channel. Once the
remaining time drops to the configured lead time it starts the inactive
channel at the clip start, fades it in while fading the active channel out,
and swaps the channel roles on the spot so that readouts follow the channel
that is becoming audible.

All methods and callbacks run on one event loop; the crossfade guard is a
plain flag that only keeps a single boundary crossing from triggering twice.
It is released as soon as both fades are dispatched, not when they finish,
so under heavy timer delay a second trigger may fire before the previous
fade-out is audibly over.
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import partial
from typing import Callable, Optional

from cliploop.audio.channel_pair import ChannelPair
from cliploop.audio.fader import Fader
from cliploop.audio.types import ChannelPlayer, FadeDirection
from cliploop.core.clip import Clip
from cliploop.core.config import CrossfadeSettings
from cliploop.core.errors import SourceUnavailableError

logger = logging.getLogger(__name__)


class LoopState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    CROSSFADING = "crossfading"
    PAUSED = "paused"


_RUNNING_STATES = (LoopState.PLAYING, LoopState.CROSSFADING)

StateCallback = Callable[[LoopState, LoopState], None]
ProgressCallback = Callable[[Clip, float, Optional[float]], None]
ErrorCallback = Callable[[Clip, Exception], None]


class LoopCoordinator:
    def __init__(
        self,
        pair: ChannelPair,
        fader: Fader,
        settings: CrossfadeSettings,
        *,
        on_state_changed: Optional[StateCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._pair = pair
        self._fader = fader
        self._settings = settings
        self._on_state_changed = on_state_changed
        self._on_progress = on_progress
        self._on_error = on_error
        self._state = LoopState.IDLE
        self._clip: Optional[Clip] = None
        self._guard = False
        self._crossfade_count = 0
        pair.set_progress_callback(self._on_channel_progress)
        pair.set_finished_callback(self._on_channel_finished)

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def clip(self) -> Optional[Clip]:
        return self._clip

    @property
    def pair(self) -> ChannelPair:
        return self._pair

    @property
    def settings(self) -> CrossfadeSettings:
        return self._settings

    @property
    def guard_engaged(self) -> bool:
        return self._guard

    @property
    def crossfade_count(self) -> int:
        return self._crossfade_count

    def is_running(self) -> bool:
        return self._state in _RUNNING_STATES

    def set_error_callback(self, callback: Optional[ErrorCallback]) -> None:
        self._on_error = callback

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        self._on_progress = callback

    def set_state_callback(self, callback: Optional[StateCallback]) -> None:
        self._on_state_changed = callback

    # ------------------------------------------------------------------
    # transport

    def start(self, clip: Clip) -> bool:
        """Bind `clip` to the active channel and start it with a fade-in.

        Returns False when the source could not be played; the coordinator
        is then back in `IDLE` and the error listener has been notified.
        """

        if self._state is not LoopState.IDLE:
            self.stop()
        self._clip = clip
        active = self._pair.active
        try:
            active.bind(clip.id, clip.playable_uri, duration_hint=clip.duration_seconds)
            active.seek(0.0)
            active.set_volume(0.0)
            active.play()
        except SourceUnavailableError as exc:
            self._fail(clip, exc)
            return False
        self._fader.start_fade(active, FadeDirection.IN, self._settings.fade_seconds)
        self._set_state(LoopState.PLAYING)
        logger.info("Loop started: %s on channel %s", clip.display_name, active.name)
        return True

    def pause(self) -> None:
        if self._state not in _RUNNING_STATES:
            return
        crossfade_pending = self._state is LoopState.CROSSFADING
        self._fader.cancel_all()
        self._pair.pause_all()
        self._guard = False
        if crossfade_pending:
            # the fade-out that would have retired this channel was cancelled
            self._pair.reset(self._pair.inactive)
        self._set_state(LoopState.PAUSED)

    def resume(self) -> bool:
        if self._state is not LoopState.PAUSED or self._clip is None:
            return False
        clip = self._clip
        try:
            self._pair.active.play()
        except SourceUnavailableError as exc:
            self._fail(clip, exc)
            return False
        self._guard = False
        self._set_state(LoopState.PLAYING)
        return True

    def stop(self) -> None:
        self._fader.cancel_all()
        self._guard = False
        if self._clip is not None:
            self._pair.reset_all()
            self._pair.unbind_all()
            logger.info("Loop stopped: %s", self._clip.display_name)
        self._clip = None
        self._set_state(LoopState.IDLE)

    def seek(self, seconds: float) -> None:
        self._guard = False
        if self._clip is None:
            return
        self._pair.active.seek(max(0.0, float(seconds)))

    # ------------------------------------------------------------------
    # readouts

    def elapsed(self) -> float:
        if self._clip is None:
            return 0.0
        return self._pair.active.get_position()

    def duration(self) -> Optional[float]:
        if self._clip is None:
            return None
        duration = self._pair.active.get_duration()
        if duration:
            return duration
        return self._clip.duration_seconds

    def progress_fraction(self) -> float:
        duration = self.duration()
        if not duration:
            return 0.0
        return min(1.0, max(0.0, self.elapsed() / duration))

    # ------------------------------------------------------------------
    # channel notifications

    def _is_current(self, channel: ChannelPlayer, clip_id: str) -> bool:
        return (
            self._clip is not None
            and clip_id == self._clip.id
            and channel.bound_clip_id() == clip_id
        )

    def _on_channel_progress(self, channel: ChannelPlayer, clip_id: str, seconds: float) -> None:
        if not self._is_current(channel, clip_id):
            logger.debug("Stale progress tick from %s (%s) discarded", channel.name, clip_id)
            return
        if channel is not self._pair.active:
            return
        self._notify_progress(seconds)
        self._check_crossfade(seconds)

    def _on_channel_finished(self, channel: ChannelPlayer, clip_id: str) -> None:
        if not self._is_current(channel, clip_id) or channel is not self._pair.active:
            return
        if self._state not in _RUNNING_STATES:
            return
        # reached the end without a crossfade (duration unknown or too short)
        logger.info("Channel %s reached the end, restarting loop without crossfade", channel.name)
        self._guard = False
        channel.seek(0.0)
        try:
            channel.play()
        except SourceUnavailableError as exc:
            self._fail(self._clip, exc)

    def _check_crossfade(self, position: float) -> None:
        if self._state not in _RUNNING_STATES:
            return
        if self._guard:
            logger.debug("Crossfade already triggered for this boundary, ignoring tick")
            return
        active = self._pair.active
        if not active.is_playing():
            return
        duration = active.get_duration()
        if not duration or duration <= self._settings.lead_seconds:
            return
        if duration - position > self._settings.lead_seconds:
            return
        self._begin_crossfade()

    def _begin_crossfade(self) -> None:
        clip = self._clip
        if clip is None:
            return
        self._guard = True
        try:
            outgoing = self._pair.active
            incoming = self._pair.inactive
            try:
                incoming.bind(clip.id, clip.playable_uri, duration_hint=clip.duration_seconds)
                incoming.seek(0.0)
                incoming.set_volume(0.0)
                incoming.play()
            except SourceUnavailableError as exc:
                self._fail(clip, exc)
                return
            fade = self._settings.fade_seconds
            self._fader.start_fade(
                outgoing,
                FadeDirection.OUT,
                fade,
                on_complete=partial(self._retire, outgoing, clip.id),
            )
            self._fader.start_fade(incoming, FadeDirection.IN, fade)
            self._pair.swap()
            self._crossfade_count += 1
            self._set_state(LoopState.CROSSFADING)
            logger.info(
                "Crossfade #%d: %s -> %s (%.2fs)",
                self._crossfade_count,
                outgoing.name,
                incoming.name,
                fade,
            )
        finally:
            self._guard = False

    def _retire(self, channel: ChannelPlayer, clip_id: str) -> None:
        if not self._is_current(channel, clip_id) or channel is self._pair.active:
            return
        self._pair.reset(channel)
        if self._state is LoopState.CROSSFADING:
            self._set_state(LoopState.PLAYING)

    # ------------------------------------------------------------------
    # helpers

    def _fail(self, clip: Clip, exc: Exception) -> None:
        logger.warning("Playback of %s failed: %s", clip.display_name, exc)
        self.stop()
        if self._on_error:
            try:
                self._on_error(clip, exc)
            except Exception as callback_exc:  # pylint: disable=broad-except
                logger.error("Error callback failed: %s", callback_exc)

    def _set_state(self, state: LoopState) -> None:
        previous = self._state
        if previous is state:
            return
        self._state = state
        logger.debug("Loop state %s -> %s", previous.value, state.value)
        if self._on_state_changed:
            try:
                self._on_state_changed(previous, state)
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("State callback failed: %s", exc)

    def _notify_progress(self, seconds: float) -> None:
        if not self._on_progress or self._clip is None:
            return
        try:
            self._on_progress(self._clip, seconds, self.duration())
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Progress callback failed: %s", exc)

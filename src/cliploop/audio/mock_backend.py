"""Mock audio backend used by tests and fallback flows."""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Callable, Iterable, List, Optional

from cliploop.audio.types import (
    AudioDevice,
    BackendType,
    ChannelPlayer,
    FinishedCallback,
    ProgressCallback,
    Scheduler,
    TimerHandle,
    clamp_volume,
)
from cliploop.core.errors import SourceUnavailableError

logger = logging.getLogger(__name__)

# Timers due within this margin of the target are fired by `advance`.
_DUE_EPSILON = 1e-9


class ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic virtual clock.

    Nothing runs until `advance()` is called; timers then fire in due order and
    observe their own due time through `now()`.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._queue: list[tuple[float, int, ManualTimer]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = ManualTimer(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.due, next(self._counter), timer))
        return timer

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None:
        self.call_later(0.0, callback)

    def pending(self) -> int:
        return sum(1 for _due, _seq, timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> None:
        target = self._now + max(0.0, seconds)
        while self._queue and self._queue[0][0] <= target + _DUE_EPSILON:
            due, _seq, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = max(self._now, due)
            timer.callback()
        self._now = max(self._now, target)

    def run_pending(self) -> None:
        self.advance(0.0)


class MockChannelPlayer:
    """Simulated playback channel driven by a scheduler.

    The duration stays unknown until playback is first requested, mirroring
    media elements that report it only once loading starts.
    """

    def __init__(
        self,
        name: str,
        scheduler: Scheduler,
        *,
        progress_interval: float = 0.1,
        default_duration: Optional[float] = 30.0,
        failing_uris: Iterable[str] = (),
    ) -> None:
        self.name = name
        self._scheduler = scheduler
        self._progress_interval = progress_interval
        self._default_duration = default_duration
        self.failing_uris = set(failing_uris)
        self._clip_id: Optional[str] = None
        self._uri: Optional[str] = None
        self._duration_hint: Optional[float] = None
        self._duration: Optional[float] = None
        self._volume = 1.0
        self._position = 0.0
        self._playing = False
        self._last_update = 0.0
        self._timer: Optional[TimerHandle] = None
        self._on_progress: Optional[ProgressCallback] = None
        self._on_finished: Optional[FinishedCallback] = None
        self.volume_history: List[float] = []
        self.prefetched: List[str] = []
        self.play_calls = 0

    def bound_clip_id(self) -> Optional[str]:
        return self._clip_id

    def prefetch(self, uri: str) -> None:
        if uri in self.failing_uris:
            raise SourceUnavailableError(uri, "simulated failure")
        self.prefetched.append(uri)

    def bind(self, clip_id: str, uri: str, *, duration_hint: Optional[float] = None) -> None:
        if self._uri != uri:
            self._duration = None
        self._stop_timer()
        self._playing = False
        self._clip_id = clip_id
        self._uri = uri
        self._duration_hint = duration_hint
        self._position = 0.0
        logger.debug("[MOCK] %s bound to %s (%s)", self.name, clip_id, uri)

    def unbind(self) -> None:
        self._stop_timer()
        self._playing = False
        self._clip_id = None
        self._uri = None
        self._duration = None
        self._position = 0.0

    def play(self) -> None:
        if self._clip_id is None or self._uri is None:
            raise SourceUnavailableError("<unbound>", f"channel {self.name} has no clip")
        if self._uri in self.failing_uris:
            raise SourceUnavailableError(self._uri, "simulated failure")
        if self._duration is None:
            self._duration = self._duration_hint or self._default_duration
        if self._playing:
            return
        self.play_calls += 1
        self._playing = True
        self._last_update = self._scheduler.now()
        self._schedule_tick()
        logger.debug("[MOCK] %s playing %s at %.3f", self.name, self._clip_id, self._position)

    def pause(self) -> None:
        if self._playing:
            self._advance_position()
        self._playing = False
        self._stop_timer()

    def is_playing(self) -> bool:
        return self._playing

    def get_volume(self) -> float:
        return self._volume

    def set_volume(self, value: float) -> None:
        self._volume = clamp_volume(value)
        self.volume_history.append(self._volume)

    def get_position(self) -> float:
        if self._playing:
            self._advance_position()
        return self._position

    def seek(self, seconds: float) -> None:
        position = max(0.0, float(seconds))
        if self._duration is not None:
            position = min(position, self._duration)
        self._position = position
        self._last_update = self._scheduler.now()

    def get_duration(self) -> Optional[float]:
        return self._duration

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        self._on_progress = callback

    def set_finished_callback(self, callback: Optional[FinishedCallback]) -> None:
        self._on_finished = callback

    def close(self) -> None:
        self.unbind()
        self._on_progress = None
        self._on_finished = None

    def _advance_position(self) -> None:
        now = self._scheduler.now()
        self._position += max(0.0, now - self._last_update)
        self._last_update = now
        if self._duration is not None:
            self._position = min(self._position, self._duration)

    def _schedule_tick(self) -> None:
        self._timer = self._scheduler.call_later(self._progress_interval, self._tick)

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _tick(self) -> None:
        self._timer = None
        if not self._playing or self._clip_id is None:
            return
        self._advance_position()
        clip_id = self._clip_id
        ended = self._duration is not None and self._position >= self._duration
        if ended:
            self._playing = False
        else:
            self._schedule_tick()
        if self._on_progress:
            try:
                self._on_progress(clip_id, self._position)
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("Progress callback error: %s", exc)
        if ended and self._on_finished and self._clip_id == clip_id:
            try:
                self._on_finished(clip_id)
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("Finished callback error: %s", exc)


class MockBackendProvider:
    """Backend for tests and machines without audio devices."""

    backend = BackendType.MOCK

    def __init__(
        self,
        label: str = "Mock Device",
        *,
        progress_interval: float = 0.1,
        default_duration: Optional[float] = 30.0,
    ) -> None:
        self._label = label
        self._progress_interval = progress_interval
        self._default_duration = default_duration

    def list_devices(self) -> List[AudioDevice]:
        return [
            AudioDevice(
                id="mock:default",
                name=self._label,
                backend=self.backend,
                raw_index=None,
                is_default=True,
            )
        ]

    def create_channel(self, device: AudioDevice, name: str, scheduler: Scheduler) -> ChannelPlayer:
        del device
        return MockChannelPlayer(
            name,
            scheduler,
            progress_interval=self._progress_interval,
            default_duration=self._default_duration,
        )

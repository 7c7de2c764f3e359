"""Linear volume ramps driven by scheduler polling."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from cliploop.audio.types import ChannelPlayer, FadeDirection, Scheduler, TimerHandle, clamp_volume

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.05
# Absorbs floating-point drift of timer due times against the fade end.
_ELAPSED_EPSILON = 1e-6


@dataclass
class FadeJob:
    direction: FadeDirection
    channel: ChannelPlayer
    clip_id: Optional[str]
    start_volume: float
    duration: float
    started_at: float
    on_complete: Optional[Callable[[], None]] = None
    timer: Optional[TimerHandle] = field(default=None, repr=False)
    finished: bool = False

    @property
    def target_volume(self) -> float:
        return 1.0 if self.direction is FadeDirection.IN else 0.0

    def volume_at(self, elapsed: float) -> float:
        if self.duration <= 0.0:
            return self.target_volume
        fraction = elapsed / self.duration
        if self.direction is FadeDirection.IN:
            return clamp_volume(fraction)
        return clamp_volume(self.start_volume * (1.0 - fraction))


class Fader:
    """Run at most one fade job per direction.

    Fade-in and fade-out are independent timelines with their own timer
    handles; starting a job replaces only the job of the same direction.
    """

    def __init__(self, scheduler: Scheduler, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._scheduler = scheduler
        self._poll_interval = poll_interval
        self._jobs: Dict[FadeDirection, FadeJob] = {}

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    def job(self, direction: FadeDirection) -> Optional[FadeJob]:
        return self._jobs.get(direction)

    def is_fading(self, direction: Optional[FadeDirection] = None) -> bool:
        if direction is None:
            return bool(self._jobs)
        return direction in self._jobs

    def start_fade(
        self,
        channel: ChannelPlayer,
        direction: FadeDirection,
        duration_seconds: float,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> FadeJob:
        self.cancel(direction)
        if direction is FadeDirection.IN:
            start_volume = 0.0
            channel.set_volume(0.0)
        else:
            start_volume = clamp_volume(channel.get_volume())
        job = FadeJob(
            direction=direction,
            channel=channel,
            clip_id=channel.bound_clip_id(),
            start_volume=start_volume,
            duration=max(0.0, float(duration_seconds)),
            started_at=self._scheduler.now(),
            on_complete=on_complete,
        )
        self._jobs[direction] = job
        logger.debug(
            "Fade %s started on %s: %.3f -> %.1f over %.3fs",
            direction.value,
            channel.name,
            start_volume,
            job.target_volume,
            job.duration,
        )
        if job.duration <= 0.0:
            self._finish(job)
        else:
            job.timer = self._scheduler.call_later(self._poll_interval, lambda: self._tick(job))
        return job

    def cancel(self, direction: FadeDirection) -> None:
        job = self._jobs.pop(direction, None)
        if job is None:
            return
        if job.timer is not None:
            job.timer.cancel()
            job.timer = None
        logger.debug("Fade %s on %s cancelled", direction.value, job.channel.name)

    def cancel_all(self) -> None:
        for direction in list(self._jobs):
            self.cancel(direction)

    def _is_stale(self, job: FadeJob) -> bool:
        if self._jobs.get(job.direction) is not job:
            return True
        return job.channel.bound_clip_id() != job.clip_id

    def _tick(self, job: FadeJob) -> None:
        job.timer = None
        if self._is_stale(job):
            logger.debug("Stale fade %s tick on %s discarded", job.direction.value, job.channel.name)
            if self._jobs.get(job.direction) is job:
                self._jobs.pop(job.direction, None)
            return
        elapsed = self._scheduler.now() - job.started_at
        if elapsed + _ELAPSED_EPSILON >= job.duration:
            self._finish(job)
            return
        job.channel.set_volume(job.volume_at(elapsed))
        job.timer = self._scheduler.call_later(self._poll_interval, lambda: self._tick(job))

    def _finish(self, job: FadeJob) -> None:
        job.channel.set_volume(job.target_volume)
        job.finished = True
        if self._jobs.get(job.direction) is job:
            self._jobs.pop(job.direction, None)
        logger.debug("Fade %s on %s complete", job.direction.value, job.channel.name)
        callback, job.on_complete = job.on_complete, None
        if callback is not None:
            try:
                callback()
            except Exception:  # pylint: disable=broad-except
                logger.exception("Fade completion callback failed")

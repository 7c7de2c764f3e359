"""Sounddevice channel implementation.

The clip is decoded into memory once per URI (shared between both channels of
a pair); the PortAudio callback copies frames scaled by the current volume.
Progress and end-of-clip notifications are produced by a scheduler timer so
that engine callbacks always run on the event loop thread.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from pathlib import Path
from threading import Lock
from typing import List, Optional, Tuple

from cliploop.audio.transcoding import fetch_source, read_audio_with_transcoding
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

try:
    import sounddevice as sd
except (ImportError, OSError):  # pragma: no cover - environments without PortAudio
    sd = None

try:
    import soundfile as sf
except (ImportError, OSError):  # pragma: no cover - environments without libsndfile
    sf = None

try:
    import numpy as np
except ImportError:  # pragma: no cover - numpy is installed with soundfile
    np = None


class ClipBufferCache:
    """Decoded clips keyed by URI, bounded to the most recent few."""

    def __init__(self, max_entries: int = 4) -> None:
        self._max_entries = max(1, max_entries)
        self._entries: "OrderedDict[str, Tuple[object, int]]" = OrderedDict()
        self._lock = Lock()

    def get(self, uri: str) -> Tuple[object, int]:
        with self._lock:
            entry = self._entries.get(uri)
            if entry is not None:
                self._entries.move_to_end(uri)
                return entry
        entry = self._load(uri)
        with self._lock:
            self._entries[uri] = entry
            self._entries.move_to_end(uri)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
        return entry

    @staticmethod
    def _load(uri: str) -> Tuple[object, int]:
        if sf is None:
            raise SourceUnavailableError(uri, "soundfile unavailable")
        path, temporary = fetch_source(uri)
        try:
            data, samplerate = read_audio_with_transcoding(path, sf=sf)
        finally:
            if temporary:
                Path(path).unlink(missing_ok=True)
        if len(data) == 0:
            raise SourceUnavailableError(uri, "clip contains no audio")
        logger.debug("Decoded %s: %d frames @ %d Hz", uri, len(data), samplerate)
        return data, int(samplerate)


class SoundDeviceChannel:
    """Channel playing an in-memory clip through a sounddevice output stream."""

    def __init__(
        self,
        name: str,
        device: AudioDevice,
        scheduler: Scheduler,
        *,
        cache: Optional[ClipBufferCache] = None,
        progress_interval: float = 0.1,
        stream_kwargs: Optional[dict] = None,
    ) -> None:
        if sd is None:
            raise RuntimeError("sounddevice unavailable")
        if np is None:
            raise RuntimeError("numpy unavailable")
        self.name = name
        self.device = device
        self._scheduler = scheduler
        self._cache = cache or ClipBufferCache()
        self._progress_interval = progress_interval
        self._stream_kwargs = stream_kwargs or {}
        self._lock = Lock()
        self._clip_id: Optional[str] = None
        self._uri: Optional[str] = None
        self._data = None
        self._samplerate = 0
        self._frame = 0
        self._gain = 1.0
        self._playing = False
        self._stream = None
        self._timer: Optional[TimerHandle] = None
        self._on_progress: Optional[ProgressCallback] = None
        self._on_finished: Optional[FinishedCallback] = None

    def bound_clip_id(self) -> Optional[str]:
        return self._clip_id

    def prefetch(self, uri: str) -> None:
        # download + decode into the shared cache; safe from a worker thread
        self._cache.get(uri)

    def bind(self, clip_id: str, uri: str, *, duration_hint: Optional[float] = None) -> None:
        del duration_hint  # real duration comes from the decoded clip
        self.pause()
        if uri != self._uri:
            self._close_stream()
            data, samplerate = self._cache.get(uri)
            with self._lock:
                self._data = data
                self._samplerate = samplerate
                self._uri = uri
        with self._lock:
            self._frame = 0
        self._clip_id = clip_id

    def unbind(self) -> None:
        self.pause()
        self._close_stream()
        with self._lock:
            self._data = None
            self._samplerate = 0
            self._frame = 0
        self._clip_id = None
        self._uri = None

    def play(self) -> None:
        if self._data is None or self._clip_id is None:
            raise SourceUnavailableError(self._uri or "<unbound>", f"channel {self.name} has no clip")
        if self._playing:
            return
        try:
            if self._stream is None:
                self._stream = sd.OutputStream(
                    device=self.device.raw_index,
                    samplerate=self._samplerate,
                    channels=self._data.shape[1],
                    dtype="float32",
                    callback=self._fill,
                    **self._stream_kwargs,
                )
            self._stream.start()
        except Exception as exc:  # pylint: disable=broad-except
            self._close_stream()
            raise SourceUnavailableError(self._uri or "<unbound>", f"output stream failed: {exc}") from exc
        self._playing = True
        self._schedule_tick()

    def pause(self) -> None:
        self._playing = False
        self._stop_timer()
        if self._stream is not None:
            try:
                self._stream.stop()
            except Exception as exc:  # pylint: disable=broad-except
                logger.debug("Stopping stream on %s failed: %s", self.name, exc)

    def is_playing(self) -> bool:
        return self._playing

    def get_volume(self) -> float:
        with self._lock:
            return self._gain

    def set_volume(self, value: float) -> None:
        with self._lock:
            self._gain = clamp_volume(value)

    def get_position(self) -> float:
        with self._lock:
            if not self._samplerate:
                return 0.0
            return self._frame / self._samplerate

    def seek(self, seconds: float) -> None:
        with self._lock:
            if self._data is None or not self._samplerate:
                return
            frame = int(max(0.0, float(seconds)) * self._samplerate)
            self._frame = min(frame, len(self._data))

    def get_duration(self) -> Optional[float]:
        with self._lock:
            if self._data is None or not self._samplerate:
                return None
            return len(self._data) / self._samplerate

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        self._on_progress = callback

    def set_finished_callback(self, callback: Optional[FinishedCallback]) -> None:
        self._on_finished = callback

    def close(self) -> None:
        self.unbind()
        self._on_progress = None
        self._on_finished = None

    # PortAudio thread
    def _fill(self, outdata, frames, _time, status) -> None:
        if status:
            logger.debug("Stream status on %s: %s", self.name, status)
        with self._lock:
            data = self._data
            start = self._frame
            gain = self._gain
            if data is None:
                outdata.fill(0)
                return
            end = min(start + frames, len(data))
            self._frame = end
        count = end - start
        if count > 0:
            outdata[:count] = data[start:end] * gain
        if count < frames:
            outdata[count:] = 0

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.debug("Closing stream on %s failed: %s", self.name, exc)

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
        clip_id = self._clip_id
        position = self.get_position()
        duration = self.get_duration() or 0.0
        ended = duration > 0.0 and position >= duration
        if ended:
            self.pause()
        else:
            self._schedule_tick()
        if self._on_progress:
            try:
                self._on_progress(clip_id, position)
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("Progress callback error: %s", exc)
        if ended and self._on_finished and self._clip_id == clip_id:
            try:
                self._on_finished(clip_id)
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("Finished callback error: %s", exc)


class SoundDeviceBackend:
    """Output devices exposed by PortAudio through sounddevice."""

    backend = BackendType.SOUNDDEVICE

    def __init__(self, *, progress_interval: float = 0.1) -> None:
        self._progress_interval = progress_interval
        self._cache = ClipBufferCache()

    @property
    def is_available(self) -> bool:
        return sd is not None and sf is not None and np is not None

    def list_devices(self) -> List[AudioDevice]:
        if not self.is_available:
            return []
        devices: List[AudioDevice] = []
        try:
            default_output = sd.default.device[1]
            for index, info in enumerate(sd.query_devices()):
                if int(info.get("max_output_channels", 0)) <= 0:
                    continue
                devices.append(
                    AudioDevice(
                        id=f"{self.backend.value}:{index}",
                        name=str(info.get("name", f"Device {index}")),
                        backend=self.backend,
                        raw_index=index,
                        is_default=index == default_output,
                    )
                )
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Enumerating sounddevice outputs failed: %s", exc)
        return devices

    def create_channel(self, device: AudioDevice, name: str, scheduler: Scheduler) -> ChannelPlayer:
        return SoundDeviceChannel(
            name,
            device,
            scheduler,
            cache=self._cache,
            progress_interval=self._progress_interval,
        )

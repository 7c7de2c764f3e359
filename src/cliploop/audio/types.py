"""Audio engine type definitions.

Kept apart from the backends so that the engine can be imported without
pulling in sounddevice/numpy when only the shared types are needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol

ProgressCallback = Callable[[str, float], None]
FinishedCallback = Callable[[str], None]


class BackendType(Enum):
    SOUNDDEVICE = "sounddevice"
    MOCK = "mock"


class FadeDirection(Enum):
    IN = "in"
    OUT = "out"


@dataclass
class AudioDevice:
    id: str
    name: str
    backend: BackendType
    raw_index: Optional[int] = None
    is_default: bool = False


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Single-threaded event loop the engine runs on."""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None: ...


class ChannelPlayer(Protocol):
    """Playback primitive for one of the two loop channels."""

    name: str

    def bound_clip_id(self) -> Optional[str]: ...

    def prefetch(self, uri: str) -> None:
        """Load `uri` so that a later `bind` does not block; may run off the event loop."""

    def bind(self, clip_id: str, uri: str, *, duration_hint: Optional[float] = None) -> None: ...

    def unbind(self) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def is_playing(self) -> bool: ...

    def get_volume(self) -> float: ...

    def set_volume(self, value: float) -> None: ...

    def get_position(self) -> float: ...

    def seek(self, seconds: float) -> None: ...

    def get_duration(self) -> Optional[float]: ...

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None: ...

    def set_finished_callback(self, callback: Optional[FinishedCallback]) -> None: ...

    def close(self) -> None: ...


class BackendProvider(Protocol):
    backend: BackendType

    def list_devices(self) -> List[AudioDevice]: ...

    def create_channel(self, device: AudioDevice, name: str, scheduler: Scheduler) -> ChannelPlayer: ...


def clamp_volume(value: float) -> float:
    return min(1.0, max(0.0, float(value)))

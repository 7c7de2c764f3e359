"""Looped clip playback façade.

Public surface:
- `LoopCoordinator` / `LoopState`
- `PlaybackSession`
- `VisibilityController`
"""

from __future__ import annotations

from cliploop.playback.loop_coordinator import LoopCoordinator, LoopState
from cliploop.playback.session import PlaybackSession
from cliploop.playback.visibility import VisibilityController

__all__ = [
    "LoopCoordinator",
    "LoopState",
    "PlaybackSession",
    "VisibilityController",
]

"""Scheduler adapter running the engine on an asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class AsyncioScheduler:
    """Expose `asyncio` timers through the engine's `Scheduler` protocol.

    All engine state is mutated from callbacks of this loop only; backends
    running on audio threads must go through `call_soon_threadsafe`.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._loop.call_later(max(0.0, delay), self._guarded(callback))

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None:
        if self._loop.is_closed():
            logger.debug("Event loop closed, dropping callback %r", callback)
            return
        self._loop.call_soon_threadsafe(self._guarded(callback))

    @staticmethod
    def _guarded(callback: Callable[[], None]) -> Callable[[], None]:
        def _run() -> None:
            try:
                callback()
            except Exception:  # pylint: disable=broad-except
                logger.exception("Scheduled callback failed")

        return _run

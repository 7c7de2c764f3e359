"""Crossfade timing parameters."""

from __future__ import annotations

from dataclasses import dataclass

from cliploop.core.errors import ConfigurationError

MIN_POLL_INTERVAL = 0.02
MAX_POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class CrossfadeSettings:
    """Timing of the loop crossfade.

    The crossfade is triggered once the remaining time on the active channel
    drops to `lead_seconds`; both fades last `fade_seconds`. The lead time must
    cover the fade, otherwise the fade-out would be cut by the loop end.
    """

    fade_seconds: float = 1.5
    lead_seconds: float = 2.5
    fade_poll_interval: float = 0.05
    progress_interval: float = 0.1

    def __post_init__(self) -> None:
        if self.fade_seconds <= 0.0:
            raise ConfigurationError(f"fade_seconds must be positive, got {self.fade_seconds}")
        if self.lead_seconds < self.fade_seconds:
            raise ConfigurationError(
                f"lead_seconds ({self.lead_seconds}) must not be shorter than "
                f"fade_seconds ({self.fade_seconds})"
            )
        if not MIN_POLL_INTERVAL <= self.fade_poll_interval <= MAX_POLL_INTERVAL:
            raise ConfigurationError(
                f"fade_poll_interval must be within [{MIN_POLL_INTERVAL}, {MAX_POLL_INTERVAL}] s, "
                f"got {self.fade_poll_interval}"
            )
        if self.progress_interval <= 0.0:
            raise ConfigurationError(f"progress_interval must be positive, got {self.progress_interval}")

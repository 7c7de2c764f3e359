"""Error taxonomy shared by the audio engine and its collaborators."""

from __future__ import annotations


class CliploopError(Exception):
    """Base class for errors raised by cliploop."""


class ConfigurationError(CliploopError, ValueError):
    """Invalid engine configuration detected during initialisation."""


class SourceUnavailableError(CliploopError, RuntimeError):
    """The playable URI of a clip could not be loaded or played."""

    def __init__(self, uri: str, reason: str | None = None) -> None:
        self.uri = uri
        self.reason = reason
        message = f"Source unavailable: {uri}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class StoreError(CliploopError):
    """Post-music store failure."""

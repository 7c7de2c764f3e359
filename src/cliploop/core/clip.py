"""Clip data model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


def format_seconds(seconds: Optional[float]) -> str:
    if seconds is None or seconds < 0:
        return "--:--"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def _optional_str(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    return str(value)


def _optional_duration(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        duration = float(value)
    except (TypeError, ValueError):
        return None
    if duration <= 0.0:
        return None
    return duration


@dataclass(frozen=True)
class Clip:
    """Short playable clip selected for looped playback.

    `duration_seconds` is the nominal duration reported by the source and may
    be approximate or missing; the channel reports the real one once loaded.
    """

    id: str
    playable_uri: str
    title: str = ""
    artist: Optional[str] = None
    album: Optional[str] = None
    cover_image_uri: Optional[str] = None
    duration_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Clip id is required")
        if not self.playable_uri:
            raise ValueError("Clip playable_uri is required")

    @property
    def display_name(self) -> str:
        title = self.title or self.id
        if self.artist:
            return f"{self.artist} - {title}"
        return title

    @property
    def duration_display(self) -> str:
        return format_seconds(self.duration_seconds)

    @classmethod
    def from_catalog_result(cls, result: Mapping[str, Any]) -> "Clip":
        """Build a clip from a catalog search result.

        Accepts the catalog field names (`artistName`, `playableUri`, ...) as
        well as their snake_case spelling.
        """

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in result and result[key] not in (None, ""):
                    return result[key]
            return None

        clip_id = pick("id", "trackId", "track_id")
        uri = pick("playableUri", "playable_uri", "previewUrl", "preview_url")
        if clip_id is None or uri is None:
            raise ValueError("Catalog result lacks id or playable URI")
        return cls(
            id=str(clip_id),
            playable_uri=str(uri),
            title=str(pick("title", "trackName") or ""),
            artist=_optional_str(pick("artistName", "artist_name", "artist")),
            album=_optional_str(pick("albumTitle", "album_title", "album")),
            cover_image_uri=_optional_str(pick("coverImageUri", "cover_image_uri", "artworkUrl")),
            duration_seconds=_optional_duration(pick("durationSeconds", "duration_seconds", "duration")),
        )

    def to_catalog_result(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "artistName": self.artist,
            "albumTitle": self.album,
            "coverImageUri": self.cover_image_uri,
            "playableUri": self.playable_uri,
            "durationSeconds": self.duration_seconds,
        }

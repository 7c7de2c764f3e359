"""Clip sources: where selectable clips come from."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional, Protocol

from mutagen import File as MutagenFile

from cliploop.core.clip import Clip

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".mp3", ".wav", ".ogg", ".flac", ".m4a", ".aac", ".opus")


class ClipSource(Protocol):
    def search(self, query: str, limit: int = 20) -> List[Clip]: ...


@dataclass(slots=True)
class ClipMetadata:
    title: str
    duration_seconds: Optional[float]
    artist: Optional[str] = None
    album: Optional[str] = None


def _tag_text(tags: Any, *keys: str) -> Optional[str]:
    for key in keys:
        try:
            tag = tags.get(key)
        except Exception:  # pylint: disable=broad-except
            tag = None
        if not tag:
            continue
        # mutagen returns frames with a text attribute, lists or plain strings
        value = getattr(tag, "text", tag)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value:
            return str(value)
    return None


def extract_clip_metadata(path: Path) -> ClipMetadata:
    """Return title/artist/album/duration of an audio file.

    If reading metadata fails, fall back to the file name and unknown duration.
    """

    title = path.stem
    artist: Optional[str] = None
    album: Optional[str] = None
    duration: Optional[float] = None
    try:
        audio = MutagenFile(path)
        if audio is None:
            return ClipMetadata(title=title, duration_seconds=None)
        if audio.tags:
            title = _tag_text(audio.tags, "TIT2", "title", "\xa9nam") or title
            artist = _tag_text(audio.tags, "TPE1", "artist", "\xa9ART")
            album = _tag_text(audio.tags, "TALB", "album", "\xa9alb")
        length = getattr(getattr(audio, "info", None), "length", None)
        if length:
            duration = float(length)
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Failed to read metadata %s: %s", path, exc)
    return ClipMetadata(title=title, duration_seconds=duration, artist=artist, album=album)


def clip_from_file(path: Path) -> Clip:
    resolved = path.resolve()
    metadata = extract_clip_metadata(resolved)
    clip_id = hashlib.sha1(str(resolved).encode("utf-8")).hexdigest()[:16]
    return Clip(
        id=clip_id,
        playable_uri=str(resolved),
        title=metadata.title,
        artist=metadata.artist,
        album=metadata.album,
        duration_seconds=metadata.duration_seconds,
    )


class LocalClipSource:
    """Search audio files of a local directory by title, artist or album."""

    def __init__(self, directory: Path, extensions: Iterable[str] = SUPPORTED_EXTENSIONS) -> None:
        self._directory = Path(directory)
        self._extensions = tuple(ext.lower() for ext in extensions)
        self._clips: Optional[List[Clip]] = None

    @property
    def directory(self) -> Path:
        return self._directory

    def refresh(self) -> None:
        clips: List[Clip] = []
        if not self._directory.is_dir():
            logger.warning("Clip library %s does not exist", self._directory)
        else:
            for path in sorted(self._directory.rglob("*")):
                if path.is_file() and path.suffix.lower() in self._extensions:
                    clips.append(clip_from_file(path))
        self._clips = clips
        logger.debug("Indexed %d clips in %s", len(clips), self._directory)

    def search(self, query: str, limit: int = 20) -> List[Clip]:
        if self._clips is None:
            self.refresh()
        needle = query.strip().lower()
        results: List[Clip] = []
        for clip in self._clips or []:
            haystack = " ".join(filter(None, (clip.title, clip.artist, clip.album))).lower()
            if not needle or needle in haystack:
                results.append(clip)
            if len(results) >= limit:
                break
        return results

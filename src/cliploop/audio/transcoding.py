"""Helpers for fetching and transcoding clip sources for playback."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import urllib.request
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

from cliploop.core.errors import SourceUnavailableError

logger = logging.getLogger(__name__)

TRANSCODE_EXTENSIONS = {
    ".aac",
    ".m4a",
    ".m4v",
    ".mp2",
    ".mp3",
    ".mp4",
    ".mpeg",
    ".mpg",
}

DOWNLOAD_TIMEOUT = 30
DOWNLOAD_BLOCK_SIZE = 65536
USER_AGENT = "cliploop/0.1"


def is_remote(uri: str) -> bool:
    return urlparse(uri).scheme in {"http", "https"}


def fetch_source(uri: str, *, timeout: float = DOWNLOAD_TIMEOUT) -> Tuple[Path, bool]:
    """Return a local path for `uri` and whether it is a temporary download."""

    parsed = urlparse(uri)
    if parsed.scheme in {"http", "https"}:
        return _download(uri, timeout=timeout), True
    if parsed.scheme == "file":
        path = Path(unquote(parsed.path))
    else:
        path = Path(uri)
    if not path.exists():
        raise SourceUnavailableError(uri, "file not found")
    return path, False


def _download(uri: str, *, timeout: float) -> Path:
    suffix = Path(urlparse(uri).path).suffix or ".audio"
    fd, temp_name = tempfile.mkstemp(suffix=suffix, prefix="cliploop-")
    os.close(fd)
    target = Path(temp_name)
    request = urllib.request.Request(uri, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response, target.open("wb") as file:
            while True:
                chunk = response.read(DOWNLOAD_BLOCK_SIZE)
                if not chunk:
                    break
                file.write(chunk)
    except (OSError, ValueError) as exc:
        target.unlink(missing_ok=True)
        raise SourceUnavailableError(uri, str(exc)) from exc
    logger.debug("Downloaded %s to %s", uri, target)
    return target


def transcode_source_to_wav(source: Path) -> Path:
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise SourceUnavailableError(str(source), "FFmpeg is required to play this format")
    fd, temp_name = tempfile.mkstemp(suffix=".wav", prefix="cliploop-")
    os.close(fd)
    target = Path(temp_name)
    cmd = [
        ffmpeg,
        "-y",
        "-i",
        str(source),
        "-vn",
        "-acodec",
        "pcm_s16le",
        "-ar",
        "48000",
        "-ac",
        "2",
        str(target),
    ]
    try:
        subprocess.run(cmd, check=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except FileNotFoundError as exc:  # pragma: no cover - depends on environment
        target.unlink(missing_ok=True)
        raise SourceUnavailableError(str(source), "FFmpeg not found in PATH") from exc
    except subprocess.CalledProcessError as exc:
        target.unlink(missing_ok=True)
        raise SourceUnavailableError(str(source), f"FFmpeg could not decode {source.name}") from exc
    return target


def read_audio_with_transcoding(
    path: Path,
    *,
    sf,
    transcode_extensions: Optional[set[str]] = None,
):
    """Decode `path` into a float32 (frames, channels) array.

    Returns `(data, samplerate)`. Containers libsndfile cannot read are
    transcoded to a temporary WAV first.
    """

    if transcode_extensions is None:
        transcode_extensions = TRANSCODE_EXTENSIONS

    try:
        return sf.read(str(path), dtype="float32", always_2d=True)
    except Exception as exc:  # pylint: disable=broad-except
        if path.suffix.lower() not in transcode_extensions:
            raise SourceUnavailableError(str(path), str(exc)) from exc
    wav_path = transcode_source_to_wav(path)
    try:
        return sf.read(str(wav_path), dtype="float32", always_2d=True)
    except Exception as exc:  # pylint: disable=broad-except
        raise SourceUnavailableError(str(path), "could not read transcoded audio") from exc
    finally:
        wav_path.unlink(missing_ok=True)

"""Command-line entry point for cliploop."""

from __future__ import annotations

import argparse
import asyncio
import hashlib
import logging
import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from cliploop.audio.engine import AudioEngine
from cliploop.audio.fader import Fader
from cliploop.audio.scheduler import AsyncioScheduler
from cliploop.audio.types import Scheduler
from cliploop.core.clip import Clip
from cliploop.core.clip_source import LocalClipSource, clip_from_file
from cliploop.core.config import SettingsManager
from cliploop.core.errors import CliploopError
from cliploop.core.post_store import PostMusicMapping, PostMusicStore
from cliploop.playback import LoopCoordinator, PlaybackSession

logger = logging.getLogger(__name__)

READOUT_INTERVAL = 0.5


def _configure_logging(level_override: Optional[str] = None) -> Optional[Path]:
    env_level = os.environ.get("LOGLEVEL")
    level_name = (env_level or level_override or "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)

    primary_dir = Path.cwd() / "logs"
    fallback_dir = Path(tempfile.gettempdir()) / "cliploop_logs"
    logs_dir = primary_dir
    log_path: Path | None = None

    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        logs_dir = fallback_dir
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            logging.basicConfig(level=level)
            return None

    try:
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        log_path = logs_dir / f"cliploop-{timestamp}.log"
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        file_handler.setFormatter(formatter)
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logging.basicConfig(level=level, handlers=[file_handler, stream_handler])
    except OSError:
        logging.basicConfig(level=level)
    if log_path:
        logger.info("Writing log to %s", log_path)
        if logs_dir is fallback_dir:
            logger.warning("Using fallback log directory %s", logs_dir)
    return log_path


def build_session(
    settings: SettingsManager,
    scheduler: Scheduler,
    *,
    backend: Optional[str] = None,
    device_id: Optional[str] = None,
) -> PlaybackSession:
    """Wire engine, channels, fader and coordinator into a playback session.

    Raises `ConfigurationError` when the crossfade timing is inconsistent.
    """

    crossfade = settings.get_crossfade_settings()
    engine = AudioEngine(
        backend=backend or settings.get_audio_backend(),
        progress_interval=crossfade.progress_interval,
    )
    pair = engine.create_channel_pair(scheduler, device_id or settings.get_audio_device())
    fader = Fader(scheduler, crossfade.fade_poll_interval)
    coordinator = LoopCoordinator(pair, fader, crossfade)
    return PlaybackSession(coordinator)


def clip_from_source(source: str, *, title: Optional[str] = None, duration: Optional[float] = None) -> Clip:
    path = Path(source)
    if path.exists():
        clip = clip_from_file(path)
        if title or duration:
            clip = Clip(
                id=clip.id,
                playable_uri=clip.playable_uri,
                title=title or clip.title,
                artist=clip.artist,
                album=clip.album,
                duration_seconds=duration or clip.duration_seconds,
            )
        return clip
    clip_id = hashlib.sha1(source.encode("utf-8")).hexdigest()[:16]
    name = title or Path(source.split("?", 1)[0]).stem or source
    return Clip(id=clip_id, playable_uri=source, title=name, duration_seconds=duration)


async def _loop_clip(
    settings: SettingsManager,
    clip: Clip,
    *,
    backend: Optional[str],
    device_id: Optional[str],
    seconds: Optional[float],
) -> int:
    scheduler = AsyncioScheduler()
    session = build_session(settings, scheduler, backend=backend, device_id=device_id)
    try:
        if not await session.prefetch(clip) or not session.select(clip):
            print(f"Cannot play {clip.display_name}: {session.last_error}", file=sys.stderr)
            return 1
        print(f"Looping {clip.display_name} (Ctrl+C to stop)")
        deadline = scheduler.now() + seconds if seconds else None
        while session.is_playing():
            print(f"\r{session.progress_display()}", end="", flush=True)
            if deadline is not None and scheduler.now() >= deadline:
                break
            await asyncio.sleep(READOUT_INTERVAL)
        print()
    finally:
        session.stop()
        session.coordinator.pair.close()
    if session.last_error is not None:
        print(f"Playback failed: {session.last_error}", file=sys.stderr)
        return 1
    return 0


def _run_loop(settings: SettingsManager, clip: Clip, args: argparse.Namespace) -> int:
    backend = "mock" if args.mock else None
    try:
        return asyncio.run(
            _loop_clip(settings, clip, backend=backend, device_id=args.device, seconds=args.seconds)
        )
    except KeyboardInterrupt:
        print()
        return 130


def _cmd_play(args: argparse.Namespace, settings: SettingsManager) -> int:
    clip = clip_from_source(args.source, title=args.title, duration=args.duration)
    return _run_loop(settings, clip, args)


def _cmd_play_post(args: argparse.Namespace, settings: SettingsManager) -> int:
    with PostMusicStore(settings.get_database_path()) as store:
        mapping = store.get(args.post_id)
    if mapping is None:
        print(f"No music stored for post {args.post_id}", file=sys.stderr)
        return 1
    return _run_loop(settings, mapping.to_clip(), args)


def _cmd_devices(args: argparse.Namespace, settings: SettingsManager) -> int:
    engine = AudioEngine(backend="mock" if args.mock else settings.get_audio_backend())
    for device in engine.get_devices():
        marker = "*" if device.is_default else " "
        print(f"{marker} {device.id}\t{device.name}")
    return 0


def _cmd_search(args: argparse.Namespace, settings: SettingsManager) -> int:
    library = Path(args.library) if args.library else settings.get_library_path()
    if library is None:
        print("No clip library configured (use --library)", file=sys.stderr)
        return 1
    source = LocalClipSource(library)
    for clip in source.search(args.query, limit=args.limit):
        print(f"{clip.id}\t{clip.duration_display}\t{clip.display_name}\t{clip.playable_uri}")
    return 0


def _print_mapping(mapping: PostMusicMapping) -> None:
    created = datetime.fromtimestamp(mapping.created_at / 1000).strftime("%Y-%m-%d %H:%M:%S")
    print(
        f"{mapping.post_id}\t{mapping.track_id}\t{mapping.track_artist or '-'} - "
        f"{mapping.track_title or '-'}\t{created}"
    )


def _cmd_posts(args: argparse.Namespace, settings: SettingsManager) -> int:
    with PostMusicStore(settings.get_database_path()) as store:
        if args.posts_command == "list":
            for mapping in store.list_mappings():
                _print_mapping(mapping)
            return 0
        if args.posts_command == "show":
            mapping = store.get(args.post_id)
            if mapping is None:
                print(f"No music stored for post {args.post_id}", file=sys.stderr)
                return 1
            for key, value in mapping.as_dict().items():
                print(f"{key}: {value}")
            return 0
        if args.posts_command == "add":
            clip = clip_from_source(args.source, title=args.title, duration=args.duration)
            mapping = PostMusicMapping.from_clip(args.post_id, clip)
            if args.track_id:
                mapping.track_id = args.track_id
            mapping.track_artist = args.artist or mapping.track_artist
            mapping.track_album = args.album or mapping.track_album
            mapping.track_album_art = args.cover or mapping.track_album_art
            _print_mapping(store.upsert(mapping))
            return 0
        if args.posts_command == "delete":
            if not store.delete(args.post_id):
                print(f"No music stored for post {args.post_id}", file=sys.stderr)
                return 1
            return 0
    return 2


def _add_playback_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--device", default=None, help="Output device id (see 'devices')")
    parser.add_argument("--seconds", type=float, default=None, help="Stop after this many seconds")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cliploop", description="Seamless looped clip playback")
    parser.add_argument("--config", default=None, help="Path to settings.yaml")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Override the configured log level",
    )
    parser.add_argument("--mock", action="store_true", help="Use the mock audio backend")
    sub = parser.add_subparsers(dest="command", required=True)

    play = sub.add_parser("play", help="Loop a clip file or URL with crossfades")
    play.add_argument("source")
    play.add_argument("--title", default=None)
    play.add_argument("--duration", type=float, default=None, help="Nominal clip duration in seconds")
    _add_playback_args(play)
    play.set_defaults(handler=_cmd_play)

    play_post = sub.add_parser("play-post", help="Loop the clip attached to a post")
    play_post.add_argument("post_id")
    _add_playback_args(play_post)
    play_post.set_defaults(handler=_cmd_play_post)

    devices = sub.add_parser("devices", help="List output devices")
    devices.set_defaults(handler=_cmd_devices)

    search = sub.add_parser("search", help="Search the local clip library")
    search.add_argument("query")
    search.add_argument("--library", default=None)
    search.add_argument("--limit", type=int, default=20)
    search.set_defaults(handler=_cmd_search)

    posts = sub.add_parser("posts", help="Manage music attached to posts")
    posts_sub = posts.add_subparsers(dest="posts_command", required=True)
    posts_sub.add_parser("list")
    show = posts_sub.add_parser("show")
    show.add_argument("post_id")
    add = posts_sub.add_parser("add")
    add.add_argument("post_id")
    add.add_argument("source")
    add.add_argument("--track-id", default=None)
    add.add_argument("--title", default=None)
    add.add_argument("--artist", default=None)
    add.add_argument("--album", default=None)
    add.add_argument("--cover", default=None)
    add.add_argument("--duration", type=float, default=None)
    delete = posts_sub.add_parser("delete")
    delete.add_argument("post_id")
    posts.set_defaults(handler=_cmd_posts)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = SettingsManager(Path(args.config)) if args.config else SettingsManager()
    _configure_logging(args.log_level or settings.get_log_level())
    try:
        return args.handler(args, settings)
    except (CliploopError, ValueError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()

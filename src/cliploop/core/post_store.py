"""SQLite store mapping user posts to the clip attached to them."""

from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from cliploop.core.clip import Clip
from cliploop.core.errors import StoreError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS post_music (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    post_id TEXT NOT NULL UNIQUE,
    track_id TEXT NOT NULL,
    track_title TEXT,
    track_artist TEXT,
    track_album TEXT,
    track_album_art TEXT,
    track_preview_url TEXT,
    track_duration REAL,
    created_at INTEGER NOT NULL
)
"""

_COLUMNS = (
    "id",
    "post_id",
    "track_id",
    "track_title",
    "track_artist",
    "track_album",
    "track_album_art",
    "track_preview_url",
    "track_duration",
    "created_at",
)

# Columns missing from tables created by older releases of the post service.
_ADDED_COLUMNS = (
    ("track_preview_url", "TEXT"),
    ("track_duration", "REAL"),
)


@dataclass
class PostMusicMapping:
    post_id: str
    track_id: str
    track_title: Optional[str] = None
    track_artist: Optional[str] = None
    track_album: Optional[str] = None
    track_album_art: Optional[str] = None
    track_preview_url: Optional[str] = None
    track_duration: Optional[float] = None
    created_at: int = 0
    id: Optional[int] = None

    @classmethod
    def from_clip(cls, post_id: str, clip: Clip) -> "PostMusicMapping":
        return cls(
            post_id=post_id,
            track_id=clip.id,
            track_title=clip.title or None,
            track_artist=clip.artist,
            track_album=clip.album,
            track_album_art=clip.cover_image_uri,
            track_preview_url=clip.playable_uri,
            track_duration=clip.duration_seconds,
        )

    def to_clip(self) -> Clip:
        """Rebuild the clip stored with the post; requires a playable URL."""

        if not self.track_preview_url:
            raise ValueError(f"Post {self.post_id} has no playable track URL")
        return Clip(
            id=self.track_id,
            playable_uri=self.track_preview_url,
            title=self.track_title or "",
            artist=self.track_artist,
            album=self.track_album,
            cover_image_uri=self.track_album_art,
            duration_seconds=self.track_duration,
        )

    def as_dict(self) -> dict[str, Any]:
        return {column: getattr(self, column) for column in _COLUMNS}


class PostMusicStore:
    """CRUD over the `post_music` table.

    Usage:
        store = PostMusicStore(Path("posts.db"))
        store.upsert(PostMusicMapping.from_clip("post-1", clip))
        clip = store.get("post-1").to_clip()
    """

    def __init__(self, database: Path | str) -> None:
        self._database = str(database)
        if self._database != ":memory:":
            Path(self._database).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(self._database)
            self._conn.row_factory = sqlite3.Row
            with self._conn:
                self._conn.execute(_SCHEMA)
                self._migrate()
        except sqlite3.Error as exc:
            raise StoreError(f"Opening database {self._database} failed: {exc}") from exc
        logger.info("Post store ready at %s", self._database)

    def _migrate(self) -> None:
        existing = {row["name"] for row in self._conn.execute("PRAGMA table_info(post_music)")}
        for column, column_type in _ADDED_COLUMNS:
            if column in existing:
                continue
            logger.info("Adding column %s to post_music", column)
            self._conn.execute(f"ALTER TABLE post_music ADD COLUMN {column} {column_type}")

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "PostMusicStore":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()

    @staticmethod
    def _row_to_mapping(row: sqlite3.Row) -> PostMusicMapping:
        return PostMusicMapping(**{column: row[column] for column in _COLUMNS})

    def list_mappings(self) -> List[PostMusicMapping]:
        try:
            rows = self._conn.execute("SELECT * FROM post_music ORDER BY created_at DESC, id DESC").fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Fetching post-music mappings failed: {exc}") from exc
        return [self._row_to_mapping(row) for row in rows]

    def get(self, post_id: str) -> Optional[PostMusicMapping]:
        try:
            row = self._conn.execute("SELECT * FROM post_music WHERE post_id = ?", (post_id,)).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Fetching music for post {post_id} failed: {exc}") from exc
        return self._row_to_mapping(row) if row else None

    def upsert(self, mapping: PostMusicMapping) -> PostMusicMapping:
        """Add or replace the music of a post and return the stored row."""

        if not mapping.post_id or not mapping.track_id:
            raise ValueError("post_id and track_id are required")
        created_at = int(time.time() * 1000)
        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT OR REPLACE INTO post_music (
                        post_id, track_id, track_title, track_artist, track_album,
                        track_album_art, track_preview_url, track_duration, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        mapping.post_id,
                        mapping.track_id,
                        mapping.track_title or None,
                        mapping.track_artist or None,
                        mapping.track_album or None,
                        mapping.track_album_art or None,
                        mapping.track_preview_url or None,
                        mapping.track_duration,
                        created_at,
                    ),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Adding music to post {mapping.post_id} failed: {exc}") from exc
        stored = self.get(mapping.post_id)
        if stored is None:
            raise StoreError(f"Mapping for post {mapping.post_id} vanished after insert")
        return stored

    def delete(self, post_id: str) -> bool:
        try:
            with self._conn:
                cursor = self._conn.execute("DELETE FROM post_music WHERE post_id = ?", (post_id,))
        except sqlite3.Error as exc:
            raise StoreError(f"Deleting music of post {post_id} failed: {exc}") from exc
        return cursor.rowcount > 0

from __future__ import annotations

import sqlite3

import pytest

from cliploop.core.clip import Clip
from cliploop.core.post_store import PostMusicMapping, PostMusicStore

CLIP = Clip(
    id="track-1",
    playable_uri="https://example.com/preview/track-1.m4a",
    title="Sunrise",
    artist="Band",
    album="Mornings",
    cover_image_uri="https://example.com/art/track-1.jpg",
    duration_seconds=30.0,
)


@pytest.fixture()
def store(tmp_path):
    with PostMusicStore(tmp_path / "db" / "posts.db") as opened:
        yield opened


def test_upsert_and_get(store):
    stored = store.upsert(PostMusicMapping.from_clip("post-1", CLIP))

    assert stored.id is not None
    assert stored.created_at > 0
    assert stored.track_title == "Sunrise"

    fetched = store.get("post-1")
    assert fetched == stored
    assert fetched.to_clip() == CLIP


def test_upsert_replaces_existing_post(store):
    store.upsert(PostMusicMapping.from_clip("post-1", CLIP))
    replacement = PostMusicMapping(post_id="post-1", track_id="track-2", track_title="Dusk")

    stored = store.upsert(replacement)

    assert stored.track_id == "track-2"
    assert stored.track_artist is None
    assert len(store.list_mappings()) == 1


def test_list_returns_newest_first(store):
    store.upsert(PostMusicMapping(post_id="post-1", track_id="t1"))
    store.upsert(PostMusicMapping(post_id="post-2", track_id="t2"))
    store.upsert(PostMusicMapping(post_id="post-3", track_id="t3"))

    assert [mapping.post_id for mapping in store.list_mappings()] == ["post-3", "post-2", "post-1"]


@pytest.mark.parametrize("post_id, track_id", [("", "t1"), ("post-1", "")])
def test_missing_ids_rejected(store, post_id, track_id):
    with pytest.raises(ValueError):
        store.upsert(PostMusicMapping(post_id=post_id, track_id=track_id))


def test_delete(store):
    store.upsert(PostMusicMapping.from_clip("post-1", CLIP))

    assert store.delete("post-1") is True
    assert store.delete("post-1") is False
    assert store.get("post-1") is None


def test_mapping_without_preview_url_cannot_play():
    mapping = PostMusicMapping(post_id="post-1", track_id="t1")

    with pytest.raises(ValueError):
        mapping.to_clip()


def test_as_dict_lists_all_columns(store):
    stored = store.upsert(PostMusicMapping.from_clip("post-1", CLIP))

    data = stored.as_dict()

    assert data["post_id"] == "post-1"
    assert data["track_album_art"] == CLIP.cover_image_uri
    assert data["track_duration"] == 30.0
    assert set(data) >= {"id", "created_at", "track_preview_url"}


def test_in_memory_database():
    with PostMusicStore(":memory:") as store:
        store.upsert(PostMusicMapping(post_id="p", track_id="t"))
        assert store.get("p").track_id == "t"


LEGACY_SCHEMA = """
CREATE TABLE IF NOT EXISTS post_music (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    post_id TEXT NOT NULL UNIQUE,
    track_id TEXT NOT NULL,
    track_title TEXT,
    track_artist TEXT,
    track_album TEXT,
    track_album_art TEXT,
    created_at INTEGER NOT NULL
)
"""


def test_legacy_database_gains_playback_columns(tmp_path):
    database = tmp_path / "posts.db"
    conn = sqlite3.connect(database)
    with conn:
        conn.execute(LEGACY_SCHEMA)
        conn.execute(
            "INSERT INTO post_music (post_id, track_id, track_title, track_artist, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            ("post-old", "t-old", "Old Song", "Old Band", 1000),
        )
    conn.close()

    with PostMusicStore(database) as store:
        legacy = store.get("post-old")
        assert legacy.track_title == "Old Song"
        assert legacy.track_preview_url is None
        assert legacy.track_duration is None
        with pytest.raises(ValueError):
            legacy.to_clip()

        store.upsert(PostMusicMapping.from_clip("post-new", CLIP))
        assert [mapping.post_id for mapping in store.list_mappings()] == ["post-new", "post-old"]
        assert store.get("post-new").to_clip() == CLIP

    with PostMusicStore(database) as reopened:
        assert len(reopened.list_mappings()) == 2

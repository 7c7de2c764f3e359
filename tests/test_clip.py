from __future__ import annotations

import pytest

from cliploop.core.clip import Clip, format_seconds


def test_from_catalog_result_reads_catalog_fields():
    clip = Clip.from_catalog_result(
        {
            "id": 42,
            "title": "Sunrise",
            "artistName": "Band",
            "albumTitle": "Mornings",
            "coverImageUri": "https://example.com/art.jpg",
            "playableUri": "https://example.com/preview.m4a",
            "durationSeconds": "29.5",
        }
    )

    assert clip.id == "42"
    assert clip.artist == "Band"
    assert clip.album == "Mornings"
    assert clip.duration_seconds == 29.5
    assert clip.display_name == "Band - Sunrise"
    assert clip.duration_display == "00:29"


def test_from_catalog_result_accepts_preview_url_spelling():
    clip = Clip.from_catalog_result(
        {"trackId": "t1", "trackName": "Dusk", "previewUrl": "https://example.com/p.m4a", "duration": 0}
    )

    assert clip.id == "t1"
    assert clip.title == "Dusk"
    assert clip.playable_uri == "https://example.com/p.m4a"
    assert clip.duration_seconds is None
    assert clip.artist is None


@pytest.mark.parametrize(
    "result",
    [
        {"title": "No id", "playableUri": "https://example.com/p.m4a"},
        {"id": "t1", "title": "No uri"},
        {"id": "", "playableUri": "https://example.com/p.m4a"},
    ],
)
def test_from_catalog_result_requires_id_and_uri(result):
    with pytest.raises(ValueError):
        Clip.from_catalog_result(result)


def test_catalog_result_round_trip():
    clip = Clip(id="c", playable_uri="mock://c", title="C", artist="X", duration_seconds=12.0)

    assert Clip.from_catalog_result(clip.to_catalog_result()) == clip


def test_clip_requires_id_and_uri():
    with pytest.raises(ValueError):
        Clip(id="", playable_uri="mock://c")
    with pytest.raises(ValueError):
        Clip(id="c", playable_uri="")


def test_display_name_falls_back_to_id():
    assert Clip(id="c", playable_uri="mock://c").display_name == "c"


@pytest.mark.parametrize(
    "seconds, expected",
    [(None, "--:--"), (-1.0, "--:--"), (0.0, "00:00"), (59.9, "00:59"), (125.0, "02:05")],
)
def test_format_seconds(seconds, expected):
    assert format_seconds(seconds) == expected

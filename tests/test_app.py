from __future__ import annotations

import pytest

from cliploop import app
from cliploop.core import clip_source


@pytest.fixture()
def config_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CLIPLOOP_CONFIG_PATH", raising=False)
    monkeypatch.delenv("CLIPLOOP_CONFIG_DIR", raising=False)
    monkeypatch.delenv("LOGLEVEL", raising=False)
    path = tmp_path / "settings.yaml"
    path.write_text(
        "store:\n"
        f"  database: {tmp_path / 'data' / 'posts.db'}\n"
        "audio:\n"
        "  backend: mock\n",
        encoding="utf-8",
    )
    return str(path)


def test_posts_crud(config_path, capsys):
    assert (
        app.main(
            [
                "--config",
                config_path,
                "posts",
                "add",
                "post-1",
                "https://example.com/previews/sunrise.m4a",
                "--title",
                "Sunrise",
                "--artist",
                "Band",
                "--duration",
                "30",
            ]
        )
        == 0
    )
    assert "Band - Sunrise" in capsys.readouterr().out

    assert app.main(["--config", config_path, "posts", "show", "post-1"]) == 0
    shown = capsys.readouterr().out
    assert "track_preview_url: https://example.com/previews/sunrise.m4a" in shown
    assert "track_duration: 30.0" in shown

    assert app.main(["--config", config_path, "posts", "list"]) == 0
    assert capsys.readouterr().out.startswith("post-1\t")

    assert app.main(["--config", config_path, "posts", "delete", "post-1"]) == 0
    assert app.main(["--config", config_path, "posts", "delete", "post-1"]) == 1
    assert app.main(["--config", config_path, "posts", "show", "post-1"]) == 1


def test_play_loops_clip_on_mock_backend(config_path, capsys):
    code = app.main(
        [
            "--config",
            config_path,
            "--mock",
            "play",
            "https://example.com/previews/loop.m4a",
            "--duration",
            "5",
            "--seconds",
            "0.2",
        ]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "Looping loop" in out
    assert "/ 00:05" in out


def test_play_post_without_mapping_fails(config_path, capsys):
    assert app.main(["--config", config_path, "--mock", "play-post", "unknown"]) == 1
    assert "No music stored for post unknown" in capsys.readouterr().err


def test_invalid_crossfade_timing_is_reported(config_path, tmp_path, capsys):
    bad_config = tmp_path / "bad.yaml"
    bad_config.write_text("playback:\n  fade_seconds: 4\n  lead_seconds: 2\n", encoding="utf-8")

    code = app.main(["--config", str(bad_config), "--mock", "play", "https://example.com/a.m4a"])

    assert code == 1
    assert "lead_seconds" in capsys.readouterr().err


def test_devices_lists_mock_device(config_path, capsys):
    assert app.main(["--config", config_path, "--mock", "devices"]) == 0
    assert "* mock:default" in capsys.readouterr().out


def test_search_local_library(config_path, tmp_path, monkeypatch, capsys):
    library = tmp_path / "clips"
    library.mkdir()
    (library / "waves.mp3").write_bytes(b"")
    (library / "rain.mp3").write_bytes(b"")
    monkeypatch.setattr(clip_source, "MutagenFile", lambda path: None)

    assert app.main(["--config", config_path, "search", "wav", "--library", str(library)]) == 0

    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 1
    assert "waves" in lines[0]


def test_clip_from_source_for_url_is_stable():
    first = app.clip_from_source("https://example.com/a/b.m4a?sig=1", duration=12.0)
    second = app.clip_from_source("https://example.com/a/b.m4a?sig=1")

    assert first.id == second.id
    assert first.title == "b"
    assert first.duration_seconds == 12.0
    assert second.duration_seconds is None


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        app.build_parser().parse_args([])

from __future__ import annotations

from pathlib import Path

import pytest

from cliploop.core.config import CrossfadeSettings, SettingsManager
from cliploop.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clear_config_env(monkeypatch):
    monkeypatch.delenv("CLIPLOOP_CONFIG_PATH", raising=False)
    monkeypatch.delenv("CLIPLOOP_CONFIG_DIR", raising=False)


def test_defaults_when_file_missing(tmp_path):
    settings = SettingsManager(tmp_path / "missing.yaml")

    assert settings.get_fade_seconds() == 1.5
    assert settings.get_lead_seconds() == 2.5
    assert settings.get_fade_poll_interval() == 0.05
    assert settings.get_visibility_threshold() == 0.5
    assert settings.get_audio_backend() == "sounddevice"
    assert settings.get_audio_device() is None
    assert settings.get_database_path() == Path("posts.db")
    assert settings.get_library_path() is None
    assert settings.get_log_level() == "WARNING"
    assert settings.get_crossfade_settings() == CrossfadeSettings()


def test_yaml_values_override_defaults(tmp_path):
    config_path = tmp_path / "settings.yaml"
    config_path.write_text(
        "playback:\n"
        "  fade_seconds: 1.0\n"
        "  lead_seconds: 2.0\n"
        "audio:\n"
        "  backend: mock\n"
        "  device: mock:default\n"
        "store:\n"
        "  database: data/posts.db\n",
        encoding="utf-8",
    )

    settings = SettingsManager(config_path)

    crossfade = settings.get_crossfade_settings()
    assert crossfade.fade_seconds == 1.0
    assert crossfade.lead_seconds == 2.0
    assert crossfade.progress_interval == 0.1
    assert settings.get_audio_backend() == "mock"
    assert settings.get_audio_device() == "mock:default"
    assert settings.get_database_path() == Path("data/posts.db")


def test_invalid_values_fall_back_to_defaults(tmp_path):
    config_path = tmp_path / "settings.yaml"
    config_path.write_text(
        "playback:\n"
        "  fade_seconds: fast\n"
        "  fade_poll_interval: 5\n"
        "visibility:\n"
        "  threshold: 3\n"
        "audio:\n"
        "  backend: alsa\n"
        "diagnostics:\n"
        "  log_level: chatty\n",
        encoding="utf-8",
    )

    settings = SettingsManager(config_path)

    assert settings.get_fade_seconds() == 1.5
    assert settings.get_fade_poll_interval() == 0.1
    assert settings.get_visibility_threshold() == 0.5
    assert settings.get_audio_backend() == "sounddevice"
    assert settings.get_log_level() == "WARNING"


def test_fade_longer_than_lead_is_rejected(tmp_path):
    settings = SettingsManager(tmp_path / "settings.yaml")
    settings.set_fade_seconds(3.0)

    with pytest.raises(ConfigurationError):
        settings.get_crossfade_settings()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"fade_seconds": 0.0},
        {"fade_seconds": 2.0, "lead_seconds": 1.0},
        {"fade_poll_interval": 0.5},
        {"progress_interval": 0.0},
    ],
)
def test_crossfade_settings_validation(kwargs):
    with pytest.raises(ConfigurationError):
        CrossfadeSettings(**kwargs)


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        CrossfadeSettings(fade_seconds=-1.0)


def test_save_and_reload(tmp_path):
    config_path = tmp_path / "nested" / "settings.yaml"
    settings = SettingsManager(config_path)
    settings.set_lead_seconds(3.0)
    settings.set_audio_backend("mock")
    settings.set_library_path(tmp_path / "clips")
    settings.save()

    reloaded = SettingsManager(config_path)

    assert reloaded.get_lead_seconds() == 3.0
    assert reloaded.get_audio_backend() == "mock"
    assert reloaded.get_library_path() == tmp_path / "clips"


def test_unknown_backend_setter_raises(tmp_path):
    settings = SettingsManager(tmp_path / "settings.yaml")

    with pytest.raises(ValueError):
        settings.set_audio_backend("jack")


def test_env_overrides_config_path(tmp_path, monkeypatch):
    config_dir = tmp_path / "conf"
    config_dir.mkdir()
    (config_dir / "settings.yaml").write_text("playback:\n  lead_seconds: 4.0\n", encoding="utf-8")
    monkeypatch.setenv("CLIPLOOP_CONFIG_DIR", str(config_dir))

    settings = SettingsManager()

    assert settings.config_path == config_dir / "settings.yaml"
    assert settings.get_lead_seconds() == 4.0


def test_raw_config_is_a_copy(tmp_path):
    settings = SettingsManager(tmp_path / "settings.yaml")

    raw = settings.get_raw()
    raw["playback"]["fade_seconds"] = 9.0

    assert settings.get_fade_seconds() == 1.5


def test_malformed_sections_keep_defaults(tmp_path):
    config_path = tmp_path / "settings.yaml"
    config_path.write_text(
        "playback:\n"
        "visibility: 0.8\n"
        "audio:\n"
        "  backend: mock\n"
        "extra:\n"
        "  note: kept\n",
        encoding="utf-8",
    )

    settings = SettingsManager(config_path)

    assert settings.get_crossfade_settings() == CrossfadeSettings()
    assert settings.get_visibility_threshold() == 0.5
    assert settings.get_audio_backend() == "mock"
    assert settings.get_raw()["extra"] == {"note": "kept"}

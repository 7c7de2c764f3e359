from __future__ import annotations

import pytest

from cliploop.audio.mock_backend import ManualScheduler, MockBackendProvider, MockChannelPlayer
from cliploop.audio.types import BackendType
from cliploop.core.errors import SourceUnavailableError


def test_manual_scheduler_fires_in_due_order():
    scheduler = ManualScheduler()
    fired: list[tuple[str, float]] = []
    scheduler.call_later(0.3, lambda: fired.append(("late", scheduler.now())))
    scheduler.call_later(0.1, lambda: fired.append(("early", scheduler.now())))
    cancelled = scheduler.call_later(0.2, lambda: fired.append(("cancelled", scheduler.now())))
    cancelled.cancel()

    scheduler.advance(0.25)
    assert fired == [("early", 0.1)]
    assert scheduler.now() == 0.25

    scheduler.advance(1.0)
    assert [name for name, _at in fired] == ["early", "late"]
    assert scheduler.pending() == 0


def test_manual_scheduler_runs_soon_callbacks():
    scheduler = ManualScheduler(start=5.0)
    fired: list[float] = []
    scheduler.call_soon_threadsafe(lambda: fired.append(scheduler.now()))

    scheduler.run_pending()

    assert fired == [5.0]


def test_duration_unknown_until_play():
    scheduler = ManualScheduler()
    channel = MockChannelPlayer("A", scheduler)
    channel.bind("clip", "mem://clip", duration_hint=12.0)

    assert channel.get_duration() is None
    channel.play()
    assert channel.get_duration() == 12.0


def test_play_without_clip_raises():
    channel = MockChannelPlayer("A", ManualScheduler())

    with pytest.raises(SourceUnavailableError):
        channel.play()


def test_failing_uri_raises_with_uri():
    channel = MockChannelPlayer("A", ManualScheduler(), failing_uris=["mem://bad"])
    channel.bind("bad", "mem://bad")

    with pytest.raises(SourceUnavailableError) as excinfo:
        channel.play()

    assert excinfo.value.uri == "mem://bad"


def test_channel_reports_progress_and_end():
    scheduler = ManualScheduler()
    channel = MockChannelPlayer("A", scheduler, progress_interval=0.5)
    progress: list[float] = []
    finished: list[str] = []
    channel.set_progress_callback(lambda clip_id, seconds: progress.append(seconds))
    channel.set_finished_callback(finished.append)
    channel.bind("clip", "mem://clip", duration_hint=1.0)
    channel.play()

    scheduler.advance(2.0)

    assert progress == [0.5, 1.0]
    assert finished == ["clip"]
    assert not channel.is_playing()


def test_seek_is_clamped_to_duration():
    scheduler = ManualScheduler()
    channel = MockChannelPlayer("A", scheduler)
    channel.bind("clip", "mem://clip", duration_hint=10.0)
    channel.play()

    channel.seek(25.0)
    assert channel.get_position() == 10.0
    channel.seek(-3.0)
    assert channel.get_position() == 0.0


def test_provider_exposes_single_default_device():
    scheduler = ManualScheduler()
    provider = MockBackendProvider(progress_interval=0.2)

    devices = provider.list_devices()

    assert len(devices) == 1
    assert devices[0].is_default
    assert devices[0].backend is BackendType.MOCK
    channel = provider.create_channel(devices[0], "B", scheduler)
    assert channel.name == "B"

from __future__ import annotations

import pytest

from cliploop.audio.channel_pair import ChannelPair
from cliploop.audio.mock_backend import ManualScheduler, MockChannelPlayer


def _pair():
    scheduler = ManualScheduler()
    a = MockChannelPlayer("A", scheduler)
    b = MockChannelPlayer("B", scheduler)
    return scheduler, a, b, ChannelPair(a, b)


def test_swap_flips_roles_without_replacing_channels():
    _scheduler, a, b, pair = _pair()

    assert pair.active is a and pair.inactive is b
    pair.swap()
    assert pair.active is b and pair.inactive is a
    pair.swap()
    assert pair.active is a
    assert pair.swap_count == 2
    assert pair.channels == (a, b)


def test_pair_requires_distinct_channels():
    scheduler = ManualScheduler()
    channel = MockChannelPlayer("A", scheduler)

    with pytest.raises(ValueError):
        ChannelPair(channel, channel)


def test_index_of_rejects_foreign_channel():
    scheduler, a, b, pair = _pair()

    assert pair.index_of(a) == 0
    assert pair.index_of(b) == 1
    with pytest.raises(ValueError):
        pair.index_of(MockChannelPlayer("C", scheduler))


def test_callbacks_receive_emitting_channel():
    scheduler, a, b, pair = _pair()
    progress: list[tuple[str, str]] = []
    pair.set_progress_callback(lambda channel, clip_id, seconds: progress.append((channel.name, clip_id)))

    b.bind("clip", "mem://clip")
    b.play()
    scheduler.advance(0.1)

    assert progress == [("B", "clip")]


def test_reset_all_pauses_and_rewinds():
    scheduler, a, b, pair = _pair()
    for channel in pair.channels:
        channel.bind("clip", "mem://clip")
        channel.play()
    scheduler.advance(2.0)

    pair.reset_all()

    assert not a.is_playing() and not b.is_playing()
    assert a.get_position() == 0.0 and b.get_position() == 0.0
    assert a.bound_clip_id() == "clip"


def test_unbind_all_releases_clips():
    scheduler, a, b, pair = _pair()
    a.bind("clip", "mem://clip")
    a.play()
    scheduler.advance(0.5)

    pair.unbind_all()

    assert a.bound_clip_id() is None
    assert b.bound_clip_id() is None
    assert scheduler.pending() == 0

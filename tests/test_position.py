"""Tests for position extrapolation from the seek anchor."""

from conftest import make_zone

from roon_mpris.sync.position import SeekAnchor, current_position_micros


def test_playing_anchor_extrapolates() -> None:
    anchor = SeekAnchor(anchor_seconds=10.0, anchor_time=100.0, playing=True, length_seconds=200.0)
    assert current_position_micros(anchor, 101.0) == 11_000_000


def test_playing_anchor_is_monotonic_and_clamped_to_length() -> None:
    anchor = SeekAnchor(anchor_seconds=195.0, anchor_time=0.0, playing=True, length_seconds=200.0)
    positions = [current_position_micros(anchor, t / 2) for t in range(30)]

    assert positions == sorted(positions)
    assert max(positions) == 200_000_000


def test_paused_anchor_is_frozen() -> None:
    anchor = SeekAnchor(anchor_seconds=42.5, anchor_time=0.0, playing=False, length_seconds=None)
    assert current_position_micros(anchor, 0.0) == 42_500_000
    assert current_position_micros(anchor, 3600.0) == 42_500_000


def test_position_never_negative() -> None:
    anchor = SeekAnchor(anchor_seconds=-5.0, anchor_time=0.0, playing=False)
    assert current_position_micros(anchor, 1.0) == 0


def test_anchor_from_zone() -> None:
    zone = make_zone("a", state="playing", now_playing={"seek_position": 12, "length": 180})
    anchor = SeekAnchor.from_zone(zone, 50.0)

    assert anchor == SeekAnchor(anchor_seconds=12.0, anchor_time=50.0, playing=True, length_seconds=180.0)


def test_anchor_from_zone_without_seek_info() -> None:
    anchor = SeekAnchor.from_zone(make_zone("a", state="loading"), 50.0)

    assert anchor.anchor_seconds == 0.0
    assert anchor.playing is False
    assert anchor.length_seconds is None

import math
from dataclasses import dataclass

from roon_mpris.models.state import Zone, ZoneState

MICROSECONDS = 1_000_000


def to_micros(seconds: float | None) -> int:
    return math.floor((seconds or 0) * MICROSECONDS)


@dataclass(frozen=True, slots=True)
class SeekAnchor:
    """Last known position of the active zone and when it was observed."""

    anchor_seconds: float
    anchor_time: float
    playing: bool
    length_seconds: float | None = None

    @classmethod
    def idle(cls, now: float) -> "SeekAnchor":
        return cls(anchor_seconds=0.0, anchor_time=now, playing=False)

    @classmethod
    def from_zone(cls, zone: Zone, now: float) -> "SeekAnchor":
        now_playing = zone.now_playing
        seek = now_playing.seek_position if now_playing else None
        length = now_playing.length if now_playing else None
        return cls(
            anchor_seconds=seek if seek is not None else 0.0,
            anchor_time=now,
            playing=zone.state == ZoneState.PLAYING,
            length_seconds=length,
        )


def current_position_micros(anchor: SeekAnchor, now: float) -> int:
    """Extrapolate the playback position in microseconds at wall-clock ``now``."""
    elapsed = anchor.anchor_seconds
    if anchor.playing:
        elapsed += now - anchor.anchor_time
    if anchor.length_seconds is not None:
        elapsed = min(elapsed, anchor.length_seconds)
    return max(0, to_micros(elapsed))

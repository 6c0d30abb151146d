import math
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator


class ZoneState(str, Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    LOADING = "loading"
    STOPPED = "stopped"


class LoopMode(str, Enum):
    DISABLED = "disabled"
    LOOP_ONE = "loop_one"
    LOOP = "loop"


class PlaybackStatus(str, Enum):
    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"


class LoopStatus(str, Enum):
    NONE = "None"
    TRACK = "Track"
    PLAYLIST = "Playlist"


class PlainText(BaseModel):
    kind: Literal["plain"] = "plain"
    text: str


class StructuredLines(BaseModel):
    kind: Literal["lines"] = "lines"
    lines: dict[str, Any]


TextSource = PlainText | StructuredLines | None


def to_text_source(value: Any) -> TextSource:
    """Classify a raw upstream text value as plain text or a line record."""
    if isinstance(value, (PlainText, StructuredLines)):
        return value
    if not value or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return PlainText(text=value)
    if isinstance(value, int):
        return PlainText(text=str(value))
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return PlainText(text=str(int(value)) if value.is_integer() else str(value))
    if isinstance(value, dict):
        return StructuredLines(lines=value)
    return None


def finite_number(value: Any) -> float | None:
    """Coerce to a finite float, or None when that is not possible."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class Output(BaseModel):
    model_config = ConfigDict(extra="ignore")

    output_id: str = ""
    display_name: str = ""


class ZoneSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    shuffle: bool = False
    loop: LoopMode = LoopMode.DISABLED

    @field_validator("loop", mode="before")
    @classmethod
    def _loop(cls, value: Any) -> LoopMode:
        try:
            return LoopMode(str(value or "").lower())
        except ValueError:
            return LoopMode.DISABLED


class NowPlaying(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: TextSource = None
    artist: TextSource = None
    artist_line: TextSource = None
    album: TextSource = None
    one_line: TextSource = None
    two_line: TextSource = None
    three_line: TextSource = None
    length: float | None = None
    seek_position: float | None = None
    image_key: str | None = None

    @field_validator(
        "title", "artist", "artist_line", "album", "one_line", "two_line", "three_line", mode="before"
    )
    @classmethod
    def _text(cls, value: Any) -> TextSource:
        return to_text_source(value)

    @field_validator("length", "seek_position", mode="before")
    @classmethod
    def _number(cls, value: Any) -> float | None:
        return finite_number(value)

    @field_validator("image_key", mode="before")
    @classmethod
    def _image_key(cls, value: Any) -> str | None:
        return str(value) if value else None


class Zone(BaseModel):
    model_config = ConfigDict(extra="ignore")

    zone_id: str
    display_name: str = ""
    state: ZoneState = ZoneState.STOPPED
    now_playing: NowPlaying | None = None
    is_play_allowed: bool = False
    is_pause_allowed: bool = False
    is_seek_allowed: bool = False
    is_next_allowed: bool = False
    is_previous_allowed: bool = False
    settings: ZoneSettings | None = None
    outputs: list[Output] = []
    queue_time_remaining: float | None = None

    @field_validator("state", mode="before")
    @classmethod
    def _state(cls, value: Any) -> ZoneState:
        try:
            return ZoneState(str(value or "").lower())
        except ValueError:
            return ZoneState.STOPPED

    @field_validator("outputs", mode="before")
    @classmethod
    def _outputs(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [output for output in value if output]

    @field_validator("queue_time_remaining", mode="before")
    @classmethod
    def _queue_time(cls, value: Any) -> float | None:
        return finite_number(value)


class SeekDelta(BaseModel):
    zone_id: str
    seek_position: float | None = None
    queue_time_remaining: float | None = None

    @field_validator("seek_position", "queue_time_remaining", mode="before")
    @classmethod
    def _number(cls, value: Any) -> float | None:
        return finite_number(value)


class Subscribed(BaseModel):
    kind: Literal["subscribed"] = "subscribed"
    zones: list[Zone] = []


class Changed(BaseModel):
    kind: Literal["changed"] = "changed"
    zones_removed: list[str] = []
    zones_added: list[Zone] = []
    zones_changed: list[Zone] = []
    zones_seek_changed: list[SeekDelta] = []


class Unsubscribed(BaseModel):
    kind: Literal["unsubscribed"] = "unsubscribed"


FeedEvent = Subscribed | Changed | Unsubscribed


class PlayerProjection(BaseModel):
    track_id: str
    title: str
    artists: list[str]
    album: str
    length: int | None = None
    art_url: str | None = None
    playback_status: PlaybackStatus = PlaybackStatus.STOPPED
    loop_status: LoopStatus = LoopStatus.NONE
    shuffle: bool = False
    rate: float = 1.0
    minimum_rate: float = 1.0
    maximum_rate: float = 1.0
    can_control: bool = False
    can_play: bool = False
    can_pause: bool = False
    can_seek: bool = False
    can_go_next: bool = False
    can_go_previous: bool = False


class ZoneSummary(BaseModel):
    zone_id: str
    display_name: str
    state: ZoneState
    active: bool
    outputs: list[str] = []


class PlayerResponse(BaseModel):
    zone_id: str | None
    position: int
    projection: PlayerProjection


class HealthResponse(BaseModel):
    status: str = "ok"
    core: str | None = None
    zones: int = 0
    active_zone: str | None = None


class ErrorResponse(BaseModel):
    error: str
    detail: str = ""

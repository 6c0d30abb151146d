from collections.abc import Iterable

from roon_mpris.models.state import (
    LoopMode,
    LoopStatus,
    NowPlaying,
    PlainText,
    PlaybackStatus,
    PlayerProjection,
    StructuredLines,
    TextSource,
    Zone,
    ZoneState,
)
from roon_mpris.sync.position import to_micros
from roon_mpris.utils.zone import object_path_segment

TRACK_ID_PREFIX = "/roon_mpris"
IDLE_TRACK_ID = f"{TRACK_ID_PREFIX}/track/0"
DEFAULT_TITLE = "Roon"
PLACEHOLDER = "—"

_PLAYBACK_STATUS = {
    ZoneState.PLAYING: PlaybackStatus.PLAYING,
    ZoneState.LOADING: PlaybackStatus.PLAYING,
    ZoneState.PAUSED: PlaybackStatus.PAUSED,
    ZoneState.STOPPED: PlaybackStatus.STOPPED,
}

_LOOP_STATUS = {
    LoopMode.LOOP_ONE: LoopStatus.TRACK,
    LoopMode.LOOP: LoopStatus.PLAYLIST,
    LoopMode.DISABLED: LoopStatus.NONE,
}


def resolve_line(source: TextSource, key: str = "line1") -> str | None:
    """Text of a plain or structured source.

    Structured sources are looked up by ``key`` first, then by any string field.
    """
    if isinstance(source, PlainText):
        return source.text or None
    if isinstance(source, StructuredLines):
        value = source.lines.get(key)
        if isinstance(value, str) and value:
            return value
        for value in source.lines.values():
            if isinstance(value, str) and value:
                return value
    return None


def first_text(candidates: Iterable[tuple[TextSource, str]]) -> str | None:
    for source, key in candidates:
        text = resolve_line(source, key)
        if text:
            return text
    return None


def resolve_title(now_playing: NowPlaying, zone_name: str) -> str:
    text = first_text(
        [
            (now_playing.title, "line1"),
            (now_playing.three_line, "line1"),
            (now_playing.two_line, "line2"),
            (now_playing.one_line, "line1"),
        ]
    )
    return text or zone_name or DEFAULT_TITLE


def resolve_artist(now_playing: NowPlaying) -> str:
    text = first_text(
        [
            (now_playing.artist, "line1"),
            (now_playing.artist_line, "line1"),
            (now_playing.three_line, "line2"),
            (now_playing.two_line, "line1"),
        ]
    )
    return text or DEFAULT_TITLE


def resolve_album(now_playing: NowPlaying) -> str:
    text = first_text([(now_playing.album, "line1"), (now_playing.three_line, "line3")])
    return text or PLACEHOLDER


def track_id_for(zone_id: str) -> str:
    return f"{TRACK_ID_PREFIX}/zone/{object_path_segment(zone_id)}"


def idle_projection(session_active: bool = False) -> PlayerProjection:
    """Projection shown when no zone is active.

    ``can_control`` stays on while a session exists so desktop shells keep the
    player visible.
    """
    return PlayerProjection(
        track_id=IDLE_TRACK_ID,
        title=DEFAULT_TITLE,
        artists=[PLACEHOLDER],
        album=PLACEHOLDER,
        playback_status=PlaybackStatus.STOPPED,
        can_control=session_active,
    )


def project(zone: Zone) -> PlayerProjection:
    """Map a zone snapshot onto MPRIS player properties (without artwork)."""
    now_playing = zone.now_playing or NowPlaying()
    settings = zone.settings

    # Shells hide players whose CanPlay is false, so stay permissive.
    can_play = zone.is_play_allowed or zone.state in (ZoneState.PLAYING, ZoneState.PAUSED, ZoneState.LOADING)

    return PlayerProjection(
        track_id=track_id_for(zone.zone_id),
        title=resolve_title(now_playing, zone.display_name),
        artists=[resolve_artist(now_playing)],
        album=resolve_album(now_playing),
        length=to_micros(now_playing.length) if now_playing.length is not None else None,
        playback_status=_PLAYBACK_STATUS[zone.state],
        loop_status=_LOOP_STATUS[settings.loop] if settings else LoopStatus.NONE,
        shuffle=settings.shuffle if settings else False,
        can_control=True,
        can_play=can_play,
        can_pause=zone.is_pause_allowed,
        can_seek=zone.is_seek_allowed and now_playing.seek_position is not None,
        can_go_next=zone.is_next_allowed,
        can_go_previous=zone.is_previous_allowed,
    )

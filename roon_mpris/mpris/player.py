"""
MPRIS D-Bus surface.

Exports ``org.mpris.MediaPlayer2`` and ``org.mpris.MediaPlayer2.Player`` on the
session bus. Properties come from the synchronizer's current projection;
method calls are forwarded to its command router. Everything runs on the same
asyncio loop as the synchronizer.
"""

import logging
from enum import Enum

from dbus_fast import BusType, PropertyAccess, Variant
from dbus_fast.aio import MessageBus
from dbus_fast.service import ServiceInterface, dbus_property, method, signal

from roon_mpris.models.state import PlayerProjection
from roon_mpris.sync.projector import idle_projection

logger = logging.getLogger(__name__)

OBJECT_PATH = "/org/mpris/MediaPlayer2"
IDENTITY = "Roon MPRIS Bridge"
DESKTOP_ENTRY = "roon-mpris"
SUPPORTED_URI_SCHEMES = ["file", "http", "https"]
SUPPORTED_MIME_TYPES = [
    "audio/mpeg",
    "audio/flac",
    "audio/wav",
    "audio/ogg",
    "audio/aac",
    "audio/mp4",
    "audio/x-ms-wma",
    "audio/x-wav",
    "audio/x-flac",
]

# Projection field -> Player property
_PLAYER_PROPERTIES = {
    "playback_status": "PlaybackStatus",
    "loop_status": "LoopStatus",
    "shuffle": "Shuffle",
    "rate": "Rate",
    "minimum_rate": "MinimumRate",
    "maximum_rate": "MaximumRate",
    "can_control": "CanControl",
    "can_play": "CanPlay",
    "can_pause": "CanPause",
    "can_seek": "CanSeek",
    "can_go_next": "CanGoNext",
    "can_go_previous": "CanGoPrevious",
}
_METADATA_FIELDS = ("track_id", "title", "artists", "album", "length", "art_url")


def build_metadata(projection: PlayerProjection) -> dict[str, Variant]:
    """MPRIS ``Metadata`` dict for a projection."""
    metadata = {
        "mpris:trackid": Variant("o", projection.track_id),
        "xesam:title": Variant("s", projection.title),
        "xesam:album": Variant("s", projection.album),
        "xesam:artist": Variant("as", list(projection.artists)),
    }
    if projection.length is not None:
        metadata["mpris:length"] = Variant("x", projection.length)
    if projection.art_url:
        metadata["mpris:artUrl"] = Variant("s", projection.art_url)
    return metadata


def property_value(projection: PlayerProjection, field: str):
    value = getattr(projection, field)
    return value.value if isinstance(value, Enum) else value


def changed_properties(old: PlayerProjection | None, new: PlayerProjection) -> dict:
    """Player properties that differ between two projections, by D-Bus name."""
    changed = {}
    for field, name in _PLAYER_PROPERTIES.items():
        value = property_value(new, field)
        if old is None or property_value(old, field) != value:
            changed[name] = value
    if old is None or any(getattr(old, f) != getattr(new, f) for f in _METADATA_FIELDS):
        changed["Metadata"] = build_metadata(new)
    return changed


class MediaPlayer2Interface(ServiceInterface):
    def __init__(self, surface: "MprisSurface") -> None:
        super().__init__("org.mpris.MediaPlayer2")
        self._surface = surface

    @method()
    def Raise(self):
        self._surface.controller.raise_window()

    @method()
    def Quit(self):
        self._surface.controller.quit()

    @dbus_property(access=PropertyAccess.READ)
    def CanQuit(self) -> "b":
        return False

    @dbus_property(access=PropertyAccess.READ)
    def CanRaise(self) -> "b":
        return True

    @dbus_property(access=PropertyAccess.READ)
    def CanSetFullscreen(self) -> "b":
        return False

    @dbus_property(access=PropertyAccess.READ)
    def HasTrackList(self) -> "b":
        return False

    @dbus_property(access=PropertyAccess.READ)
    def Identity(self) -> "s":
        return IDENTITY

    @dbus_property(access=PropertyAccess.READ)
    def DesktopEntry(self) -> "s":
        return DESKTOP_ENTRY

    @dbus_property(access=PropertyAccess.READ)
    def SupportedUriSchemes(self) -> "as":
        return SUPPORTED_URI_SCHEMES

    @dbus_property(access=PropertyAccess.READ)
    def SupportedMimeTypes(self) -> "as":
        return SUPPORTED_MIME_TYPES


class PlayerInterface(ServiceInterface):
    def __init__(self, surface: "MprisSurface") -> None:
        super().__init__("org.mpris.MediaPlayer2.Player")
        self._surface = surface

    @property
    def _projection(self) -> PlayerProjection:
        return self._surface.projection

    @property
    def _commands(self):
        return self._surface.controller.commands

    @method()
    def Next(self):
        self._commands.dispatch("next")

    @method()
    def Previous(self):
        self._commands.dispatch("previous")

    @method()
    def Pause(self):
        self._commands.dispatch("pause")

    @method()
    def PlayPause(self):
        self._commands.dispatch("playpause")

    @method()
    def Stop(self):
        self._commands.dispatch("stop")

    @method()
    def Play(self):
        self._commands.dispatch("play")

    @method()
    def Seek(self, offset: "x"):
        self._commands.seek(offset)

    @method()
    def SetPosition(self, track_id: "o", position: "x"):
        self._commands.set_position(track_id, position)

    @method()
    def OpenUri(self, uri: "s"):
        logger.debug("OpenUri not supported: %s", uri)

    @signal()
    def Seeked(self, position) -> "x":
        return position

    @dbus_property(access=PropertyAccess.READ)
    def PlaybackStatus(self) -> "s":
        return self._projection.playback_status.value

    @dbus_property()
    def LoopStatus(self) -> "s":
        return self._projection.loop_status.value

    @LoopStatus.setter
    def LoopStatus(self, value: "s"):
        logger.debug("Ignoring LoopStatus write: %s", value)

    @dbus_property()
    def Rate(self) -> "d":
        return self._projection.rate

    @Rate.setter
    def Rate(self, value: "d"):
        logger.debug("Ignoring Rate write: %s", value)

    @dbus_property()
    def Shuffle(self) -> "b":
        return self._projection.shuffle

    @Shuffle.setter
    def Shuffle(self, value: "b"):
        logger.debug("Ignoring Shuffle write: %s", value)

    @dbus_property(access=PropertyAccess.READ)
    def Metadata(self) -> "a{sv}":
        return build_metadata(self._projection)

    @dbus_property(access=PropertyAccess.READ)
    def Volume(self) -> "d":
        return 1.0

    @dbus_property(access=PropertyAccess.READ)
    def Position(self) -> "x":
        return self._surface.controller.get_position()

    @dbus_property(access=PropertyAccess.READ)
    def MinimumRate(self) -> "d":
        return self._projection.minimum_rate

    @dbus_property(access=PropertyAccess.READ)
    def MaximumRate(self) -> "d":
        return self._projection.maximum_rate

    @dbus_property(access=PropertyAccess.READ)
    def CanGoNext(self) -> "b":
        return self._projection.can_go_next

    @dbus_property(access=PropertyAccess.READ)
    def CanGoPrevious(self) -> "b":
        return self._projection.can_go_previous

    @dbus_property(access=PropertyAccess.READ)
    def CanPlay(self) -> "b":
        return self._projection.can_play

    @dbus_property(access=PropertyAccess.READ)
    def CanPause(self) -> "b":
        return self._projection.can_pause

    @dbus_property(access=PropertyAccess.READ)
    def CanSeek(self) -> "b":
        return self._projection.can_seek

    @dbus_property(access=PropertyAccess.READ)
    def CanControl(self) -> "b":
        return self._projection.can_control


class MprisSurface:
    """Control surface that publishes projections as MPRIS properties."""

    def __init__(self, bus_name: str = "org.mpris.MediaPlayer2.roon") -> None:
        self.bus_name = bus_name
        self.projection = idle_projection()
        self.controller = None
        self._bus: MessageBus | None = None
        self._root = MediaPlayer2Interface(self)
        self._player = PlayerInterface(self)

    async def start(self, controller) -> None:
        """Export the interfaces and claim the bus name. ``controller`` is the synchronizer."""
        self.controller = controller
        self._bus = await MessageBus(bus_type=BusType.SESSION).connect()
        self._bus.export(OBJECT_PATH, self._root)
        self._bus.export(OBJECT_PATH, self._player)
        await self._bus.request_name(self.bus_name)
        logger.info("MPRIS service started as %s", self.bus_name)

    async def stop(self) -> None:
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None

    def apply(self, projection: PlayerProjection) -> None:
        changed = changed_properties(self.projection, projection)
        self.projection = projection
        if changed and self._bus is not None:
            self._player.emit_properties_changed(changed)

    def seeked(self, position: int) -> None:
        if self._bus is not None:
            self._player.Seeked(position)

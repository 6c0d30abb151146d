import asyncio
import logging
from collections.abc import Awaitable, Callable

from roon_mpris.models.state import PlayerProjection, Zone
from roon_mpris.sync.errors import (
    CommandFailed,
    StaleSeekTarget,
    SyncError,
    TransportUnavailable,
    ZoneUnresolved,
)
from roon_mpris.sync.interfaces import RemoteTransport
from roon_mpris.sync.position import MICROSECONDS

logger = logging.getLogger(__name__)

TRANSPORT_VERBS = ("play", "pause", "playpause", "stop", "next", "previous")


class CommandRouter:
    """Turns MPRIS control actions into Roon transport commands for the active zone."""

    def __init__(
        self,
        resolve_zone: Callable[[], Zone | None],
        get_transport: Callable[[], RemoteTransport | None],
        get_projection: Callable[[], PlayerProjection],
    ) -> None:
        self._resolve_zone = resolve_zone
        self._get_transport = get_transport
        self._get_projection = get_projection
        self._tasks: set[asyncio.Task] = set()

    @property
    def tasks(self) -> set[asyncio.Task]:
        """Commands still in flight."""
        return set(self._tasks)

    def dispatch(self, verb: str) -> asyncio.Task | None:
        """Send a transport verb (play, pause, playpause, stop, next, previous)."""
        if verb not in TRANSPORT_VERBS:
            raise ValueError(f"Unknown transport verb: {verb}")
        try:
            zone, transport = self._target()
        except SyncError as exc:
            logger.debug("Dropping %s: %s", verb, exc)
            return None
        logger.debug("Sending transport control %s to zone %s", verb, zone.zone_id)
        return self._send(verb, transport.control(zone.zone_id, verb))

    def seek(self, offset: int) -> asyncio.Task | None:
        """Relative seek by ``offset`` microseconds."""
        try:
            zone, transport = self._target()
        except SyncError as exc:
            logger.debug("Dropping seek: %s", exc)
            return None
        seconds = offset / MICROSECONDS
        logger.debug("Seek request (relative) %.3fs on zone %s", seconds, zone.zone_id)
        return self._send("seek", transport.seek(zone.zone_id, "relative", seconds))

    def set_position(self, track_id: str, position: int) -> asyncio.Task | None:
        """Absolute seek to ``position`` microseconds within ``track_id``."""
        try:
            zone, transport = self._target()
            self._check_position(track_id, position)
        except SyncError as exc:
            logger.debug("Dropping SetPosition: %s", exc)
            return None
        seconds = position / MICROSECONDS
        logger.debug("SetPosition request %.3fs on zone %s", seconds, zone.zone_id)
        return self._send("seek", transport.seek(zone.zone_id, "absolute", seconds))

    def _target(self) -> tuple[Zone, RemoteTransport]:
        zone = self._resolve_zone()
        if zone is None:
            raise ZoneUnresolved("no zone available")
        transport = self._get_transport()
        if transport is None:
            logger.warning("Transport unavailable for command on zone %s", zone.zone_id)
            raise TransportUnavailable("not paired with a Roon Core")
        return zone, transport

    def _check_position(self, track_id: str, position: int) -> None:
        projection = self._get_projection()
        if track_id != projection.track_id:
            raise StaleSeekTarget(f"{track_id} is not the current track {projection.track_id}")
        if position < 0:
            raise StaleSeekTarget(f"negative position {position}")
        if projection.length is not None and position > projection.length:
            raise StaleSeekTarget(f"position {position} beyond track length {projection.length}")

    def _send(self, action: str, command: Awaitable[None]) -> asyncio.Task:
        task = asyncio.create_task(self._run(action, command))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, action: str, command: Awaitable[None]) -> None:
        try:
            await command
        except CommandFailed as exc:
            logger.error("Transport command %s failed: %s", action, exc)

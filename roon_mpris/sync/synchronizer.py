"""
Zone state synchronizer.

Owns everything the bridge knows about the Roon side: the zone registry, the
single active zone, the seek anchor used to extrapolate the position, and the
projection last pushed to the control surface. All methods are meant to be
called from one asyncio event loop; the Roon session re-injects its thread
callbacks onto that loop, so no locking is needed here.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from roon_mpris.models.state import (
    Changed,
    FeedEvent,
    PlayerProjection,
    Subscribed,
    Unsubscribed,
    Zone,
)
from roon_mpris.services.artwork import ArtworkCache
from roon_mpris.sync.commands import CommandRouter
from roon_mpris.sync.interfaces import ControlSurface, ImageFetcher, RemoteTransport, StatusSink
from roon_mpris.sync.position import SeekAnchor, current_position_micros, to_micros
from roon_mpris.sync.projector import idle_projection, project
from roon_mpris.sync.registry import ZoneRegistry
from roon_mpris.sync.selector import select_zone

logger = logging.getLogger(__name__)

WAITING_STATUS = "Waiting for Roon Core authorisation..."


class Synchronizer:
    def __init__(
        self,
        surface: ControlSurface,
        status: StatusSink,
        artwork: ArtworkCache,
        preference: str = "",
        clock: Callable[[], float] = time.monotonic,
        on_quit: Callable[[], None] | None = None,
    ) -> None:
        self._surface = surface
        self._status = status
        self._artwork = artwork
        self._preference = preference.strip()
        self._clock = clock
        self._on_quit = on_quit

        self._registry = ZoneRegistry()
        self._transport: RemoteTransport | None = None
        self._core_name: str | None = None
        self._active_zone_id: str | None = None
        self._active_zone: Zone | None = None
        self._anchor = SeekAnchor.idle(clock())
        self._projection = idle_projection()
        self._tasks: set[asyncio.Task] = set()

        self.commands = CommandRouter(
            resolve_zone=self.ensure_active_zone,
            get_transport=lambda: self._transport,
            get_projection=lambda: self._projection,
        )

    # ── Read-only state ──

    @property
    def registry(self) -> ZoneRegistry:
        return self._registry

    @property
    def active_zone(self) -> Zone | None:
        return self._active_zone

    @property
    def projection(self) -> PlayerProjection:
        return self._projection

    @property
    def anchor(self) -> SeekAnchor:
        return self._anchor

    @property
    def core_name(self) -> str | None:
        return self._core_name

    @property
    def session_active(self) -> bool:
        return self._transport is not None

    def get_position(self) -> int:
        """Current position estimate in microseconds."""
        if self._active_zone is None:
            return 0
        return current_position_micros(self._anchor, self._clock())

    # ── Session lifecycle ──

    def start(self) -> None:
        self._surface.apply(self._projection)
        self._set_status(WAITING_STATUS)

    def attach_session(
        self, transport: RemoteTransport, image_fetcher: ImageFetcher | None, core_name: str
    ) -> None:
        """Called once the Roon Core has paired."""
        self._transport = transport
        self._artwork.fetcher = image_fetcher
        self._core_name = core_name
        logger.info("Paired with Roon Core %s", core_name)
        self._set_status(f"Connected to {core_name}")

    def detach_session(self) -> None:
        """Called when the Roon Core connection is lost."""
        if self._core_name:
            logger.warning("Lost connection to Roon Core %s", self._core_name)
        self._transport = None
        self._artwork.fetcher = None
        self._core_name = None
        self._registry.replace_all([])
        self._activate(None)
        self._set_status(WAITING_STATUS)

    # ── Feed events ──

    def handle_event(self, event: FeedEvent) -> None:
        if isinstance(event, Subscribed):
            self.on_subscribed(event.zones)
        elif isinstance(event, Changed):
            self.on_changed(event)
        elif isinstance(event, Unsubscribed):
            self.on_unsubscribed()
        else:
            logger.debug("Unhandled feed event %r", event)

    def on_subscribed(self, zones: list[Zone]) -> None:
        logger.info("Initial zone list received (%d zones)", len(zones))
        self._registry.replace_all(zones)
        self._select_and_activate()

    def on_unsubscribed(self) -> None:
        logger.warning("Transport subscription unsubscribed")
        self._registry.replace_all([])
        self._activate(None)

    def on_changed(self, change: Changed) -> None:
        for zone_id in change.zones_removed:
            self._registry.remove(zone_id)
            if zone_id == self._active_zone_id:
                logger.info("Active zone %s removed", zone_id)
                self._activate(None)

        for zone in change.zones_added:
            self._registry.upsert(zone)
            logger.debug("Zone added: %s (%s)", zone.zone_id, zone.display_name)

        for zone in change.zones_changed:
            self._registry.upsert(zone)
            if zone.zone_id == self._active_zone_id:
                self._activate(zone)

        for delta in change.zones_seek_changed:
            zone = self._registry.apply_seek_delta(delta.zone_id, delta.seek_position, delta.queue_time_remaining)
            if zone is None or zone.zone_id != self._active_zone_id:
                continue
            self._active_zone = zone
            self._anchor = SeekAnchor.from_zone(zone, self._clock())
            self._refresh_seekability(zone)
            self._surface.seeked(to_micros(delta.seek_position))

        if self._active_zone_id is None:
            self._select_and_activate()

    # ── Selection ──

    def ensure_active_zone(self) -> Zone | None:
        """Active zone, selecting one first if none is active."""
        if self._active_zone is None:
            self._select_and_activate()
        return self._active_zone

    def _select_and_activate(self) -> None:
        zone_id = select_zone(self._registry.zones(), self._preference, self._active_zone_id)
        self._activate(self._registry.get(zone_id))

    def _activate(self, zone: Zone | None) -> None:
        now = self._clock()
        if zone is None:
            self._active_zone_id = None
            self._active_zone = None
            self._anchor = SeekAnchor.idle(now)
            self._publish(idle_projection(self.session_active))
            if self._core_name:
                self._set_status(f"Connected to {self._core_name} (no active zone)")
            return

        if zone.zone_id != self._active_zone_id:
            logger.info("Active zone is now %s (%s, %s)", zone.display_name, zone.zone_id, zone.state.value)
        self._active_zone_id = zone.zone_id
        self._active_zone = zone
        self._anchor = SeekAnchor.from_zone(zone, now)
        self._publish(project(zone))
        if self._core_name:
            self._set_status(f"Connected to {self._core_name} · Zone: {zone.display_name}")

        image_key = zone.now_playing.image_key if zone.now_playing else None
        if image_key and self._artwork.enabled and self._artwork.fetcher is not None:
            self._spawn(self._publish_artwork(zone.zone_id, image_key))

    def _refresh_seekability(self, zone: Zone) -> None:
        can_seek = zone.is_seek_allowed and zone.now_playing is not None and zone.now_playing.seek_position is not None
        if can_seek != self._projection.can_seek:
            self._publish(self._projection.model_copy(update={"can_seek": can_seek}))

    # ── Publishing ──

    def _publish(self, projection: PlayerProjection) -> None:
        self._projection = projection
        self._surface.apply(projection)

    async def _publish_artwork(self, zone_id: str, image_key: str) -> None:
        uri = await self._artwork.resolve(image_key)
        if uri is None:
            return
        zone = self._active_zone
        current_key = zone.now_playing.image_key if zone and zone.now_playing else None
        if zone is None or zone.zone_id != zone_id or current_key != image_key:
            logger.debug("Discarding artwork %s, zone %s moved on", image_key, zone_id)
            return
        if self._projection.art_url != uri:
            self._publish(self._projection.model_copy(update={"art_url": uri}))

    def _set_status(self, message: str, is_error: bool = False) -> None:
        try:
            self._status.set_status(message, is_error)
        except Exception:
            logger.exception("Failed to update status")

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for outstanding artwork and command tasks."""
        while self._tasks or self.commands.tasks:
            await asyncio.gather(*self._tasks, *self.commands.tasks, return_exceptions=True)

    # ── Window actions ──

    def raise_window(self) -> None:
        logger.info("Raise requested via MPRIS")

    def quit(self) -> None:
        logger.info("Quit requested via MPRIS, shutting down")
        if self._on_quit is not None:
            self._on_quit()

import asyncio
import copy
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

import aiohttp
from pydantic import ValidationError
from roonapi import RoonApi, RoonDiscovery

from roon_mpris.config import Settings
from roon_mpris.models.state import Changed, SeekDelta, Subscribed, Zone
from roon_mpris.sync.errors import ArtworkFetchFailed, CommandFailed
from roon_mpris.sync.interfaces import SeekMode
from roon_mpris.sync.synchronizer import Synchronizer
from roon_mpris.utils.retry import retry_roon

logger = logging.getLogger(__name__)

APP_INFO = {
    "extension_id": "roon_mpris_bridge",
    "display_name": "Roon MPRIS Bridge",
    "display_version": "0.1.0",
    "publisher": "roon-mpris",
    "email": "mpris@localhost",
}

PAIRING_POLL_INTERVAL = 0.2


def parse_zones(raw_zones: Iterable[Mapping]) -> list[Zone]:
    """Validate raw Roon zone dicts, skipping any that do not parse."""
    zones = []
    for raw in raw_zones:
        try:
            zones.append(Zone.model_validate(raw))
        except ValidationError as exc:
            logger.warning("Ignoring malformed zone %s: %s", raw.get("zone_id"), exc)
    return zones


def _read_zones(read, zones: Mapping, attempts: int):
    # roonapi updates its zone dict in place from the websocket thread
    for attempt in range(1, attempts + 1):
        try:
            return read(zones)
        except RuntimeError:
            if attempt == attempts:
                raise
            logger.debug("Zones changed while reading, retrying (%d/%d)", attempt, attempts)


def snapshot_zones(zones: Mapping[str, Mapping], attempts: int = 5) -> dict[str, dict]:
    """Deep copy of roonapi's zone dict, taken from outside its websocket thread."""
    return _read_zones(lambda z: copy.deepcopy(dict(z)), zones, attempts)


def live_zone_ids(zones: Mapping[str, Mapping], attempts: int = 5) -> set[str]:
    return _read_zones(set, zones, attempts)


def reconcile_removals(known_ids: set[str], live_ids: Iterable[str]) -> list[str]:
    """Ids in ``known_ids`` the core no longer reports. They are dropped from ``known_ids``."""
    removed = sorted(known_ids.difference(live_ids))
    known_ids.difference_update(removed)
    return removed


def translate_state_change(
    event: str, changed_ids: Iterable[str], zones: Mapping[str, Mapping], known_ids: set[str]
) -> Changed | None:
    """Turn a roonapi state callback into a change set.

    ``zones`` holds copies of the affected zones taken when the callback fired.
    ``known_ids`` is updated in place so later callbacks can tell additions from
    changes. roonapi reports no callback for removed zones; those are found by
    ``reconcile_removals``.
    """
    changed_ids = list(changed_ids)
    if event == "zones_seek_changed":
        deltas = []
        for zone_id in changed_ids:
            raw = zones.get(zone_id)
            if raw is None:
                continue
            seek = raw.get("seek_position")
            if seek is None:
                seek = (raw.get("now_playing") or {}).get("seek_position")
            deltas.append(
                SeekDelta(
                    zone_id=zone_id,
                    seek_position=seek,
                    queue_time_remaining=raw.get("queue_time_remaining"),
                )
            )
        return Changed(zones_seek_changed=deltas)

    if event == "zones_changed":
        added, changed = [], []
        for zone in parse_zones(zones[zone_id] for zone_id in changed_ids if zone_id in zones):
            (changed if zone.zone_id in known_ids else added).append(zone)
            known_ids.add(zone.zone_id)
        return Changed(zones_added=added, zones_changed=changed)

    return None


def with_removals(change: Changed | None, removed: list[str]) -> Changed | None:
    """Add removed zone ids to a change set, dropping any updates for those zones."""
    if not removed:
        return change
    if change is None:
        return Changed(zones_removed=removed)
    gone = set(removed)
    return change.model_copy(
        update={
            "zones_removed": removed,
            "zones_added": [zone for zone in change.zones_added if zone.zone_id not in gone],
            "zones_changed": [zone for zone in change.zones_changed if zone.zone_id not in gone],
            "zones_seek_changed": [d for d in change.zones_seek_changed if d.zone_id not in gone],
        }
    )


class RoonTransport:
    """Transport commands against a paired Roon Core."""

    def __init__(self, api: RoonApi) -> None:
        self._api = api

    async def control(self, zone_id: str, verb: str) -> None:
        try:
            await asyncio.to_thread(self._api.playback_control, zone_id, verb)
        except Exception as exc:
            raise CommandFailed(verb, str(exc)) from exc

    async def seek(self, zone_id: str, mode: SeekMode, seconds: float) -> None:
        try:
            await asyncio.to_thread(self._api.seek, zone_id, seconds, mode)
        except Exception as exc:
            raise CommandFailed(f"seek ({mode})", str(exc)) from exc


class RoonImageFetcher:
    """Downloads Roon images through the core's image endpoint."""

    def __init__(self, api: RoonApi, session: aiohttp.ClientSession, size: int = 512) -> None:
        self._api = api
        self._session = session
        self._size = size

    async def fetch(self, image_key: str) -> tuple[str, bytes]:
        url = self._api.get_image(image_key, scale="fit", width=self._size, height=self._size)
        try:
            async with self._session.get(url, timeout=aiohttp.ClientTimeout(total=10)) as resp:
                resp.raise_for_status()
                return resp.content_type, await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ArtworkFetchFailed(str(exc)) from exc


class RoonSessionManager:
    """Finds and pairs with a Roon Core, then feeds zone events to the synchronizer."""

    def __init__(self, settings: Settings, synchronizer: Synchronizer) -> None:
        self._settings = settings
        self._synchronizer = synchronizer
        self._api: RoonApi | None = None
        self._pairing: RoonApi | None = None
        self._http_session: aiohttp.ClientSession | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._known_ids: set[str] = set()
        self._watcher: asyncio.Task | None = None

    @property
    def connected(self) -> bool:
        return self._api is not None

    async def run(self) -> None:
        """Discover, pair and subscribe. Pairing waits until the extension is enabled in Roon."""
        self._loop = asyncio.get_running_loop()
        host, port = await retry_roon(max_retries=self._settings.discovery_retries)(self._locate)()
        logger.info("Connecting to Roon Core at %s:%d", host, port)
        api = await asyncio.to_thread(self._connect, host, port)
        self._pairing = api
        await self._wait_until_paired(api)
        self._pairing = None
        self._save_token(api.token)

        self._api = api
        self._http_session = aiohttp.ClientSession()
        core_name = getattr(api, "core_name", None) or host
        self._synchronizer.attach_session(
            RoonTransport(api),
            RoonImageFetcher(api, self._http_session, size=self._settings.art_size),
            core_name,
        )

        # Register before the snapshot; callbacks are queued behind it on the loop.
        api.register_state_callback(self._on_state_change)
        zones = parse_zones(snapshot_zones(api.zones).values())
        self._known_ids = {zone.zone_id for zone in zones}
        self._synchronizer.handle_event(Subscribed(zones=zones))
        self._watcher = asyncio.create_task(self._watch_removals())

    async def stop(self) -> None:
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None
        pairing, self._pairing = self._pairing, None
        if pairing is not None:
            pairing.stop()
        api, self._api = self._api, None
        if api is not None:
            try:
                await asyncio.to_thread(api.stop)
            except Exception:
                logger.exception("Error while closing the Roon connection")
            self._synchronizer.detach_session()
        if self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    async def _wait_until_paired(self, api: RoonApi) -> None:
        if not api.ready:
            logger.info("Waiting for the extension to be enabled in Roon (Settings > Extensions)")
        while not api.ready:
            await asyncio.sleep(PAIRING_POLL_INTERVAL)

    async def _locate(self) -> tuple[str, int]:
        if self._settings.core_host:
            return self._settings.core_host, self._settings.core_port
        return await asyncio.to_thread(self._discover)

    @staticmethod
    def _discover() -> tuple[str, int]:
        discovery = RoonDiscovery(None)
        try:
            found = discovery.first()
        except IndexError:
            found = None
        finally:
            discovery.stop()
        if not found:
            raise ConnectionError("No Roon Core found on the network")
        return found[0], int(found[1])

    def _connect(self, host: str, port: int) -> RoonApi:
        return RoonApi(APP_INFO, self._load_token(), host, port, blocking_init=False)

    def _load_token(self) -> str | None:
        if not self._settings.token_file:
            return None
        path = Path(self._settings.token_file).expanduser()
        try:
            return path.read_text().strip() or None
        except FileNotFoundError:
            return None

    def _save_token(self, token: str | None) -> None:
        if not self._settings.token_file or not token:
            return
        path = Path(self._settings.token_file).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(token)
        except OSError:
            logger.exception("Could not save Roon token to %s", path)

    async def _watch_removals(self) -> None:
        while True:
            await asyncio.sleep(self._settings.removal_check_interval)
            self._apply_removals()

    def _apply_removals(self) -> None:
        api = self._api
        if api is None:
            return
        removed = reconcile_removals(self._known_ids, live_zone_ids(api.zones))
        if removed:
            logger.info("Zones removed by the core: %s", removed)
            self._synchronizer.handle_event(Changed(zones_removed=removed))

    def _on_state_change(self, event: str, changed_ids: list[str]) -> None:
        """roonapi callback; runs on the websocket thread."""
        api, loop = self._api, self._loop
        if api is None or loop is None:
            return
        zones = {zone_id: copy.deepcopy(api.zones[zone_id]) for zone_id in changed_ids if zone_id in api.zones}
        if event == "zones_seek_changed":
            # Seek items are merged into the live zone; clear so an item without one reads as unknown.
            for zone_id in zones:
                api.zones[zone_id].pop("seek_position", None)
        loop.call_soon_threadsafe(self._apply_state_change, event, list(changed_ids), zones)

    def _apply_state_change(self, event: str, changed_ids: list[str], zones: dict) -> None:
        change = translate_state_change(event, changed_ids, zones, self._known_ids)
        api = self._api
        if api is not None:
            change = with_removals(change, reconcile_removals(self._known_ids, live_zone_ids(api.zones)))
        if change is None:
            logger.debug("Unhandled Roon event %s for %s", event, changed_ids)
            return
        self._synchronizer.handle_event(change)

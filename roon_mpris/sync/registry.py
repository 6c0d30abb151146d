import logging
from collections.abc import Iterable

from roon_mpris.models.state import NowPlaying, Zone

logger = logging.getLogger(__name__)


class ZoneRegistry:
    """Mirror of the zones known to the Roon Core, keyed by zone id."""

    def __init__(self) -> None:
        self._zones: dict[str, Zone] = {}

    def __contains__(self, zone_id: str) -> bool:
        return zone_id in self._zones

    def __len__(self) -> int:
        return len(self._zones)

    def get(self, zone_id: str | None) -> Zone | None:
        if zone_id is None:
            return None
        return self._zones.get(zone_id)

    def zones(self) -> list[Zone]:
        """Zones in insertion order."""
        return list(self._zones.values())

    def replace_all(self, zones: Iterable[Zone]) -> None:
        self._zones = {zone.zone_id: zone for zone in zones}
        logger.debug("Zone snapshot loaded: %s", list(self._zones))

    def upsert(self, zone: Zone) -> None:
        self._zones[zone.zone_id] = zone

    def remove(self, zone_id: str) -> bool:
        return self._zones.pop(zone_id, None) is not None

    def apply_seek_delta(
        self, zone_id: str, seek_position: float | None, queue_time_remaining: float | None
    ) -> Zone | None:
        """Patch the seek position of a known zone and return the updated zone."""
        zone = self._zones.get(zone_id)
        if zone is None:
            return None
        now_playing = (zone.now_playing or NowPlaying()).model_copy(update={"seek_position": seek_position})
        updated = zone.model_copy(
            update={"now_playing": now_playing, "queue_time_remaining": queue_time_remaining}
        )
        self._zones[zone_id] = updated
        return updated

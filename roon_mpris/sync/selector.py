from collections.abc import Sequence

from roon_mpris.models.state import Zone, ZoneState
from roon_mpris.utils.zone import matches_preference


def select_zone(zones: Sequence[Zone], preference: str = "", current_active_id: str | None = None) -> str | None:
    """Pick the one zone to expose.

    Order: the preferred zone, the first playing zone, the current zone if it
    still exists, then the first zone. None only when there are no zones.
    """
    if not zones:
        return None

    if preference.strip():
        for zone in zones:
            if matches_preference(zone, preference):
                return zone.zone_id

    for zone in zones:
        if zone.state == ZoneState.PLAYING:
            return zone.zone_id

    if current_active_id is not None:
        for zone in zones:
            if zone.zone_id == current_active_id:
                return zone.zone_id

    return zones[0].zone_id

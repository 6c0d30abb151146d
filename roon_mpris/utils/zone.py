import re

from roon_mpris.models.state import Zone

_OBJECT_PATH_UNSAFE = re.compile(r"[^A-Za-z0-9_]")


def normalize_preference(name: str) -> str:
    """Normalize a zone preference or candidate name for comparison.

    Lowercase and strip leading/trailing whitespace.
    """
    return name.strip().lower()


def matches_preference(zone: Zone, preference: str) -> bool:
    """True if the zone id, name, or any output id or name equals the preference."""
    wanted = normalize_preference(preference)
    if not wanted:
        return False
    candidates = [zone.zone_id, zone.display_name]
    for output in zone.outputs:
        candidates.extend((output.output_id, output.display_name))
    return any(candidate and candidate.lower() == wanted for candidate in candidates)


def object_path_segment(value: str) -> str:
    """Make a string usable as one D-Bus object path element."""
    return _OBJECT_PATH_UNSAFE.sub("_", value) or "_"

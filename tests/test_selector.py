"""Tests for choosing the zone to expose."""

from conftest import make_zone

from roon_mpris.sync.selector import select_zone


def _zones():
    return [
        make_zone("a", display_name="Kitchen", state="stopped"),
        make_zone(
            "b",
            display_name="Study",
            state="paused",
            outputs=[{"output_id": "out-b", "display_name": "Desk DAC"}],
        ),
        make_zone("c", display_name="Lounge", state="playing"),
    ]


def test_empty_registry_selects_nothing() -> None:
    assert select_zone([], "kitchen", "a") is None


def test_playing_zone_wins_without_preference() -> None:
    assert select_zone(_zones()) == "c"


def test_preference_matches_name_case_insensitively() -> None:
    assert select_zone(_zones(), "  kitchen ") == "a"


def test_preference_matches_zone_id_and_outputs() -> None:
    zones = _zones()
    assert select_zone(zones, "B") == "b"
    assert select_zone(zones, "desk dac") == "b"
    assert select_zone(zones, "OUT-B") == "b"


def test_unmatched_preference_falls_through_to_playing_zone() -> None:
    assert select_zone(_zones(), "garage") == "c"


def test_current_zone_is_kept_when_nothing_plays() -> None:
    zones = [make_zone("a"), make_zone("b", state="paused")]
    assert select_zone(zones, "", "b") == "b"


def test_first_zone_when_nothing_else_qualifies() -> None:
    zones = [make_zone("a"), make_zone("b")]
    assert select_zone(zones, "", "gone") == "a"


def test_selection_is_deterministic() -> None:
    zones = _zones()
    assert {select_zone(zones, "study", None) for _ in range(10)} == {"b"}

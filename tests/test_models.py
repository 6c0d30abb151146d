"""Tests for parsing Roon zone JSON into the zone model."""

from roon_mpris.models.state import (
    LoopMode,
    PlainText,
    StructuredLines,
    Zone,
    ZoneState,
    finite_number,
    to_text_source,
)


def test_text_sources_are_classified() -> None:
    assert to_text_source("Song") == PlainText(text="Song")
    assert to_text_source(7) == PlainText(text="7")
    assert to_text_source(7.0) == PlainText(text="7")
    assert to_text_source({"line1": "a"}) == StructuredLines(lines={"line1": "a"})
    assert to_text_source("") is None
    assert to_text_source(None) is None
    assert to_text_source(["a"]) is None


def test_finite_number() -> None:
    assert finite_number("12.5") == 12.5
    assert finite_number(3) == 3.0
    assert finite_number(None) is None
    assert finite_number("abc") is None
    assert finite_number(float("inf")) is None
    assert finite_number(True) is None


def test_zone_parses_roon_payload() -> None:
    zone = Zone.model_validate(
        {
            "zone_id": "1601",
            "display_name": "Kitchen",
            "state": "playing",
            "is_seek_allowed": True,
            "outputs": [{"output_id": "o1", "display_name": "Kitchen Speaker", "volume": {}}],
            "settings": {"loop": "loop_one", "shuffle": True, "auto_radio": False},
            "now_playing": {
                "seek_position": 10,
                "length": "200",
                "image_key": "abc",
                "three_line": {"line1": "T", "line2": "A", "line3": "Al"},
            },
            "queue_items_remaining": 4,
        }
    )

    assert zone.state == ZoneState.PLAYING
    assert zone.outputs[0].display_name == "Kitchen Speaker"
    assert zone.settings.loop == LoopMode.LOOP_ONE
    assert zone.now_playing.length == 200.0
    assert zone.now_playing.three_line == StructuredLines(lines={"line1": "T", "line2": "A", "line3": "Al"})


def test_unknown_values_fall_back() -> None:
    zone = Zone.model_validate(
        {"zone_id": "z", "state": "buffering", "settings": {"loop": "next"}, "now_playing": {"length": "n/a"}}
    )

    assert zone.state == ZoneState.STOPPED
    assert zone.settings.loop == LoopMode.DISABLED
    assert zone.now_playing.length is None
    assert zone.is_play_allowed is False

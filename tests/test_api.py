"""Tests for the diagnostics HTTP API."""

import pytest
from conftest import make_zone
from fastapi import FastAPI
from fastapi.testclient import TestClient

from roon_mpris.models.state import Subscribed
from roon_mpris.routers import playback, system, zones
from roon_mpris.services.status import StatusBoard
from roon_mpris.sync.projector import IDLE_TRACK_ID


def build_app(synchronizer) -> FastAPI:
    app = FastAPI()
    app.include_router(system.router)
    app.include_router(zones.router)
    app.include_router(playback.router)
    app.state.synchronizer = synchronizer
    app.state.status_board = StatusBoard()
    return app


@pytest.fixture
def client(paired):
    paired.handle_event(
        Subscribed(
            zones=[
                make_zone("a", display_name="Kitchen", outputs=[{"output_id": "o1", "display_name": "Sonus"}]),
                make_zone("b", display_name="Study", state="playing", now_playing={"title": "Song", "length": 120}),
            ]
        )
    )
    with TestClient(build_app(paired)) as test_client:
        yield test_client


def test_health_reports_core_and_active_zone(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "core": "Living Room Core", "zones": 2, "active_zone": "b"}


def test_health_while_waiting(synchronizer) -> None:
    with TestClient(build_app(synchronizer)) as test_client:
        body = test_client.get("/health").json()

    assert body["status"] == "waiting"
    assert body["core"] is None
    assert body["active_zone"] is None


def test_zones_lists_registry_in_order(client) -> None:
    body = client.get("/zones").json()

    assert [zone["zone_id"] for zone in body] == ["a", "b"]
    assert body[0]["outputs"] == ["Sonus"]
    assert body[0]["active"] is False
    assert body[1]["active"] is True
    assert body[1]["state"] == "playing"


def test_player_exposes_projection(client) -> None:
    body = client.get("/player").json()

    assert body["zone_id"] == "b"
    assert body["projection"]["title"] == "Song"
    assert body["projection"]["length"] == 120_000_000
    assert body["projection"]["playback_status"] == "Playing"


def test_transport_verb_is_accepted(client) -> None:
    response = client.post("/player/pause")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_unknown_verb_is_rejected(client) -> None:
    response = client.post("/player/rewind")

    assert response.status_code == 404
    assert response.json()["detail"] == "rewind"


def test_stale_position_is_ignored(client) -> None:
    response = client.post("/player/position", json={"track_id": IDLE_TRACK_ID, "position": 1_000_000})

    assert response.json() == {"status": "ignored"}


def test_position_within_current_track_is_accepted(client) -> None:
    track_id = client.get("/player").json()["projection"]["track_id"]

    response = client.post("/player/position", json={"track_id": track_id, "position": 60_000_000})

    assert response.json() == {"status": "ok"}


def test_commands_ignored_without_session(synchronizer) -> None:
    synchronizer.handle_event(Subscribed(zones=[make_zone("a")]))

    with TestClient(build_app(synchronizer)) as test_client:
        response = test_client.post("/player/seek", json={"offset": 5_000_000})

    assert response.json() == {"status": "ignored"}

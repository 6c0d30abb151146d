"""Fixtures and fakes for testing the Roon MPRIS bridge."""

import asyncio
import logging

import pytest

from roon_mpris.models.state import Zone
from roon_mpris.services.artwork import ArtworkCache
from roon_mpris.sync.errors import ArtworkFetchFailed, CommandFailed
from roon_mpris.sync.synchronizer import Synchronizer


def make_zone(zone_id: str = "z1", **fields) -> Zone:
    raw = {"zone_id": zone_id, "display_name": fields.pop("display_name", zone_id.upper())}
    raw.update(fields)
    return Zone.model_validate(raw)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple] = []
        self.fail = fail

    async def control(self, zone_id: str, verb: str) -> None:
        self.calls.append(("control", zone_id, verb))
        if self.fail:
            raise CommandFailed(verb, "rejected")

    async def seek(self, zone_id: str, mode: str, seconds: float) -> None:
        self.calls.append(("seek", zone_id, mode, seconds))
        if self.fail:
            raise CommandFailed("seek", "rejected")


class FakeFetcher:
    def __init__(self, content_type: str = "image/jpeg", body: bytes = b"\xff\xd8jpeg", fail: bool = False) -> None:
        self.content_type = content_type
        self.body = body
        self.fail = fail
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    async def fetch(self, image_key: str) -> tuple[str, bytes]:
        self.calls.append(image_key)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise ArtworkFetchFailed("boom")
        return self.content_type, self.body


class FakeSurface:
    def __init__(self) -> None:
        self.applied = []
        self.seeks: list[int] = []

    @property
    def last(self):
        return self.applied[-1]

    def apply(self, projection) -> None:
        self.applied.append(projection)

    def seeked(self, position: int) -> None:
        self.seeks.append(position)


class FakeStatus:
    def __init__(self) -> None:
        self.messages: list[tuple[str, bool]] = []

    @property
    def last(self) -> str:
        return self.messages[-1][0]

    def set_status(self, message: str, is_error: bool = False) -> None:
        self.messages.append((message, is_error))


@pytest.fixture(name="caplog")
def caplog_fixture(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    """Set log level to debug for tests using the caplog fixture."""
    caplog.set_level(logging.DEBUG)
    return caplog


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def status() -> FakeStatus:
    return FakeStatus()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def artwork(tmp_path) -> ArtworkCache:
    return ArtworkCache(tmp_path / "art")


@pytest.fixture
def synchronizer(surface, status, artwork, clock) -> Synchronizer:
    return Synchronizer(surface=surface, status=status, artwork=artwork, clock=clock)


@pytest.fixture
def paired(synchronizer, transport, fetcher) -> Synchronizer:
    synchronizer.attach_session(transport, fetcher, "Living Room Core")
    return synchronizer

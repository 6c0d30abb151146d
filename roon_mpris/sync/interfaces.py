from typing import Literal, Protocol

from roon_mpris.models.state import PlayerProjection

SeekMode = Literal["relative", "absolute"]


class RemoteTransport(Protocol):
    async def control(self, zone_id: str, verb: str) -> None: ...

    async def seek(self, zone_id: str, mode: SeekMode, seconds: float) -> None: ...


class ImageFetcher(Protocol):
    async def fetch(self, image_key: str) -> tuple[str, bytes]:
        """Return ``(content_type, body)`` or raise ArtworkFetchFailed."""
        ...


class ControlSurface(Protocol):
    def apply(self, projection: PlayerProjection) -> None: ...

    def seeked(self, position: int) -> None: ...


class StatusSink(Protocol):
    def set_status(self, message: str, is_error: bool = False) -> None: ...

import logging
import time

from roon_mpris.routers.events import broadcast

logger = logging.getLogger(__name__)


class StatusBoard:
    """Keeps the bridge's one-line status and pushes changes to SSE listeners."""

    def __init__(self) -> None:
        self.message: str = ""
        self.is_error: bool = False
        self.updated_at: float | None = None

    def set_status(self, message: str, is_error: bool = False) -> None:
        if message == self.message and is_error == self.is_error:
            return
        self.message = message
        self.is_error = is_error
        self.updated_at = time.time()
        if is_error:
            logger.error("Status: %s", message)
        else:
            logger.info("Status: %s", message)
        broadcast("status", self.as_dict())

    def as_dict(self) -> dict:
        return {"message": self.message, "is_error": self.is_error, "updated_at": self.updated_at}

class SyncError(Exception):
    """Base class for errors raised while bridging Roon to MPRIS."""


class TransportUnavailable(SyncError):
    """No paired Roon Core to send a command to."""


class ZoneUnresolved(SyncError):
    """No zone could be selected for a command."""


class CommandFailed(SyncError):
    """The Roon Core rejected or failed a control or seek request."""

    def __init__(self, action: str, detail: str = "") -> None:
        super().__init__(f"{action} failed: {detail}" if detail else f"{action} failed")
        self.action = action
        self.detail = detail


class ArtworkFetchFailed(SyncError):
    """An image could not be fetched or written to the cache."""


class StaleSeekTarget(SyncError):
    """A SetPosition request referred to a track that is no longer current."""

"""Error taxonomy for the playtest announcement runtime."""

from typing import Optional


class HeraldError(Exception):
    """Base error carrying the operation that failed."""

    def __init__(self, message: str, *, operation: Optional[str] = None):
        self.message = message
        self.operation = operation
        super().__init__(message)


class TransportError(HeraldError):
    """The calendar (or another upstream) could not be reached or read."""


class MalformedUpstreamError(HeraldError):
    """An upstream event exists but its fields cannot be parsed."""


class ChannelOperationError(HeraldError):
    """Posting, editing or deleting a Discord message failed."""


class AnnouncementMissingError(ChannelOperationError):
    """The tracked announcement message no longer exists."""

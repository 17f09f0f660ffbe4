from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

NO_EVENT_TITLE = "No Playtests Found!"

_REQUIRED_TEXT_FIELDS = (
    "title",
    "creator",
    "moderator",
    "location",
    "description",
    "game_mode",
    "gallery_url",
    "featured_image_url",
    "workshop_url",
)


class EventStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class EventSnapshot:
    """
    Result of one calendar poll.

    Only FOUND snapshots carry event data. NOT_FOUND and MALFORMED share the
    fixed NO_EVENT_TITLE so consecutive "nothing scheduled" polls compare as
    the same announcement.
    """

    status: EventStatus
    title: str = NO_EVENT_TITLE
    start_time: Optional[datetime] = None
    creator: str = ""
    moderator: str = ""
    location: str = ""
    description: str = ""
    game_mode: str = ""
    gallery_url: str = ""
    featured_image_url: str = ""
    workshop_url: str = ""
    note: Optional[str] = None

    def __post_init__(self):
        if self.status is not EventStatus.FOUND:
            return

        if self.start_time is None or self.start_time.tzinfo is None:
            raise ValueError("FOUND snapshot requires a timezone-aware start_time")

        missing = [name for name in _REQUIRED_TEXT_FIELDS if not getattr(self, name)]
        if missing:
            raise ValueError(f"FOUND snapshot missing fields: {', '.join(missing)}")

    # ------------------------------------------------------------

    @classmethod
    def not_found(cls, note: Optional[str] = None) -> "EventSnapshot":
        return cls(status=EventStatus.NOT_FOUND, note=note)

    @classmethod
    def malformed(cls, note: str) -> "EventSnapshot":
        return cls(status=EventStatus.MALFORMED, note=note)

    @property
    def found(self) -> bool:
        return self.status is EventStatus.FOUND

    def summary(self) -> dict:
        return {
            "status": self.status.value,
            "title": self.title,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "note": self.note,
        }

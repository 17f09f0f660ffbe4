from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from services.calendar.models import EventSnapshot
from shared.config.bot import DEFAULT_POLL_INTERVAL_TICKS


@dataclass
class AnnouncerState:
    """
    Process-lifetime state of the playtest announcement.

    Owned by exactly one PlaytestAnnouncer and never persisted. Alert flags
    are only ever true while an announcement is posted.
    """

    last_snapshot: EventSnapshot = field(default_factory=EventSnapshot.not_found)
    posted_message_id: Optional[int] = None
    alerted_one_hour: bool = False
    alerted_start: bool = False
    ticks_since_last_poll: int = 0
    poll_interval_ticks: int = DEFAULT_POLL_INTERVAL_TICKS

    @property
    def live(self) -> bool:
        return self.posted_message_id is not None

    def is_same_event(self, snapshot: EventSnapshot) -> bool:
        # Title equality is the only identity the calendar gives us.
        return snapshot.title == self.last_snapshot.title

    def mark_posted(self, message_id: int, snapshot: EventSnapshot) -> None:
        self.posted_message_id = message_id
        self.last_snapshot = snapshot

    def clear_announcement(self) -> None:
        self.posted_message_id = None
        self.alerted_one_hour = False
        self.alerted_start = False

    def poll_due(self) -> bool:
        return self.ticks_since_last_poll >= self.poll_interval_ticks

    def snapshot(self) -> Dict[str, Any]:
        return {
            "live": self.live,
            "posted_message_id": self.posted_message_id,
            "alerted_one_hour": self.alerted_one_hour,
            "alerted_start": self.alerted_start,
            "ticks_since_last_poll": self.ticks_since_last_poll,
            "poll_interval_ticks": self.poll_interval_ticks,
            "last_snapshot": self.last_snapshot.summary(),
        }

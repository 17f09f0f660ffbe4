"""
Playtest announcement formatting.

Pure mapping from an EventSnapshot to an AnnouncementPayload. The current
time is always passed in, so identical inputs render identical payloads.
Converting a payload to a discord.Embed happens at the Discord boundary
(services.discord.embeds).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from services.calendar.models import EventSnapshot, EventStatus, NO_EVENT_TITLE
from shared.config.bot import SiteConfig

FOUND_COLOR = (71, 126, 159)
NO_EVENT_COLOR = (214, 91, 47)

# (label, zone) rendered after the local display time
EXTRA_TIMEZONES: Tuple[Tuple[str, str], ...] = (
    ("EST", "America/New_York"),
    ("PST", "America/Los_Angeles"),
    ("GMT", "Europe/London"),
)

NO_EVENT_DESCRIPTION = (
    "Believe it or not, there aren't any tests scheduled. "
    "Click the link above to schedule your own playtest!"
)


@dataclass
class PayloadField:
    name: str
    value: str
    inline: bool = True


@dataclass
class AnnouncementPayload:
    title: str
    url: str
    description: str
    color: Tuple[int, int, int]
    author_name: str
    author_icon_url: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    footer_text: Optional[str] = None
    footer_icon_url: Optional[str] = None
    fields: List[PayloadField] = field(default_factory=list)
    content: Optional[str] = None

    def field_value(self, name: str) -> Optional[str]:
        for entry in self.fields:
            if entry.name == name:
                return entry.value
        return None


# ------------------------------------------------------------
# Time helpers
# ------------------------------------------------------------

def format_countdown(delta: timedelta) -> str:
    """
    Render a span as ``1D 2H 5M`` with leading zero units dropped.

    The sign is ignored; callers decide between "until" and "ago" phrasing.
    """
    total_minutes = int(abs(delta).total_seconds() // 60)
    days, remainder = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(remainder, 60)

    if days:
        return f"{days}D {hours}H {minutes}M"
    if hours:
        return f"{hours}H {minutes}M"
    return f"{minutes}M"


def format_when(start_time: datetime, local_zone: str = "America/Chicago", local_label: str = "CT") -> str:
    local = start_time.astimezone(ZoneInfo(local_zone))
    parts = [f"{local:%B %a} {local.day}, {local:%H:%M} {local_label}"]

    for label, zone in EXTRA_TIMEZONES:
        converted = start_time.astimezone(ZoneInfo(zone))
        parts.append(f"{converted:%a %H:%M} {label}")

    return " | ".join(parts)


# ------------------------------------------------------------
# Formatter
# ------------------------------------------------------------

class AnnouncementFormatter:
    """
    Builds announcement payloads for the playtest channel, the testing
    channel alerts and the /upcoming command.
    """

    def __init__(
        self,
        *,
        site: Optional[SiteConfig] = None,
        display_timezone: str = "America/Chicago",
        footer_icon_url: Optional[str] = None,
    ):
        self.site = site or SiteConfig()
        self.display_timezone = display_timezone
        self.footer_icon_url = footer_icon_url

        # Fail at construction, not on the first tick
        ZoneInfo(display_timezone)

    def format(
        self,
        snapshot: EventSnapshot,
        *,
        now: datetime,
        user_requested: bool = False,
    ) -> AnnouncementPayload:
        if snapshot.status is EventStatus.FOUND:
            return self._format_event(snapshot, now)
        return self._format_no_event(snapshot)

    # ------------------------------------------------------------

    def time_remaining(self, snapshot: EventSnapshot, now: datetime) -> str:
        delta = snapshot.start_time - now
        if now >= snapshot.start_time:
            return f"Started: {format_countdown(delta)} ago!"
        return format_countdown(delta)

    def _format_event(self, snapshot: EventSnapshot, now: datetime) -> AnnouncementPayload:
        fields = [
            PayloadField("Time Until Test", self.time_remaining(snapshot, now)),
            PayloadField("Creator", snapshot.creator),
            PayloadField("Where?", snapshot.location),
            PayloadField("Moderator", snapshot.moderator),
            PayloadField("More Images", snapshot.gallery_url, inline=False),
            PayloadField(
                "When?",
                format_when(snapshot.start_time, self.display_timezone),
                inline=False,
            ),
        ]

        return AnnouncementPayload(
            title="--Workshop Link--",
            url=snapshot.workshop_url,
            description=snapshot.description,
            color=FOUND_COLOR,
            author_name=snapshot.title,
            author_icon_url=self.site.icon_url,
            image_url=snapshot.featured_image_url,
            thumbnail_url=self.site.logo_url,
            footer_text=self.site.playtesting_url,
            footer_icon_url=self.footer_icon_url,
            fields=fields,
        )

    def _format_no_event(self, snapshot: EventSnapshot) -> AnnouncementPayload:
        description = NO_EVENT_DESCRIPTION
        if snapshot.status is EventStatus.MALFORMED and snapshot.note:
            description = f"{description}\n\n\n**{snapshot.note}**"

        return AnnouncementPayload(
            title="Click here to schedule your playtest!",
            url=self.site.playtesting_url,
            description=description,
            color=NO_EVENT_COLOR,
            author_name=NO_EVENT_TITLE,
            author_icon_url=self.site.icon_url,
            image_url=self.site.header_image_url,
            footer_text=self.site.playtesting_url,
            footer_icon_url=self.footer_icon_url,
        )

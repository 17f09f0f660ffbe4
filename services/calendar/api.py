from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

import httpx

from services.calendar.models import EventSnapshot, EventStatus
from services.playtest.errors import MalformedUpstreamError, TransportError
from shared.logging.logger import get_logger

log = get_logger("calendar.api")

HTML_TAG_RE = re.compile(r"<\s*/?\s*[a-zA-Z][^>]*>")
FIELD_LINE_RE = re.compile(r"^\s*([A-Za-z][A-Za-z ]*?)\s*:\s*(.*)$")

# Description line label -> snapshot field
DESCRIPTION_FIELDS: Dict[str, str] = {
    "creator": "creator",
    "featured image": "featured_image_url",
    "map images": "gallery_url",
    "workshop link": "workshop_url",
    "gamemode": "game_mode",
    "game mode": "game_mode",
    "moderator": "moderator",
    "description": "description",
}

BAD_DESCRIPTION_NOTE = (
    "There was an issue with the Google Calendar event. "
    "If you're seeing this, that means there is probably a test scheduled, "
    "but the description contains HTML code so I cannot properly parse it."
)


class CalendarSource(Protocol):
    async def get_next_event(self) -> EventSnapshot:
        ...


class GoogleCalendarAPI:
    """
    Google Calendar Data API v3 client for the playtest calendar.

    Responsibilities:
    - Fetch the next (or currently running) event on the calendar
    - Parse the event's free-text description into structured fields
    - Return a normalized EventSnapshot

    Transport failures raise TransportError; "nothing scheduled" and
    unparsable events are returned as NOT_FOUND / MALFORMED snapshots.
    """

    EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/{calendar_id}/events"

    def __init__(
        self,
        *,
        api_key: str,
        calendar_id: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise RuntimeError("Google Calendar API key is required")
        if not calendar_id:
            raise RuntimeError("Google Calendar calendar_id is required")

        self.api_key = api_key
        self.calendar_id = calendar_id
        self.timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------

    async def get_next_event(self) -> EventSnapshot:
        try:
            item = await self._fetch_next_item()
        except MalformedUpstreamError as e:
            log.warning(e.message)
            return EventSnapshot.malformed(e.message)

        if item is None:
            log.debug("No upcoming events on the playtest calendar")
            return EventSnapshot.not_found()

        if not isinstance(item, dict):
            log.warning(f"Calendar returned a non-object event: {item!r}")
            return EventSnapshot.malformed("The calendar returned an event this bot cannot read")

        try:
            return parse_event(item)
        except MalformedUpstreamError as e:
            log.warning(f"Malformed calendar event {item.get('id')!r}: {e.message}")
            return EventSnapshot.malformed(e.message)

    # ------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------

    async def _fetch_next_item(self) -> Any:
        params = {
            "key": self.api_key,
            "timeMin": datetime.now(timezone.utc).isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": 1,
        }
        url = self.EVENTS_URL.format(calendar_id=self.calendar_id)

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                r = await client.get(url, params=params)
                r.raise_for_status()
                data = r.json()
            except httpx.HTTPError as e:
                raise TransportError(
                    f"Calendar request failed: {e}",
                    operation="calendar.events.list",
                ) from e
            except ValueError as e:
                raise TransportError(
                    f"Calendar response was not JSON: {e}",
                    operation="calendar.events.list",
                ) from e

        items = data.get("items", []) if isinstance(data, dict) else []
        if not items:
            return None
        if not isinstance(items, list):
            raise MalformedUpstreamError(
                "Calendar response 'items' is not a list",
                operation="calendar.events.list",
            )

        return items[0]


# ------------------------------------------------------------
# Parsing
# ------------------------------------------------------------

def parse_description(text: str) -> Dict[str, str]:
    """
    Split a playtest description into labelled fields.

    Lines look like ``Creator: Someone``. Unlabelled lines following
    ``Description:`` continue the description.
    """
    if HTML_TAG_RE.search(text):
        raise MalformedUpstreamError(BAD_DESCRIPTION_NOTE, operation="parse_description")

    fields: Dict[str, str] = {}
    current: Optional[str] = None

    for line in text.splitlines():
        match = FIELD_LINE_RE.match(line)
        label = match.group(1).strip().lower() if match else None

        if label in DESCRIPTION_FIELDS:
            current = DESCRIPTION_FIELDS[label]
            fields[current] = match.group(2).strip()
            continue

        if current == "description" and line.strip():
            fields["description"] = f"{fields['description']}\n{line.strip()}".strip()

    return fields


def parse_start(raw: Any) -> datetime:
    if not isinstance(raw, dict):
        raise MalformedUpstreamError("Event has no start time", operation="parse_start")

    value = raw.get("dateTime")
    if not value:
        raise MalformedUpstreamError(
            "All-day events cannot be announced; give the playtest a start time",
            operation="parse_start",
        )

    try:
        start = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise MalformedUpstreamError(
            f"Unreadable start time {value!r}", operation="parse_start"
        ) from e

    if start.tzinfo is None:
        raise MalformedUpstreamError(
            f"Start time {value!r} has no UTC offset", operation="parse_start"
        )
    return start


def parse_event(item: Dict[str, Any]) -> EventSnapshot:
    """
    Convert one Calendar API event resource into a FOUND snapshot.

    Raises MalformedUpstreamError when any required field is missing.
    """
    fields = parse_description(item.get("description") or "")

    try:
        return EventSnapshot(
            status=EventStatus.FOUND,
            title=(item.get("summary") or "").strip(),
            start_time=parse_start(item.get("start")),
            location=(item.get("location") or "").strip(),
            **fields,
        )
    except ValueError as e:
        raise MalformedUpstreamError(str(e), operation="parse_event") from e

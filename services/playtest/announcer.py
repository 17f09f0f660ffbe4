"""
Playtest Announcer

Keeps a single announcement message in the announcement channel in sync with
the next event on the playtest calendar, and fires the one-hour and
starting-now alerts into the testing channel.

Transitions (evaluated every `poll_interval_ticks` ticks):
- no announcement             → post
- announcement, same title    → edit in place
- announcement, new title     → delete, reset alert flags, post

IMPORTANT:
- State is only written from on_tick(); the /upcoming read path never
  touches it
- Every failure is contained within the tick and retried on the next one
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from services.calendar.api import CalendarSource
from services.calendar.models import EventSnapshot
from services.playtest.errors import (
    AnnouncementMissingError,
    ChannelOperationError,
    TransportError,
)
from services.playtest.formatter import AnnouncementFormatter, AnnouncementPayload
from services.playtest.sink import ChannelSink
from services.playtest.state import AnnouncerState
from shared.config.bot import DEFAULT_POLL_INTERVAL_TICKS
from shared.logging.logger import get_logger

log = get_logger("playtest.announcer", runtime="discord")

ONE_HOUR = timedelta(hours=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OperationalNotes(Protocol):
    async def note(self, title: str, message: str, *, alert: bool = False) -> None:
        ...


class TickOutcome(str, Enum):
    WAITING = "waiting"
    SKIPPED = "skipped"
    POSTED = "posted"
    UPDATED = "updated"
    REBUILT = "rebuilt"
    FAILED = "failed"


class PlaytestAnnouncer:
    def __init__(
        self,
        source: CalendarSource,
        sink: ChannelSink,
        formatter: AnnouncementFormatter,
        *,
        state: Optional[AnnouncerState] = None,
        poll_interval_ticks: int = DEFAULT_POLL_INTERVAL_TICKS,
        ops_log: Optional[OperationalNotes] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._source = source
        self._sink = sink
        self._formatter = formatter
        self._ops_log = ops_log
        self._clock = clock
        self._lock = asyncio.Lock()

        if state is None:
            state = AnnouncerState(poll_interval_ticks=poll_interval_ticks)
        self._state = state

    # --------------------------------------------------
    # Startup
    # --------------------------------------------------

    async def prime(self) -> EventSnapshot:
        """
        Seed the state with an initial poll so the first comparison is
        against real data.
        """
        try:
            snapshot = await self._source.get_next_event()
        except TransportError as e:
            log.warning(f"Initial calendar poll failed ({e.message}); starting empty")
            snapshot = EventSnapshot.not_found()

        self._state.last_snapshot = snapshot
        log.info(f"Announcer primed with {snapshot.status.value} snapshot: {snapshot.title!r}")
        return snapshot

    # --------------------------------------------------
    # Scheduler path
    # --------------------------------------------------

    async def on_tick(self, now: Optional[datetime] = None) -> TickOutcome:
        if self._lock.locked():
            log.debug("Previous announcer tick still running; skipping")
            return TickOutcome.SKIPPED

        async with self._lock:
            state = self._state
            state.ticks_since_last_poll += 1
            if not state.poll_due():
                return TickOutcome.WAITING

            try:
                snapshot = await self._source.get_next_event()
            except TransportError as e:
                # Counter stays due, so the next tick polls again.
                log.warning(f"Calendar poll failed: {e.message}")
                return TickOutcome.FAILED

            state.ticks_since_last_poll = 0
            now = now or self._clock()

            if not state.live:
                return await self._post(snapshot, now)
            if state.is_same_event(snapshot):
                return await self._update(snapshot, now)
            return await self._rebuild(snapshot, now)

    def request_refresh(self) -> None:
        """Make the next tick poll regardless of the interval counter."""
        self._state.ticks_since_last_poll = self._state.poll_interval_ticks

    # --------------------------------------------------

    async def _post(self, snapshot: EventSnapshot, now: datetime) -> TickOutcome:
        payload = self._formatter.format(snapshot, now=now)
        try:
            message_id = await self._sink.post(payload)
        except ChannelOperationError as e:
            log.error(f"Failed to post announcement: {e.message}")
            return TickOutcome.FAILED

        self._state.mark_posted(message_id, snapshot)
        log.info(f"Announcement posted for {snapshot.title!r} (message_id={message_id})")

        await self._evaluate_alerts(snapshot, now)
        return TickOutcome.POSTED

    async def _update(self, snapshot: EventSnapshot, now: datetime) -> TickOutcome:
        payload = self._formatter.format(snapshot, now=now)
        try:
            await self._sink.edit(self._state.posted_message_id, payload)
        except AnnouncementMissingError:
            log.warning("Announcement message disappeared; posting a new one")
            self._state.clear_announcement()
            return await self._post(snapshot, now)
        except ChannelOperationError as e:
            log.error(f"Failed to update announcement: {e.message}")
            return TickOutcome.FAILED

        self._state.last_snapshot = snapshot
        log.debug(f"Announcement updated for {snapshot.title!r}")

        await self._evaluate_alerts(snapshot, now)
        return TickOutcome.UPDATED

    async def _rebuild(self, snapshot: EventSnapshot, now: datetime) -> TickOutcome:
        previous = self._state.last_snapshot

        try:
            await self._sink.delete(self._state.posted_message_id)
        except AnnouncementMissingError:
            log.info("Old announcement was already gone")
        except ChannelOperationError as e:
            log.error(f"Failed to delete stale announcement: {e.message}")
            return TickOutcome.FAILED

        await self._note(
            "Scrubbing Announcement",
            f"Playtest changed from {previous.title!r} to {snapshot.title!r}. "
            "This is probably because the last playtest is past. "
            "Tearing it down and posting the next test.",
        )

        self._state.clear_announcement()
        self._state.last_snapshot = snapshot

        outcome = await self._post(snapshot, now)
        return TickOutcome.REBUILT if outcome is TickOutcome.POSTED else outcome

    # --------------------------------------------------
    # Alerts
    # --------------------------------------------------

    async def _evaluate_alerts(self, snapshot: EventSnapshot, now: datetime) -> None:
        if not snapshot.found:
            return

        state = self._state

        if not state.alerted_one_hour and now + ONE_HOUR >= snapshot.start_time:
            if await self._send_alert("**Playtest starting in 1 hour**", snapshot, now):
                state.alerted_one_hour = True

        if not state.alerted_start and now >= snapshot.start_time:
            text = f"**Playtest starting now!** `connect {snapshot.location}`"
            if await self._send_alert(text, snapshot, now):
                state.alerted_start = True

    async def _send_alert(self, text: str, snapshot: EventSnapshot, now: datetime) -> bool:
        payload = self._formatter.format(snapshot, now=now)
        try:
            await self._sink.send_alert(text, payload)
        except ChannelOperationError as e:
            log.error(f"Failed to send playtest alert: {e.message}")
            return False

        log.info(f"Playtest alert sent for {snapshot.title!r}: {text}")
        return True

    async def _note(self, title: str, message: str) -> None:
        log.info(f"{title}: {message}")
        if self._ops_log is not None:
            await self._ops_log.note(title, message)

    # --------------------------------------------------
    # User path (read-only)
    # --------------------------------------------------

    async def current_announcement_view(
        self,
        now: Optional[datetime] = None,
    ) -> AnnouncementPayload:
        try:
            snapshot = await self._source.get_next_event()
        except TransportError as e:
            log.warning(f"Calendar lookup for /upcoming failed: {e.message}")
            snapshot = EventSnapshot.not_found()

        return self._formatter.format(
            snapshot,
            now=now or self._clock(),
            user_requested=True,
        )

    # --------------------------------------------------
    # Introspection
    # --------------------------------------------------

    @property
    def state(self) -> AnnouncerState:
        return self._state

    def snapshot(self) -> Dict[str, Any]:
        return self._state.snapshot()

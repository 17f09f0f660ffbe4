import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Route test logs away from the working tree before any logger is created.
os.environ.setdefault("HERALD_LOG_DIR", str(Path(tempfile.gettempdir()) / "herald-test-logs"))

import pytest  # noqa: E402

from services.calendar.models import EventSnapshot, EventStatus  # noqa: E402
from services.playtest.errors import AnnouncementMissingError, ChannelOperationError  # noqa: E402
from services.playtest.formatter import AnnouncementFormatter  # noqa: E402

T0 = datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc)


def make_event(title="Alpha Test", start=None, **overrides) -> EventSnapshot:
    values = dict(
        status=EventStatus.FOUND,
        title=title,
        start_time=start or T0 + timedelta(hours=3),
        creator="Waffle",
        moderator="Mod",
        location="can.playtest.example:27015",
        description="A competitive defusal map.",
        game_mode="Defusal",
        gallery_url="https://imgur.com/a/gallery",
        featured_image_url="https://i.imgur.com/featured.jpg",
        workshop_url="https://steamcommunity.com/sharedfiles/filedetails/?id=123456789",
    )
    values.update(overrides)
    return EventSnapshot(**values)


class FakeSource:
    """Returns queued snapshots (or raises queued exceptions) in order."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def push(self, *results):
        self.results.extend(results)

    async def get_next_event(self):
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeSink:
    def __init__(self):
        self.calls = []
        self.next_id = 1000
        self.fail_post = None
        self.fail_edit = None
        self.fail_delete = None
        self.fail_alert = None

    async def post(self, payload):
        self.calls.append(("post", payload))
        if self.fail_post:
            raise self.fail_post
        self.next_id += 1
        return self.next_id

    async def edit(self, message_id, payload):
        self.calls.append(("edit", message_id, payload))
        if self.fail_edit:
            raise self.fail_edit

    async def delete(self, message_id):
        self.calls.append(("delete", message_id))
        if self.fail_delete:
            raise self.fail_delete

    async def send_alert(self, text, payload=None):
        self.calls.append(("alert", text, payload))
        if self.fail_alert:
            raise self.fail_alert

    def kinds(self):
        return [call[0] for call in self.calls]

    def alerts(self):
        return [call[1] for call in self.calls if call[0] == "alert"]


class RecordingNotes:
    def __init__(self):
        self.notes = []

    async def note(self, title, message, *, alert=False):
        self.notes.append((title, message, alert))


@pytest.fixture
def formatter():
    return AnnouncementFormatter(display_timezone="America/Chicago")


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def missing_error():
    return AnnouncementMissingError("gone", operation="edit")


@pytest.fixture
def channel_error():
    return ChannelOperationError("forbidden", operation="post")

from datetime import timedelta

import pytest

from conftest import T0, FakeSource, RecordingNotes, make_event
from services.calendar.models import EventSnapshot
from services.playtest.announcer import PlaytestAnnouncer, TickOutcome
from services.playtest.errors import TransportError


def build(source, sink, formatter, **kwargs):
    kwargs.setdefault("poll_interval_ticks", 1)
    return PlaytestAnnouncer(source, sink, formatter, clock=lambda: T0, **kwargs)


# ------------------------------------------------------------
# Scenarios
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_idle_state_posts_found_event_without_alerts(sink, formatter):
    announcer = build(FakeSource(make_event(start=T0 + timedelta(hours=3))), sink, formatter)

    outcome = await announcer.on_tick(now=T0)

    assert outcome is TickOutcome.POSTED
    assert sink.kinds() == ["post"]
    payload = sink.calls[0][1]
    assert payload.field_value("Time Until Test") == "3H 0M"
    assert announcer.state.posted_message_id == 1001
    assert announcer.state.alerted_one_hour is False
    assert announcer.state.alerted_start is False


@pytest.mark.asyncio
async def test_one_hour_alert_fires_alongside_edit(sink, formatter):
    start = T0 + timedelta(minutes=45)
    source = FakeSource(make_event(start=start))
    announcer = build(source, sink, formatter)

    await announcer.on_tick(now=start - timedelta(hours=2))
    sink.calls.clear()

    outcome = await announcer.on_tick(now=start - timedelta(hours=1) + timedelta(minutes=1))

    assert outcome is TickOutcome.UPDATED
    assert sink.kinds() == ["edit", "alert"]
    assert sink.alerts() == ["**Playtest starting in 1 hour**"]
    assert announcer.state.alerted_one_hour is True
    assert announcer.state.alerted_start is False


@pytest.mark.asyncio
async def test_new_title_deletes_then_posts_and_resets_flags(sink, formatter):
    alpha = make_event("Alpha Test", start=T0)
    bravo = make_event("Bravo Test", start=T0 + timedelta(days=2))
    source = FakeSource(alpha)
    announcer = build(source, sink, formatter)

    await announcer.on_tick(now=T0 + timedelta(minutes=5))
    assert announcer.state.alerted_one_hour and announcer.state.alerted_start
    first_id = announcer.state.posted_message_id
    sink.calls.clear()

    source.results = [bravo]
    outcome = await announcer.on_tick(now=T0 + timedelta(hours=2))

    assert outcome is TickOutcome.REBUILT
    assert sink.kinds() == ["delete", "post"]
    assert sink.calls[0][1] == first_id
    assert announcer.state.alerted_one_hour is False
    assert announcer.state.alerted_start is False
    assert announcer.state.last_snapshot.title == "Bravo Test"
    assert announcer.state.posted_message_id != first_id


@pytest.mark.asyncio
async def test_repeated_not_found_edits_instead_of_rebuilding(sink, formatter):
    source = FakeSource(EventSnapshot.not_found(), EventSnapshot.not_found())
    announcer = build(source, sink, formatter)

    assert await announcer.on_tick(now=T0) is TickOutcome.POSTED
    assert await announcer.on_tick(now=T0 + timedelta(minutes=1)) is TickOutcome.UPDATED
    assert sink.kinds() == ["post", "edit"]


# ------------------------------------------------------------
# Properties
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_unchanged_title_posts_exactly_once(sink, formatter):
    announcer = build(FakeSource(make_event()), sink, formatter)

    for minute in range(6):
        await announcer.on_tick(now=T0 + timedelta(minutes=minute))

    assert sink.kinds().count("post") == 1
    assert sink.kinds().count("edit") == 5


@pytest.mark.asyncio
async def test_alerts_fire_once_each_even_on_the_same_tick(sink, formatter):
    start = T0
    announcer = build(FakeSource(make_event(start=start)), sink, formatter)

    await announcer.on_tick(now=start + timedelta(minutes=1))
    await announcer.on_tick(now=start + timedelta(minutes=2))
    await announcer.on_tick(now=start + timedelta(minutes=3))

    assert sink.alerts() == [
        "**Playtest starting in 1 hour**",
        "**Playtest starting now!** `connect can.playtest.example:27015`",
    ]


@pytest.mark.asyncio
async def test_start_alert_fires_on_first_tick_past_start(sink, formatter):
    start = T0 + timedelta(minutes=30)
    announcer = build(FakeSource(make_event(start=start)), sink, formatter)

    await announcer.on_tick(now=T0)
    assert sink.alerts() == ["**Playtest starting in 1 hour**"]

    await announcer.on_tick(now=start - timedelta(minutes=1))
    assert len(sink.alerts()) == 1

    await announcer.on_tick(now=start)
    assert len(sink.alerts()) == 2
    assert announcer.state.alerted_start is True


@pytest.mark.asyncio
async def test_malformed_snapshot_is_posted_without_alerts(sink, formatter):
    source = FakeSource(EventSnapshot.malformed("Description contains HTML"))
    announcer = build(source, sink, formatter)

    assert await announcer.on_tick(now=T0) is TickOutcome.POSTED
    assert await announcer.on_tick(now=T0 + timedelta(hours=5)) is TickOutcome.UPDATED
    assert sink.alerts() == []
    assert "**Description contains HTML**" in sink.calls[0][1].description


@pytest.mark.asyncio
async def test_user_view_never_touches_state(sink, formatter):
    start = T0 + timedelta(minutes=10)
    source = FakeSource(make_event(start=start))
    announcer = build(source, sink, formatter)
    await announcer.on_tick(now=T0 - timedelta(hours=3))
    before = announcer.snapshot()

    for minute in range(0, 30, 5):
        payload = await announcer.current_announcement_view(T0 + timedelta(minutes=minute))
        assert payload.author_name == "Alpha Test"

    assert announcer.snapshot() == before
    assert sink.kinds() == ["post"]


@pytest.mark.asyncio
async def test_user_view_degrades_to_no_event_on_transport_error(sink, formatter):
    source = FakeSource(TransportError("timeout"))
    announcer = build(source, sink, formatter)

    payload = await announcer.current_announcement_view(T0)

    assert payload.author_name == "No Playtests Found!"
    assert sink.calls == []


# ------------------------------------------------------------
# Polling and failures
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_poll_interval_skips_intermediate_ticks(sink, formatter):
    source = FakeSource(make_event())
    announcer = build(source, sink, formatter, poll_interval_ticks=3)

    outcomes = [await announcer.on_tick(now=T0) for _ in range(6)]

    assert outcomes == [
        TickOutcome.WAITING,
        TickOutcome.WAITING,
        TickOutcome.POSTED,
        TickOutcome.WAITING,
        TickOutcome.WAITING,
        TickOutcome.UPDATED,
    ]
    assert source.calls == 2


@pytest.mark.asyncio
async def test_refresh_forces_poll_on_next_tick(sink, formatter):
    source = FakeSource(make_event())
    announcer = build(source, sink, formatter, poll_interval_ticks=10)

    announcer.request_refresh()

    assert await announcer.on_tick(now=T0) is TickOutcome.POSTED
    assert source.calls == 1


@pytest.mark.asyncio
async def test_transport_failure_keeps_state_and_retries_next_tick(sink, formatter):
    source = FakeSource(make_event())
    announcer = build(source, sink, formatter, poll_interval_ticks=2)
    await announcer.on_tick(now=T0)
    await announcer.on_tick(now=T0)
    before = announcer.snapshot()

    source.results = [TransportError("boom"), make_event()]
    await announcer.on_tick(now=T0)
    assert await announcer.on_tick(now=T0) is TickOutcome.FAILED
    assert announcer.state.posted_message_id == before["posted_message_id"]
    assert announcer.state.last_snapshot.title == "Alpha Test"

    assert await announcer.on_tick(now=T0) is TickOutcome.UPDATED


@pytest.mark.asyncio
async def test_missing_message_is_reposted(sink, formatter, missing_error):
    announcer = build(FakeSource(make_event()), sink, formatter)
    await announcer.on_tick(now=T0)
    old_id = announcer.state.posted_message_id

    sink.fail_edit = missing_error
    outcome = await announcer.on_tick(now=T0)

    assert outcome is TickOutcome.POSTED
    assert sink.kinds() == ["post", "edit", "post"]
    assert announcer.state.posted_message_id != old_id


@pytest.mark.asyncio
async def test_failed_post_leaves_state_idle(sink, formatter, channel_error):
    sink.fail_post = channel_error
    announcer = build(FakeSource(make_event(start=T0)), sink, formatter)

    assert await announcer.on_tick(now=T0) is TickOutcome.FAILED
    assert announcer.state.live is False
    assert sink.alerts() == []


@pytest.mark.asyncio
async def test_failed_edit_keeps_previous_announcement(sink, formatter, channel_error):
    start = T0 + timedelta(minutes=30)
    source = FakeSource(make_event(start=start))
    announcer = build(source, sink, formatter)
    await announcer.on_tick(now=T0 - timedelta(hours=2))
    posted_id = announcer.state.posted_message_id
    sink.calls.clear()

    sink.fail_edit = channel_error
    source.results = [make_event(start=start, description="Map swapped to v2.")]

    assert await announcer.on_tick(now=T0) is TickOutcome.FAILED
    assert sink.kinds() == ["edit"]
    assert announcer.state.posted_message_id == posted_id
    assert announcer.state.last_snapshot.description == "A competitive defusal map."
    assert announcer.state.alerted_one_hour is False


@pytest.mark.asyncio
async def test_failed_alert_is_retried_on_next_tick(sink, formatter, channel_error):
    start = T0 + timedelta(minutes=30)
    announcer = build(FakeSource(make_event(start=start)), sink, formatter)
    sink.fail_alert = channel_error

    await announcer.on_tick(now=T0)
    assert announcer.state.alerted_one_hour is False

    sink.fail_alert = None
    await announcer.on_tick(now=T0 + timedelta(minutes=1))
    assert announcer.state.alerted_one_hour is True


@pytest.mark.asyncio
async def test_rebuild_writes_operational_note(sink, formatter):
    notes = RecordingNotes()
    source = FakeSource(make_event("Alpha Test"))
    announcer = build(source, sink, formatter, ops_log=notes)
    await announcer.on_tick(now=T0)

    source.results = [make_event("Bravo Test")]
    await announcer.on_tick(now=T0)

    assert [title for title, _, _ in notes.notes] == ["Scrubbing Announcement"]


@pytest.mark.asyncio
async def test_rebuild_tolerates_already_deleted_message(sink, formatter, missing_error):
    source = FakeSource(make_event("Alpha Test"))
    announcer = build(source, sink, formatter)
    await announcer.on_tick(now=T0)

    sink.fail_delete = missing_error
    source.results = [make_event("Bravo Test")]

    assert await announcer.on_tick(now=T0) is TickOutcome.REBUILT


@pytest.mark.asyncio
async def test_overlapping_tick_is_skipped(sink, formatter):
    announcer = build(FakeSource(make_event()), sink, formatter)

    async with announcer._lock:
        assert await announcer.on_tick(now=T0) is TickOutcome.SKIPPED

    assert sink.calls == []


@pytest.mark.asyncio
async def test_prime_seeds_last_snapshot(sink, formatter):
    announcer = build(FakeSource(make_event("Primed Test")), sink, formatter)

    snapshot = await announcer.prime()

    assert snapshot.title == "Primed Test"
    assert announcer.state.last_snapshot.title == "Primed Test"
    assert announcer.state.live is False


@pytest.mark.asyncio
async def test_failed_delete_keeps_old_announcement_and_retries_rebuild(sink, formatter, channel_error):
    notes = RecordingNotes()
    source = FakeSource(make_event("Alpha Test", start=T0))
    announcer = build(source, sink, formatter, ops_log=notes)
    await announcer.on_tick(now=T0 + timedelta(minutes=5))
    old_id = announcer.state.posted_message_id
    sink.calls.clear()

    sink.fail_delete = channel_error
    source.results = [make_event("Bravo Test", start=T0 + timedelta(days=2))]

    assert await announcer.on_tick(now=T0 + timedelta(hours=2)) is TickOutcome.FAILED
    assert sink.kinds() == ["delete"]
    assert announcer.state.posted_message_id == old_id
    assert announcer.state.last_snapshot.title == "Alpha Test"
    assert announcer.state.alerted_one_hour and announcer.state.alerted_start
    assert notes.notes == []

    sink.fail_delete = None
    sink.calls.clear()

    assert await announcer.on_tick(now=T0 + timedelta(hours=2)) is TickOutcome.REBUILT
    assert sink.kinds() == ["delete", "post"]
    assert sink.calls[0][1] == old_id
    assert announcer.state.last_snapshot.title == "Bravo Test"
    assert [title for title, _, _ in notes.notes] == ["Scrubbing Announcement"]

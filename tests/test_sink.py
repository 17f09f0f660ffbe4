from types import SimpleNamespace

import aiohttp
import discord
import pytest

from conftest import T0, FakeSource, make_event
from services.playtest.announcer import PlaytestAnnouncer, TickOutcome
from services.playtest.errors import AnnouncementMissingError, ChannelOperationError
from services.discord.guild_logging import OperationalLog
from services.playtest.sink import DiscordChannelSink

ANNOUNCE_ID = 10
TESTING_ID = 20


def http_error(cls, status):
    return cls(SimpleNamespace(status=status, reason="error"), "failed")


class FakeMessage:
    def __init__(self, channel, message_id):
        self.channel = channel
        self.id = message_id

    async def edit(self, **kwargs):
        self.channel.log.append(("edit", self.id, kwargs))
        if self.channel.fail:
            raise self.channel.fail

    async def delete(self):
        self.channel.log.append(("delete", self.id))
        if self.channel.fail:
            raise self.channel.fail


class FakeChannel(discord.abc.Messageable):
    def __init__(self, guild=None):
        self.guild = guild
        self.log = []
        self.fail = None

    async def _get_channel(self):
        return self

    async def send(self, content=None, **kwargs):
        self.log.append(("send", content, kwargs))
        if self.fail:
            raise self.fail
        return SimpleNamespace(id=555)

    def get_partial_message(self, message_id):
        return FakeMessage(self, message_id)


class FakeBot:
    def __init__(self, channels):
        self.channels = channels
        self.user = None

    def get_channel(self, channel_id):
        return self.channels.get(channel_id)

    async def fetch_channel(self, channel_id):
        raise http_error(discord.NotFound, 404)


@pytest.fixture
def channels():
    role = SimpleNamespace(name="Playtester", mention="<@&77>")
    guild = SimpleNamespace(roles=[role], get_role=lambda role_id: None)
    return {ANNOUNCE_ID: FakeChannel(), TESTING_ID: FakeChannel(guild=guild)}


@pytest.fixture
def sink(channels):
    return DiscordChannelSink(
        FakeBot(channels),
        announcement_channel_id=ANNOUNCE_ID,
        testing_channel_id=TESTING_ID,
        playtester_role="Playtester",
    )


@pytest.fixture
def payload(formatter):
    return formatter.format(make_event(), now=T0)


@pytest.mark.asyncio
async def test_post_returns_message_id(sink, channels, payload):
    assert await sink.post(payload) == 555

    kind, _, kwargs = channels[ANNOUNCE_ID].log[0]
    assert kind == "send"
    assert kwargs["embed"].author.name == "Alpha Test"


@pytest.mark.asyncio
async def test_edit_of_deleted_message_raises_missing(sink, channels, payload):
    channels[ANNOUNCE_ID].fail = http_error(discord.NotFound, 404)

    with pytest.raises(AnnouncementMissingError):
        await sink.edit(1, payload)


@pytest.mark.asyncio
async def test_delete_forbidden_raises_channel_error(sink, channels):
    channels[ANNOUNCE_ID].fail = http_error(discord.Forbidden, 403)

    with pytest.raises(ChannelOperationError) as exc:
        await sink.delete(1)

    assert not isinstance(exc.value, AnnouncementMissingError)


@pytest.mark.asyncio
async def test_alert_mentions_playtester_role(sink, channels, payload):
    await sink.send_alert("**Playtest starting in 1 hour**", payload)

    _, content, kwargs = channels[TESTING_ID].log[0]
    assert content == "<@&77>\n**Playtest starting in 1 hour**"
    assert kwargs["embed"] is not None


@pytest.mark.asyncio
async def test_unknown_channel_raises_channel_error(payload):
    sink = DiscordChannelSink(
        FakeBot({}),
        announcement_channel_id=ANNOUNCE_ID,
        testing_channel_id=TESTING_ID,
        playtester_role="Playtester",
    )

    with pytest.raises(ChannelOperationError):
        await sink.post(payload)


@pytest.mark.asyncio
async def test_connection_errors_become_channel_errors(sink, channels, payload):
    channels[ANNOUNCE_ID].fail = aiohttp.ClientConnectionError("connection reset")
    with pytest.raises(ChannelOperationError):
        await sink.post(payload)

    channels[ANNOUNCE_ID].fail = ConnectionResetError("peer closed")
    with pytest.raises(ChannelOperationError):
        await sink.edit(1, payload)

    channels[ANNOUNCE_ID].fail = discord.InvalidData("bad payload")
    with pytest.raises(ChannelOperationError):
        await sink.delete(1)


@pytest.mark.asyncio
async def test_announcer_survives_dropped_connection(sink, channels, formatter):
    channels[ANNOUNCE_ID].fail = aiohttp.ClientConnectionError("connection reset")
    announcer = PlaytestAnnouncer(FakeSource(make_event()), sink, formatter, poll_interval_ticks=1)

    assert await announcer.on_tick(now=T0) is TickOutcome.FAILED
    assert announcer.state.live is False

    channels[ANNOUNCE_ID].fail = None

    assert await announcer.on_tick(now=T0) is TickOutcome.POSTED
    assert announcer.state.posted_message_id == 555

# ----------------------------------------------------------------------
# Operational log channel
# ----------------------------------------------------------------------

LOG_ID = 30


@pytest.mark.asyncio
async def test_alert_note_mentions_admins():
    channel = FakeChannel()
    notes = OperationalLog(FakeBot({LOG_ID: channel}), channel_id=LOG_ID, admin_ids=(1, 2))

    await notes.note("Playtest scrubbed", "Alpha Test was removed", alert=True)

    _, content, kwargs = channel.log[0]
    assert content == "<@1> <@2>"
    assert kwargs["embed"].title == "Playtest scrubbed"


@pytest.mark.asyncio
async def test_plain_note_has_no_mentions():
    channel = FakeChannel()
    notes = OperationalLog(FakeBot({LOG_ID: channel}), channel_id=LOG_ID, admin_ids=(1,))

    await notes.note("Announcer primed", "nothing scheduled")

    _, content, _ = channel.log[0]
    assert content is None


@pytest.mark.asyncio
async def test_note_delivery_failure_is_dropped():
    channel = FakeChannel()
    channel.fail = http_error(discord.Forbidden, 403)
    notes = OperationalLog(FakeBot({LOG_ID: channel}), channel_id=LOG_ID)

    await notes.note("Announcer primed", "nothing scheduled")

    assert len(channel.log) == 1


@pytest.mark.asyncio
async def test_note_without_channel_only_logs():
    notes = OperationalLog(FakeBot({}), channel_id=None)

    await notes.note("Announcer primed", "nothing scheduled")


@pytest.mark.asyncio
async def test_note_connection_error_is_dropped():
    channel = FakeChannel()
    channel.fail = aiohttp.ClientConnectionError("connection reset")
    notes = OperationalLog(FakeBot({LOG_ID: channel}), channel_id=LOG_ID)

    await notes.note("Scrubbing Announcement", "Alpha Test was replaced", alert=True)

    assert len(channel.log) == 1

"""
Discord delivery for playtest announcements and alerts.

The announcer only sees the ChannelSink protocol; DiscordChannelSink is the
discord.py implementation wired in by the supervisor. All Discord failures
are translated into the errors in services.playtest.errors.
"""

from __future__ import annotations

from typing import Optional, Protocol

import aiohttp
import discord

from services.discord.embeds import payload_to_embed
from services.discord.roles import find_role
from services.playtest.errors import AnnouncementMissingError, ChannelOperationError
from services.playtest.formatter import AnnouncementPayload
from shared.logging.logger import get_logger

log = get_logger("playtest.sink", runtime="discord")

# Failures discord.py can surface from a REST call, beyond HTTPException.
DELIVERY_ERRORS = (discord.DiscordException, aiohttp.ClientError, OSError)


class ChannelSink(Protocol):
    async def post(self, payload: AnnouncementPayload) -> int:
        ...

    async def edit(self, handle: int, payload: AnnouncementPayload) -> None:
        ...

    async def delete(self, handle: int) -> None:
        ...

    async def send_alert(self, text: str, payload: Optional[AnnouncementPayload] = None) -> None:
        ...


class DiscordChannelSink:
    def __init__(
        self,
        bot: discord.Client,
        *,
        announcement_channel_id: int,
        testing_channel_id: int,
        playtester_role: str,
    ):
        self._bot = bot
        self.announcement_channel_id = announcement_channel_id
        self.testing_channel_id = testing_channel_id
        self.playtester_role = playtester_role

    # --------------------------------------------------
    # Resolution
    # --------------------------------------------------

    async def _channel(self, channel_id: int) -> discord.abc.Messageable:
        channel = self._bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self._bot.fetch_channel(channel_id)
            except DELIVERY_ERRORS as e:
                raise ChannelOperationError(
                    f"Channel {channel_id} could not be fetched: {e}",
                    operation="resolve_channel",
                ) from e

        if not isinstance(channel, discord.abc.Messageable):
            raise ChannelOperationError(
                f"Channel {channel_id} is not messageable",
                operation="resolve_channel",
            )
        return channel

    def _embed(self, payload: AnnouncementPayload) -> discord.Embed:
        avatar = None
        if payload.footer_icon_url is None and self._bot.user is not None:
            avatar = self._bot.user.display_avatar.url
        return payload_to_embed(payload, footer_icon_url=avatar)

    def _role_mention(self, channel) -> str:
        role = find_role(getattr(channel, "guild", None), self.playtester_role)

        if role is None:
            log.warning(f"Playtester role {self.playtester_role!r} not found; alert sent without mention")
            return f"@{self.playtester_role}"
        return role.mention

    # --------------------------------------------------
    # ChannelSink
    # --------------------------------------------------

    async def post(self, payload: AnnouncementPayload) -> int:
        channel = await self._channel(self.announcement_channel_id)
        try:
            message = await channel.send(content=payload.content, embed=self._embed(payload))
        except DELIVERY_ERRORS as e:
            raise ChannelOperationError(f"Announcement post failed: {e}", operation="post") from e

        log.info(f"Announcement posted (message_id={message.id})")
        return message.id

    async def edit(self, handle: int, payload: AnnouncementPayload) -> None:
        channel = await self._channel(self.announcement_channel_id)
        message = channel.get_partial_message(handle)
        try:
            await message.edit(content=payload.content, embed=self._embed(payload))
        except discord.NotFound as e:
            raise AnnouncementMissingError(
                f"Announcement {handle} no longer exists", operation="edit"
            ) from e
        except DELIVERY_ERRORS as e:
            raise ChannelOperationError(f"Announcement edit failed: {e}", operation="edit") from e

    async def delete(self, handle: int) -> None:
        channel = await self._channel(self.announcement_channel_id)
        message = channel.get_partial_message(handle)
        try:
            await message.delete()
        except discord.NotFound as e:
            raise AnnouncementMissingError(
                f"Announcement {handle} was already deleted", operation="delete"
            ) from e
        except DELIVERY_ERRORS as e:
            raise ChannelOperationError(f"Announcement delete failed: {e}", operation="delete") from e

        log.info(f"Announcement deleted (message_id={handle})")

    async def send_alert(self, text: str, payload: Optional[AnnouncementPayload] = None) -> None:
        channel = await self._channel(self.testing_channel_id)
        content = f"{self._role_mention(channel)}\n{text}"
        embed = self._embed(payload) if payload is not None else None

        try:
            await channel.send(
                content=content,
                embed=embed,
                allowed_mentions=discord.AllowedMentions(roles=True),
            )
        except DELIVERY_ERRORS as e:
            raise ChannelOperationError(f"Alert send failed: {e}", operation="send_alert") from e

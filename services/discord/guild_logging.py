from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import aiohttp
import discord

from shared.logging.logger import get_logger
from services.discord.embeds import info_embed, error_embed

log = get_logger("discord.guild_logging", runtime="discord")


class OperationalLog:
    """
    Mirrors operational notes (announcement scrubs, command failures) into
    the configured log channel. Delivery problems are logged and dropped; a
    note never fails the operation that wrote it.
    """

    def __init__(
        self,
        bot: Optional[discord.Client] = None,
        *,
        channel_id: Optional[int] = None,
        admin_ids: tuple[int, ...] = (),
    ) -> None:
        self._bot = bot
        self._channel_id = channel_id
        self._admin_ids = admin_ids

    def attach(self, bot: discord.Client) -> None:
        self._bot = bot

    async def note(self, title: str, message: str, *, alert: bool = False) -> None:
        if alert:
            log.warning(f"{title}: {message}")
        else:
            log.info(f"{title}: {message}")

        if self._bot is None or not self._channel_id:
            return

        embed = error_embed(title, message) if alert else info_embed(title, message)
        embed.timestamp = datetime.now(timezone.utc)

        content = None
        if alert and self._admin_ids:
            content = " ".join(f"<@{admin_id}>" for admin_id in self._admin_ids)

        await self._send(embed, content=content)

    async def command_failed(
        self,
        interaction: discord.Interaction,
        *,
        error: str,
    ) -> None:
        command_name = interaction.command.qualified_name if interaction.command else "unknown"
        await self.note(
            "An error occurred!",
            f"Invoking command: /{command_name}\n"
            f"Invoking user: {interaction.user}\n"
            f"Channel: {interaction.channel}\n"
            f"Error reason: {error[:900]}",
            alert=True,
        )

    async def _send(self, embed: discord.Embed, *, content: Optional[str] = None) -> None:
        channel = self._bot.get_channel(self._channel_id)
        if channel is None:
            try:
                channel = await self._bot.fetch_channel(self._channel_id)
            except discord.NotFound:
                log.warning(f"Logging channel {self._channel_id} not found")
                return
            except discord.Forbidden:
                log.warning(f"No access to logging channel {self._channel_id}")
                return
            except (discord.DiscordException, aiohttp.ClientError, OSError) as exc:
                log.warning(f"Failed to fetch logging channel {self._channel_id}: {exc}")
                return

        if not isinstance(channel, discord.abc.Messageable):
            log.warning(f"Logging channel {self._channel_id} is not messageable")
            return

        try:
            await channel.send(content=content, embed=embed)
        except discord.Forbidden:
            log.warning(f"No permissions to send logs to channel {self._channel_id}")
        except (discord.DiscordException, aiohttp.ClientError, OSError) as exc:
            log.warning(f"Failed to send log to channel {self._channel_id}: {exc}")

"""
Discord Client

This module owns the Discord connection itself.
It is intentionally minimal and lifecycle-focused.

Responsibilities:
- connect to Discord
- handle ready / resume / disconnect events
- sync the slash command tree once commands are registered
- route app command failures to the operational log
- expose a clean async run() / shutdown() contract

IMPORTANT:
- This client MUST be controlled by DiscordSupervisor
- This client MUST NOT create its own event loop
- This client MUST NOT schedule the announcer
"""

from __future__ import annotations

import os
import asyncio
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from dotenv import load_dotenv

from shared.logging.logger import get_logger

from services.discord.guild_logging import OperationalLog
from services.discord.heartbeat import DiscordHeartbeat

log = get_logger("discord.client", runtime="discord")

TOKEN_ENV = "DISCORD_BOT_TOKEN"


class DiscordClient:
    """
    Thin wrapper around discord.py Bot.

    This class provides:
    - build_bot() so collaborators can bind to the bot before it connects
    - async run() entrypoint
    - async shutdown()
    - lifecycle event logging
    """

    def __init__(
        self,
        *,
        heartbeat: DiscordHeartbeat,
        ops_log: OperationalLog,
        token: Optional[str] = None,
    ):
        load_dotenv()

        token = token or os.getenv(TOKEN_ENV)
        if not token:
            raise RuntimeError(f"{TOKEN_ENV} not found in environment")

        log.info(f"Discord bot token present: {bool(token)}")

        self._token: str = token
        self._bot: Optional[commands.Bot] = None
        self._ready_event = asyncio.Event()
        self.heartbeat = heartbeat
        self.ops_log = ops_log

    # --------------------------------------------------

    def build_bot(self) -> commands.Bot:
        """
        Construct the discord.py Bot instance. Safe to call more than once.
        """
        if self._bot is not None:
            return self._bot

        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True
        intents.message_content = False  # slash-command focused

        bot = commands.Bot(
            command_prefix="!",
            intents=intents,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=True, users=True),
        )

        # --------------------------------------------------
        # Lifecycle Events
        # --------------------------------------------------

        @bot.event
        async def on_ready():
            log.info(
                f"Discord connected as {bot.user} "
                f"(id={bot.user.id}) "
                f"guilds={len(bot.guilds)}"
            )

            self.heartbeat.start()
            self.heartbeat.set_connected(True)

            try:
                await bot.change_presence(activity=discord.Game(name="/upcoming"))
            except discord.HTTPException as e:
                log.warning(f"Failed to set Discord presence on ready: {e}")

            try:
                await bot.tree.sync()
                log.info("Discord command tree synced")
            except discord.HTTPException as e:
                log.error(f"Failed to sync Discord commands: {e}")

            self._ready_event.set()

        @bot.event
        async def on_resumed():
            log.info("Discord connection resumed")
            self.heartbeat.set_connected(True)

        @bot.event
        async def on_disconnect():
            log.warning("Discord connection lost")
            self.heartbeat.set_connected(False)

        @bot.event
        async def on_guild_join(guild: discord.Guild):
            log.info(
                f"Joined guild: {guild.name} "
                f"(id={guild.id}, members={guild.member_count})"
            )

        # --------------------------------------------------
        # Command Errors
        # --------------------------------------------------

        @bot.tree.error
        async def on_app_command_error(
            interaction: discord.Interaction,
            error: app_commands.AppCommandError,
        ):
            if isinstance(error, app_commands.CheckFailure):
                message = "You do not have permission to use this command."
            else:
                log.error(f"App command failed: {error}")
                await self.ops_log.command_failed(interaction, error=str(error))
                message = "Something went wrong running that command."

            try:
                if interaction.response.is_done():
                    await interaction.followup.send(message, ephemeral=True)
                else:
                    await interaction.response.send_message(message, ephemeral=True)
            except discord.HTTPException as e:
                log.warning(f"Failed to report command error to user: {e}")

        self.ops_log.attach(bot)
        self._bot = bot
        return bot

    # --------------------------------------------------

    async def run(self):
        """
        Start the Discord client and block until shutdown.
        """
        bot = self.build_bot()
        if bot.is_closed():
            raise RuntimeError("Discord client already shut down")

        log.info("Initializing Discord client")

        try:
            await bot.start(self._token)
        except asyncio.CancelledError:
            log.info("Discord client task cancelled")
            raise
        except discord.DiscordException as e:
            log.error(f"Discord client crashed: {e}")
            raise
        finally:
            log.info("Discord client stopped")

    async def wait_until_ready(self):
        await self._ready_event.wait()

    # --------------------------------------------------

    async def shutdown(self):
        """
        Gracefully close the Discord connection.
        """
        if not self._bot:
            return

        log.info("Closing Discord connection")

        try:
            await self._bot.close()
        except discord.DiscordException as e:
            log.warning(f"Discord close error ignored: {e}")

        self.heartbeat.set_connected(False)
        self.heartbeat.stop()
        self._ready_event.clear()

    # --------------------------------------------------

    @property
    def bot(self) -> Optional[commands.Bot]:
        """
        Expose bot instance (read-only) for supervisor hooks.
        """
        return self._bot

    @property
    def ready(self) -> bool:
        return self._ready_event.is_set()

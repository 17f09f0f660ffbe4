"""
Discord Admin Slash Command Registration

This module is the thin registration layer that exposes administrator-only
slash commands to Discord and delegates ALL logic to AdminCommandHandler.

Responsibilities:
- Register admin-only slash commands
- Perform permission gating via decorators
- Delegate execution to handler methods
- Perform Discord I/O (responses) ONLY at the boundary

IMPORTANT DESIGN RULES:
- NO business logic
- NO runtime ownership
- NO Discord client creation
"""

from __future__ import annotations

import json

import discord
from discord import app_commands
from discord.ext import commands

from shared.logging.logger import get_logger

from services.discord.commands.admin import AdminCommandHandler
from services.discord.embeds import error_embed, info_embed
from services.discord.permissions import DiscordPermissionResolver, require_admin

log = get_logger("discord.commands.admin.register", runtime="discord")


def _code_block(data) -> str:
    text = json.dumps(data, indent=2, default=str)
    if len(text) > 3900:
        text = text[:3900] + "\n..."
    return f"```json\n{text}\n```"


# ==================================================
# Registration Entry Point
# ==================================================

def setup(
    bot: commands.Bot,
    *,
    permissions: DiscordPermissionResolver,
    handler: AdminCommandHandler,
):
    """
    Register all admin-level Discord slash commands.
    """

    # --------------------------------------------------
    # /announcer-status
    # --------------------------------------------------

    @app_commands.command(
        name="announcer-status",
        description="Inspect the playtest announcer and runtime heartbeat",
    )
    @require_admin(permissions)
    async def announcer_status(interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)

        result = await handler.cmd_announcer_status(
            user_id=interaction.user.id,
            guild_id=interaction.guild.id if interaction.guild else None,
        )

        embed = info_embed("Announcer status", _code_block(result["announcer"]))
        embed.add_field(
            name="Heartbeat",
            value=_code_block(result["heartbeat"])[:1024],
            inline=False,
        )
        embed.add_field(
            name="Demo worker",
            value=_code_block(result["demos"])[:1024],
            inline=False,
        )
        await interaction.followup.send(embed=embed, ephemeral=True)

    # --------------------------------------------------
    # /announcer-refresh
    # --------------------------------------------------

    @app_commands.command(
        name="announcer-refresh",
        description="Poll the calendar on the next announcer tick",
    )
    @require_admin(permissions)
    async def announcer_refresh(interaction: discord.Interaction):
        result = await handler.cmd_announcer_refresh(
            user_id=interaction.user.id,
            guild_id=interaction.guild.id if interaction.guild else None,
        )

        await interaction.response.send_message(
            content=f"✅ {result['message']}",
            ephemeral=True,
        )

    # --------------------------------------------------
    # /demo-download
    # --------------------------------------------------

    @app_commands.command(
        name="demo-download",
        description="Download the demo of the current playtest from a game server",
    )
    @app_commands.describe(server="Server id from the bot configuration")
    @require_admin(permissions)
    async def demo_download(interaction: discord.Interaction, server: str):
        await interaction.response.defer(ephemeral=True)

        result = await handler.cmd_demo_download(
            user_id=interaction.user.id,
            guild_id=interaction.guild.id if interaction.guild else None,
            server_id=server,
        )

        if result["ok"]:
            embed = info_embed("Demo downloaded", result["message"])
        else:
            embed = error_embed("Demo download failed", result["message"])
        await interaction.followup.send(embed=embed, ephemeral=True)

    # --------------------------------------------------
    # Register Commands
    # --------------------------------------------------

    bot.tree.add_command(announcer_status)
    bot.tree.add_command(announcer_refresh)
    bot.tree.add_command(demo_download)

    log.info("Discord admin slash commands registered")

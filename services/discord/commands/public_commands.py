"""
Discord Public Slash Command Registration

Thin registration layer exposing the member-facing slash commands and
delegating ALL logic to PublicCommandHandler.

IMPORTANT DESIGN RULES:
- NO business logic
- NO Discord client creation
- Discord I/O (responses, role changes) ONLY at the boundary
"""

from __future__ import annotations

from typing import List

import discord
from discord import app_commands
from discord.ext import commands

from shared.logging.logger import get_logger

from services.discord.commands.public import NO_RESULTS_MESSAGE, PublicCommandHandler
from services.discord.embeds import error_embed, payload_to_embed, search_result_embed
from services.discord.roles import find_role
from services.search.models import SearchResult

log = get_logger("discord.commands.public.register", runtime="discord")

SERIES_CHOICES = [
    app_commands.Choice(name="All series", value="all"),
    app_commands.Choice(name="Version 2 series", value="v2series"),
    app_commands.Choice(name="CS:GO bootcamp", value="csgobootcamp"),
    app_commands.Choice(name="3ds Max", value="3dsmax"),
    app_commands.Choice(name="Written tutorials", value="writtentutorials"),
    app_commands.Choice(name="Legacy series", value="legacyseries"),
    app_commands.Choice(name="Hammer troubleshooting", value="hammertroubleshooting"),
    app_commands.Choice(name="FAQ", value="faq"),
]


async def _send_results(interaction: discord.Interaction, results: List[SearchResult]):
    if not results:
        await interaction.followup.send(
            embed=error_embed("No results", NO_RESULTS_MESSAGE),
            ephemeral=True,
        )
        return

    for result in results:
        await interaction.followup.send(embed=search_result_embed(result))


# ==================================================
# Registration Entry Point
# ==================================================

def setup(bot: commands.Bot, *, handler: PublicCommandHandler):
    """
    Register all public Discord slash commands.
    """

    # --------------------------------------------------
    # /upcoming
    # --------------------------------------------------

    @app_commands.command(
        name="upcoming",
        description="Shows you the next playtest",
    )
    async def upcoming(interaction: discord.Interaction):
        await interaction.response.defer()

        payload = await handler.cmd_upcoming(
            user_id=interaction.user.id,
            guild_id=interaction.guild.id if interaction.guild else None,
        )

        footer_icon = bot.user.display_avatar.url if bot.user else None
        await interaction.followup.send(
            embed=payload_to_embed(payload, footer_icon_url=footer_icon),
        )

    # --------------------------------------------------
    # /playtester
    # --------------------------------------------------

    @app_commands.command(
        name="playtester",
        description="Toggles your playtest notifications",
    )
    async def playtester(interaction: discord.Interaction):
        member = interaction.user
        role = find_role(interaction.guild, handler.playtester_role)
        result = handler.cmd_toggle_playtester(
            user_id=member.id,
            guild_id=interaction.guild.id if interaction.guild else None,
            mention=member.mention,
            role_id=role.id if role else None,
            member_role_ids=[r.id for r in getattr(member, "roles", [])],
        )

        if not result["ok"]:
            await interaction.response.send_message(result["message"], ephemeral=True)
            return

        try:
            if result["action"] == "add":
                await member.add_roles(role, reason="Subscribed to playtest notifications")
            else:
                await member.remove_roles(role, reason="Unsubscribed from playtest notifications")
        except discord.HTTPException as e:
            log.error(f"Failed to toggle playtester role for {member}: {e}")
            await interaction.response.send_message(
                "I could not change your roles right now.",
                ephemeral=True,
            )
            return

        log.info(f"{member} playtester role: {result['action']}")
        await interaction.response.send_message(result["message"])

    # --------------------------------------------------
    # /search
    # --------------------------------------------------

    @app_commands.command(
        name="search",
        description="Search the tutorial catalog",
    )
    @app_commands.describe(
        series="Tutorial series to search",
        term="Words to look for",
    )
    @app_commands.choices(series=SERIES_CHOICES)
    async def search(
        interaction: discord.Interaction,
        series: app_commands.Choice[str],
        term: str,
    ):
        await interaction.response.defer()

        results = await handler.cmd_search(
            user_id=interaction.user.id,
            guild_id=interaction.guild.id if interaction.guild else None,
            series=series.value,
            term=term,
        )
        await _send_results(interaction, results)

    # --------------------------------------------------
    # /faq
    # --------------------------------------------------

    @app_commands.command(
        name="faq",
        description="Search the FAQ",
    )
    @app_commands.describe(term="Words to look for")
    async def faq(interaction: discord.Interaction, term: str):
        await interaction.response.defer()

        results = await handler.cmd_faq(
            user_id=interaction.user.id,
            guild_id=interaction.guild.id if interaction.guild else None,
            term=term,
        )
        await _send_results(interaction, results)

    # --------------------------------------------------
    # Register Commands
    # --------------------------------------------------

    bot.tree.add_command(upcoming)
    bot.tree.add_command(playtester)
    bot.tree.add_command(search)
    bot.tree.add_command(faq)

    log.info("Discord public slash commands registered")

"""
Discord Command Package

This package centralizes registration for all Discord command surfaces.

Command categories:
- public → /upcoming, /playtester, /search, /faq
- admin  → administrator-only announcer and demo controls

IMPORTANT DESIGN RULES:
- No command registration on import
- No Discord client ownership
- Explicit setup() calls only
"""

from __future__ import annotations

from discord.ext import commands

from shared.logging.logger import get_logger

from services.discord.commands import admin_commands, public_commands
from services.discord.commands.admin import AdminCommandHandler
from services.discord.commands.public import PublicCommandHandler
from services.discord.permissions import DiscordPermissionResolver

log = get_logger("discord.commands", runtime="discord")


def setup(
    bot: commands.Bot,
    *,
    permissions: DiscordPermissionResolver,
    public: PublicCommandHandler,
    admin: AdminCommandHandler,
):
    """
    Register all Discord command surfaces.

    This function is called exactly once by the Discord client
    during startup.
    """

    public_commands.setup(bot, handler=public)
    admin_commands.setup(bot, permissions=permissions, handler=admin)

    log.info("Discord command surfaces initialized")

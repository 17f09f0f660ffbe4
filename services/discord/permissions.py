"""
Discord Permissions Module

Centralizes the admin policy so commands remain declarative:
- guild members with the Administrator permission are admins
- user ids listed under "admins" in bot.json are admins everywhere

IMPORTANT CONSTRAINTS:
- This module MUST NOT register Discord commands
- This module MUST NOT own a Discord client
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import discord
from discord import app_commands

from shared.logging.logger import get_logger

log = get_logger("discord.permissions", runtime="discord")


class PermissionResult:
    """
    Structured permission check result.
    """

    def __init__(
        self,
        allowed: bool,
        *,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.allowed = allowed
        self.reason = reason
        self.metadata = metadata or {}

    def __bool__(self) -> bool:
        return self.allowed


class DiscordPermissionResolver:
    def __init__(self, admin_ids: Iterable[int] = ()):
        self._admin_ids = frozenset(int(a) for a in admin_ids)

    @property
    def admin_ids(self) -> tuple[int, ...]:
        return tuple(sorted(self._admin_ids))

    def check_admin(
        self,
        *,
        user_id: int,
        guild_administrator: bool = False,
    ) -> PermissionResult:
        if user_id in self._admin_ids:
            return PermissionResult(True, metadata={"mode": "configured"})
        if guild_administrator:
            return PermissionResult(True, metadata={"mode": "guild"})
        return PermissionResult(False, reason="Administrator permission required")


def require_admin(resolver: DiscordPermissionResolver):
    """
    app_commands check enforcing the admin policy.
    """

    async def predicate(interaction: discord.Interaction) -> bool:
        perms = getattr(interaction.user, "guild_permissions", None)
        result = resolver.check_admin(
            user_id=interaction.user.id,
            guild_administrator=bool(perms and perms.administrator),
        )
        if not result:
            log.info(f"Admin command denied for {interaction.user} ({interaction.user.id})")
            raise app_commands.CheckFailure(result.reason)
        return True

    return app_commands.check(predicate)

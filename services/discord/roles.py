"""
Discord Role Lookup

The playtester role may be configured by id or by name. Both the alert sink
and /playtester resolve it through here.
"""

from __future__ import annotations

from typing import Optional

import discord


def find_role(guild: Optional[discord.Guild], configured: str) -> Optional[discord.Role]:
    if guild is None or not configured:
        return None

    role = None
    if configured.isdigit():
        role = guild.get_role(int(configured))
    if role is None:
        role = discord.utils.get(guild.roles, name=configured)
    return role

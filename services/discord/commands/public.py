"""
Discord Public Commands

Handler logic for the member-facing commands:
- /upcoming    → read-only view of the next playtest
- /playtester  → decide whether a member subscribes or unsubscribes
- /search      → tutorial catalog search
- /faq         → FAQ index search

IMPORTANT CONSTRAINTS:
- This module MUST NOT register commands on import
- This module MUST NOT own a Discord client
- This module MUST NOT mutate AnnouncerState
- All Discord objects must be passed in externally
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from shared.logging.logger import get_logger
from services.discord.logging import DiscordLogAdapter
from services.playtest.announcer import PlaytestAnnouncer
from services.playtest.formatter import AnnouncementPayload
from services.search.models import SearchResult
from services.search.service import SearchService

log = get_logger("discord.commands.public", runtime="discord")

NO_RESULTS_MESSAGE = "Could not find anything matching that search."


class PublicCommandHandler:
    """
    Declarative handler for public Discord commands.
    """

    def __init__(
        self,
        *,
        logger: DiscordLogAdapter,
        announcer: PlaytestAnnouncer,
        search: SearchService,
        playtester_role: str,
    ):
        self._logger = logger
        self._announcer = announcer
        self._search = search
        self._playtester_role = playtester_role

    @property
    def playtester_role(self) -> str:
        return self._playtester_role

    # --------------------------------------------------
    # PLAYTEST
    # --------------------------------------------------

    async def cmd_upcoming(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
        now: Optional[datetime] = None,
    ) -> AnnouncementPayload:
        payload = await self._announcer.current_announcement_view(now)

        self._logger.log_command(
            command="upcoming",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
        )
        return payload

    def cmd_toggle_playtester(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
        mention: str,
        role_id: Optional[int],
        member_role_ids: Iterable[int],
    ) -> Dict[str, Any]:
        """
        Work out which way a /playtester call goes. The caller applies the
        role change; this only decides and words the reply.
        """
        if guild_id is None:
            return {"ok": False, "message": "**This command can not be used in a DM**"}

        if role_id is None:
            log.warning(f"Playtester role {self._playtester_role!r} missing in guild {guild_id}")
            return {"ok": False, "message": "The playtester role is not set up on this server."}

        subscribed = role_id in set(member_role_ids)
        if subscribed:
            action = "remove"
            message = f"Sorry to see you go from playtest notifications {mention}!"
        else:
            action = "add"
            message = f"Thanks for subscribing to playtest notifications {mention}!"

        self._logger.log_command(
            command="playtester",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
            extra={"action": action},
        )
        return {"ok": True, "action": action, "message": message}

    # --------------------------------------------------
    # SEARCH
    # --------------------------------------------------

    async def cmd_search(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
        series: str,
        term: str,
    ) -> List[SearchResult]:
        results = await self._search.search(series, term, private=guild_id is None)

        self._logger.log_command(
            command="search",
            guild_id=guild_id,
            user_id=user_id,
            success=bool(results),
            extra={"series": series, "term": term, "results": len(results)},
        )
        return results

    async def cmd_faq(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
        term: str,
    ) -> List[SearchResult]:
        results = await self._search.search_faq(term, private=guild_id is None)

        self._logger.log_command(
            command="faq",
            guild_id=guild_id,
            user_id=user_id,
            success=bool(results),
            extra={"term": term, "results": len(results)},
        )
        return results

"""
Discord Admin Commands

Administrator-only command handlers:
- announcer status inspection (state + heartbeat + demo worker)
- forcing the announcer to poll on its next tick
- planning and queueing a demo download for the current playtest

IMPORTANT CONSTRAINTS:
- This module MUST NOT register commands on import
- This module MUST NOT own a Discord client
- This module MUST NOT perform permission checks directly
- All Discord objects (Interaction, Bot, Context) must be passed in externally
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

from shared.config.bot import BotConfig
from shared.logging.logger import get_logger
from services.demos.models import DemoFetchPlan, DemoResult
from services.demos.worker import DemoDownloadWorker
from services.discord.heartbeat import DiscordHeartbeat
from services.discord.logging import DiscordLogAdapter
from services.playtest.announcer import PlaytestAnnouncer

log = get_logger("discord.commands.admin", runtime="discord")


class AdminCommandHandler:
    """
    Declarative handler for admin-level Discord commands.

    This class does NOT register commands.
    It provides callable handlers to be wired by the Discord client layer.
    """

    def __init__(
        self,
        *,
        logger: DiscordLogAdapter,
        announcer: PlaytestAnnouncer,
        heartbeat: DiscordHeartbeat,
        config: BotConfig,
        demos: Optional[DemoDownloadWorker] = None,
    ):
        self._logger = logger
        self._announcer = announcer
        self._heartbeat = heartbeat
        self._config = config
        self._demos = demos

    # --------------------------------------------------
    # ANNOUNCER
    # --------------------------------------------------

    async def cmd_announcer_status(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
    ) -> Dict[str, Any]:
        self._logger.log_command(
            command="announcer_status",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
        )

        return {
            "ok": True,
            "announcer": self._announcer.snapshot(),
            "heartbeat": self._heartbeat.snapshot().snapshot(),
            "demos": {
                "enabled": self._demos is not None,
                "pending": self._demos.pending if self._demos else 0,
                "busy": self._demos.busy if self._demos else False,
            },
        }

    async def cmd_announcer_refresh(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
    ) -> Dict[str, Any]:
        self._announcer.request_refresh()
        log.info(f"Announcer refresh requested by {user_id}")

        self._logger.log_command(
            command="announcer_refresh",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
        )
        return {"ok": True, "message": "The calendar will be polled on the next tick"}

    # --------------------------------------------------
    # DEMOS
    # --------------------------------------------------

    def plan_demo(self, server_id: str) -> DemoFetchPlan:
        """
        Build a fetch plan for the playtest the announcer currently tracks.
        Raises ValueError with a user-facing message when no plan is possible.
        """
        server = self._config.server(server_id)
        if server is None:
            raise ValueError(f"Unknown server `{server_id}`")

        return DemoFetchPlan.from_snapshot(
            self._announcer.state.last_snapshot,
            server,
            Path(self._config.demo_path),
        )

    async def cmd_demo_download(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
        server_id: str,
    ) -> Dict[str, Any]:
        if self._demos is None:
            return {"ok": False, "message": "Demo downloads are not enabled"}

        try:
            plan = self.plan_demo(server_id)
            future = self._demos.submit(plan)
        except ValueError as e:
            return self._demo_failed(user_id, guild_id, server_id, str(e))
        except asyncio.QueueFull:
            return self._demo_failed(
                user_id, guild_id, server_id, "Too many demo downloads are queued"
            )

        result: DemoResult = await future

        self._logger.log_command(
            command="demo_download",
            guild_id=guild_id,
            user_id=user_id,
            success=result.ok,
            extra={"server": server_id, "demo": plan.demo_name},
        )

        if not result.ok:
            return {
                "ok": False,
                "message": f"Download of `{plan.demo_name}` failed: {result.error}",
            }

        return {
            "ok": True,
            "message": f"Downloaded `{plan.demo_name}` to `{plan.local_dir}`",
            "files": [str(path) for path in result.files],
            "workshop_id": plan.workshop_id,
        }

    def _demo_failed(
        self,
        user_id: int,
        guild_id: Optional[int],
        server_id: str,
        message: str,
    ) -> Dict[str, Any]:
        self._logger.log_command(
            command="demo_download",
            guild_id=guild_id,
            user_id=user_id,
            success=False,
            extra={"server": server_id, "reason": message},
        )
        return {"ok": False, "message": message}

"""
Discord Runtime Supervisor

Owns the lifecycle of the Playtest Herald runtime.

Responsibilities:
- build the Discord client and bind every collaborator to it
- register command surfaces
- schedule the announcer tick loop and the demo download worker
- perform graceful shutdown

IMPORTANT:
- MUST be started by core.discord_app
- MUST NOT create its own event loop
- MUST NOT install signal handlers
- The announcer tick loop is the ONLY writer of AnnouncerState
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from shared.config.bot import BotConfig, load_bot_config
from shared.logging.logger import get_logger
from services.calendar.api import GoogleCalendarAPI
from services.demos.worker import DemoDownloadWorker
from services.discord import commands as command_surfaces
from services.discord.client import DiscordClient
from services.discord.commands.admin import AdminCommandHandler
from services.discord.commands.public import PublicCommandHandler
from services.discord.guild_logging import OperationalLog
from services.discord.heartbeat import DiscordHeartbeat, DiscordHeartbeatState
from services.discord.logging import DiscordLogAdapter
from services.discord.permissions import DiscordPermissionResolver
from services.playtest.announcer import PlaytestAnnouncer, TickOutcome
from services.playtest.formatter import AnnouncementFormatter
from services.playtest.sink import DiscordChannelSink
from services.search.catalog import TutorialCatalog
from services.search.scraper import PageScraper
from services.search.service import SearchService

log = get_logger("discord.supervisor", runtime="discord")


class DiscordSupervisor:
    """
    Owns the runtime lifecycle.

    Contract:
    - start() is awaitable
    - shutdown() is idempotent
    """

    def __init__(self, config: Optional[BotConfig] = None):
        self._config = config or load_bot_config()
        self._tasks: List[asyncio.Task] = []
        self._running: bool = False

        self._heartbeat = DiscordHeartbeat()
        self._ops_log = OperationalLog(
            channel_id=self._config.log_channel_id,
            admin_ids=tuple(self._config.admins),
        )
        self._client: Optional[DiscordClient] = None
        self._announcer: Optional[PlaytestAnnouncer] = None
        self._demos: Optional[DemoDownloadWorker] = None

    # --------------------------------------------------
    # Wiring
    # --------------------------------------------------

    def _build(self) -> None:
        config = self._config
        announcer_cfg = config.announcer

        self._client = DiscordClient(heartbeat=self._heartbeat, ops_log=self._ops_log)
        bot = self._client.build_bot()

        source = GoogleCalendarAPI(
            api_key=config.calendar.api_key,
            calendar_id=config.calendar.calendar_id,
            timeout=config.calendar.timeout_seconds,
        )
        sink = DiscordChannelSink(
            bot,
            announcement_channel_id=announcer_cfg.announcement_channel_id,
            testing_channel_id=announcer_cfg.testing_channel_id,
            playtester_role=announcer_cfg.playtester_role,
        )
        formatter = AnnouncementFormatter(
            site=config.site,
            display_timezone=announcer_cfg.display_timezone,
        )
        self._announcer = PlaytestAnnouncer(
            source,
            sink,
            formatter,
            poll_interval_ticks=announcer_cfg.poll_interval_ticks,
            ops_log=self._ops_log,
        )

        search = SearchService(
            catalog=TutorialCatalog.load(Path(config.search.catalog_path)),
            scraper=PageScraper(
                site_domain=config.search.site_domain,
                default_image_url=config.site.logo_url,
                timeout=config.search.timeout_seconds,
            ),
            search=config.search,
            site=config.site,
        )

        if config.servers:
            self._demos = DemoDownloadWorker()
        else:
            log.info("No game servers configured; demo downloads disabled")

        adapter = DiscordLogAdapter()
        command_surfaces.setup(
            bot,
            permissions=DiscordPermissionResolver(config.admins),
            public=PublicCommandHandler(
                logger=adapter,
                announcer=self._announcer,
                search=search,
                playtester_role=announcer_cfg.playtester_role,
            ),
            admin=AdminCommandHandler(
                logger=adapter,
                announcer=self._announcer,
                heartbeat=self._heartbeat,
                config=config,
                demos=self._demos,
            ),
        )

    # --------------------------------------------------
    # Lifecycle
    # --------------------------------------------------

    async def start(self):
        """
        Start the runtime.
        """
        if self._running:
            log.warning("Discord supervisor already running")
            return

        log.info("Starting Discord supervisor")

        self._build()
        self._heartbeat.start()

        # --------------------------------------------------
        # Discord client main loop
        # --------------------------------------------------
        self._tasks.append(asyncio.create_task(self._client.run(), name="discord-client"))

        # --------------------------------------------------
        # Announcer (primed once Discord is ready)
        # --------------------------------------------------
        if self._config.announcer.announcement_channel_id:
            self._tasks.append(
                asyncio.create_task(self._announcer_loop(), name="playtest-announcer")
            )
        else:
            log.warning("No announcement channel configured; announcer loop disabled")

        # --------------------------------------------------
        # Demo download worker
        # --------------------------------------------------
        if self._demos is not None:
            self._tasks.append(asyncio.create_task(self._demos.run(), name="demo-worker"))

        self._running = True
        log.info("Discord supervisor started")

    async def _announcer_loop(self):
        await self._client.wait_until_ready()
        await self._prime_announcer()

        interval = self._config.announcer.tick_seconds
        log.info(f"Announcer loop running every {interval}s")

        while True:
            await asyncio.sleep(interval)
            await self._tick_announcer()

    async def _prime_announcer(self) -> None:
        try:
            await self._announcer.prime()
        except Exception:
            log.exception("Announcer prime failed; first tick starts from an empty snapshot")

    async def _tick_announcer(self) -> TickOutcome:
        try:
            outcome = await self._announcer.on_tick()
        except Exception:
            log.exception("Announcer tick raised; continuing with the next tick")
            outcome = TickOutcome.FAILED

        self._heartbeat.tick(outcome.value)
        return outcome

    # --------------------------------------------------
    # Shutdown
    # --------------------------------------------------

    async def shutdown(self):
        """
        Gracefully shut down the runtime. In-flight calls are abandoned.
        """
        if not self._running:
            return

        log.info("Shutting down Discord supervisor")

        # --------------------------------------------------
        # Cancel background tasks first so nothing ticks mid-close
        # --------------------------------------------------
        for task in self._tasks:
            if not task.done():
                task.cancel()

        if self._tasks:
            results = await asyncio.gather(*self._tasks, return_exceptions=True)
            for task, result in zip(self._tasks, results):
                if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                    log.warning(f"Task {task.get_name()} ended with error: {result}")

        self._tasks.clear()

        # --------------------------------------------------
        # Close the Discord connection
        # --------------------------------------------------
        if self._client:
            await self._client.shutdown()

        self._running = False
        log.info("Discord supervisor shutdown complete")

    # --------------------------------------------------
    # Read-only Introspection
    # --------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def heartbeat(self) -> DiscordHeartbeatState:
        return self._heartbeat.snapshot()

    @property
    def announcer(self) -> Optional[PlaytestAnnouncer]:
        return self._announcer

    @property
    def task_count(self) -> int:
        return len(self._tasks)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "running": self._running,
            "connected": self.heartbeat.connected,
            "tasks": self.task_count,
            "heartbeat": self.heartbeat.snapshot(),
            "announcer": self._announcer.snapshot() if self._announcer else None,
        }

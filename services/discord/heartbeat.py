"""
Discord Heartbeat Module

Tracks liveness of the bot runtime: when it started, whether the gateway is
connected, and when the announcer last ticked (and with what outcome).

IMPORTANT CONSTRAINTS:
- This module MUST NOT create asyncio tasks
- All scheduling is performed by DiscordSupervisor
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from shared.logging.logger import get_logger

log = get_logger("discord.heartbeat", runtime="discord")


@dataclass(frozen=True)
class DiscordHeartbeatState:
    """
    Immutable snapshot of heartbeat state for diagnostics commands.
    """

    started_at: Optional[datetime] = None
    last_tick_at: Optional[datetime] = None
    last_outcome: Optional[str] = None
    tick_count: int = 0
    connected: bool = False
    outcomes: Dict[str, int] = field(default_factory=dict)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "last_outcome": self.last_outcome,
            "tick_count": self.tick_count,
            "connected": self.connected,
            "outcomes": dict(self.outcomes),
        }


class DiscordHeartbeat:
    """
    The supervisor is expected to:
    - call start() once
    - call tick() after every announcer tick
    - call stop() during shutdown
    """

    def __init__(self):
        self._started_at: Optional[datetime] = None
        self._last_tick_at: Optional[datetime] = None
        self._last_outcome: Optional[str] = None
        self._tick_count: int = 0
        self._connected: bool = False
        self._outcomes: Dict[str, int] = {}

    # --------------------------------------------------
    # Lifecycle
    # --------------------------------------------------

    def start(self):
        if self._started_at is None:
            self._started_at = datetime.now(timezone.utc)
            log.info("Discord heartbeat started")

    def stop(self):
        log.info("Discord heartbeat stopped")

    # --------------------------------------------------
    # State Updates
    # --------------------------------------------------

    def set_connected(self, connected: bool):
        self._connected = connected
        log.debug(f"Discord heartbeat connection state: {connected}")

    def tick(self, outcome: Optional[str] = None):
        self._last_tick_at = datetime.now(timezone.utc)
        self._tick_count += 1
        if outcome:
            self._last_outcome = outcome
            self._outcomes[outcome] = self._outcomes.get(outcome, 0) + 1

    # --------------------------------------------------
    # Snapshot
    # --------------------------------------------------

    def snapshot(self) -> DiscordHeartbeatState:
        return DiscordHeartbeatState(
            started_at=self._started_at,
            last_tick_at=self._last_tick_at,
            last_outcome=self._last_outcome,
            tick_count=self._tick_count,
            connected=self._connected,
            outcomes=dict(self._outcomes),
        )

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from services.calendar.models import EventSnapshot
from shared.config.bot import GameServer

WORKSHOP_ID_RE = re.compile(r"\d+$")


@dataclass(frozen=True)
class DemoFetchPlan:
    """
    Where a playtest's demo lives on the game server and where it lands
    locally. Demos are named ``MM_dd_yyyy_<first word of the title>``.
    """

    server: GameServer
    demo_name: str
    local_dir: Path
    workshop_id: str

    @property
    def remote_name(self) -> str:
        return f"{self.demo_name}.dem"

    @property
    def local_file(self) -> Path:
        return self.local_dir / self.remote_name

    @classmethod
    def from_snapshot(
        cls,
        snapshot: EventSnapshot,
        server: GameServer,
        demo_root: Path,
    ) -> "DemoFetchPlan":
        if not snapshot.found:
            raise ValueError("A demo plan needs a scheduled playtest")

        start = snapshot.start_time
        short_title = snapshot.title.split(" ", 1)[0]
        demo_name = f"{start:%m_%d_%Y}_{short_title}"
        local_dir = Path(demo_root) / f"{start:%Y}" / f"{start:%m} - {start:%B}" / demo_name

        match = WORKSHOP_ID_RE.search(snapshot.workshop_url)
        return cls(
            server=server,
            demo_name=demo_name,
            local_dir=local_dir,
            workshop_id=match.group(0) if match else "",
        )


@dataclass
class DemoResult:
    ok: bool
    plan: DemoFetchPlan
    files: List[Path] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class DemoRequest:
    plan: DemoFetchPlan
    result: "asyncio.Future[DemoResult]"

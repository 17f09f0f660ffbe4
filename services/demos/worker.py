"""
Demo download worker.

Supervisor-owned task that drains a queue of DemoRequests. Callers submit a
plan and await the returned future; results come back through that future,
never through shared state.
"""

from __future__ import annotations

import asyncio
import ftplib
from typing import Callable, Optional

from services.demos.models import DemoFetchPlan, DemoRequest, DemoResult
from services.demos.transports import DemoTransport, transport_for
from shared.config.bot import GameServer
from shared.logging.logger import get_logger

log = get_logger("demos.worker", runtime="discord")

_TRANSFER_ERRORS = ftplib.all_errors + (ValueError, RuntimeError)


class DemoDownloadWorker:
    def __init__(
        self,
        *,
        transport_factory: Callable[[GameServer], DemoTransport] = transport_for,
        max_pending: int = 8,
    ):
        self._transport_factory = transport_factory
        self._queue: asyncio.Queue[DemoRequest] = asyncio.Queue(maxsize=max_pending)
        self._current: Optional[DemoFetchPlan] = None

    # ------------------------------------------------------------

    def submit(self, plan: DemoFetchPlan) -> "asyncio.Future[DemoResult]":
        """
        Queue a download. Raises asyncio.QueueFull when the backlog is full.
        """
        future: asyncio.Future[DemoResult] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(DemoRequest(plan=plan, result=future))
        log.info(f"Demo download queued: {plan.demo_name} from {plan.server.server_id}")
        return future

    async def run(self) -> None:
        log.info("Demo download worker started")
        try:
            while True:
                request = await self._queue.get()
                try:
                    await self._handle(request)
                finally:
                    self._queue.task_done()
        except asyncio.CancelledError:
            log.info("Demo download worker cancelled")
            raise

    async def _handle(self, request: DemoRequest) -> None:
        if request.result.cancelled():
            return

        self._current = request.plan
        try:
            result = await asyncio.to_thread(self.download, request.plan)
        finally:
            self._current = None

        if not request.result.done():
            request.result.set_result(result)

    # ------------------------------------------------------------

    def download(self, plan: DemoFetchPlan) -> DemoResult:
        transport = self._transport_factory(plan.server)
        try:
            transport.connect()
            path = transport.fetch_resource(plan.remote_name, plan.local_file)
        except _TRANSFER_ERRORS as e:
            log.error(f"Demo download failed for {plan.demo_name}: {e}")
            return DemoResult(ok=False, plan=plan, error=str(e))
        finally:
            transport.close()

        return DemoResult(ok=True, plan=plan, files=[path])

    # ------------------------------------------------------------

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def busy(self) -> bool:
        return self._current is not None

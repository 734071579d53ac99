from __future__ import annotations

import asyncio

from microcrm.core.logging_setup import logger as base_logger
from microcrm.services.recurring import RecurringInvoiceGenerator, RunReport

logger = base_logger.getChild("scheduler")


class RecurringInvoiceScheduler:
    """Runs the recurring invoice generator on a fixed interval.

    Owned by the application lifespan. Nothing about past runs is persisted:
    after a restart the first run happens one interval later and runs missed
    while the process was down are not replayed.
    """

    def __init__(self, generator: RecurringInvoiceGenerator, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.generator = generator
        self.interval_seconds = interval_seconds
        self.runs = 0
        self._stopping = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._loop(), name="recurring-invoice-scheduler")
        logger.info("Recurring invoice scheduler started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        """Stop issuing runs and wait for a run already in progress."""
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Recurring invoice scheduler stopped")

    async def run_now(self) -> RunReport:
        report = await asyncio.to_thread(self.generator.run_once)
        self.runs += 1
        return report

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
            if self._stopping.is_set():
                break
            try:
                await self.run_now()
            except Exception:
                logger.exception("Recurring invoice run failed")

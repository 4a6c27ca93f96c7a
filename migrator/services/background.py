"""Cooperative background migration of records outside the eager window."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque, List, Optional

from migrator.core.config import Settings, settings
from migrator.core.logging import get_logger
from migrator.schemas.records import MigrationResult
from migrator.services.migration_service import MigrationService, RecordOutcome, tally
from migrator.services.run_service import RunService

log = get_logger("background")

IdleWaiter = Callable[[], Awaitable[None]]


class BackgroundMigrationScheduler:
    """Queue of key batches drained by a single asyncio driver task.

    The driver waits for the host to be idle (bounded by IDLE_TIMEOUT_SECONDS)
    when an idle waiter is given, otherwise for FALLBACK_DELAY_SECONDS, then
    calls step() until the queue is empty or shutdown() is requested.
    Within a batch it sleeps BACKGROUND_YIELD_SECONDS after every
    BACKGROUND_YIELD_EVERY migrated records.
    """

    def __init__(
        self,
        service: MigrationService,
        idle_waiter: Optional[IdleWaiter] = None,
        config: Settings = settings,
        runs: Optional[RunService] = None,
    ):
        self.service = service
        self.idle_waiter = idle_waiter
        self.config = config
        self.runs = runs
        self._queue: Deque[List[str]] = deque()
        self._task: Optional[asyncio.Task] = None
        self._shutdown = asyncio.Event()

    @property
    def pending(self) -> int:
        return sum(len(batch) for batch in self._queue)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, keys: List[str]) -> None:
        """Fire-and-forget; must be called from a running event loop."""
        if not keys:
            return

        log.debug(f"Scheduling background migration for {len(keys)} old records")
        self._queue.append(list(keys))
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._drive())

    async def step(self) -> MigrationResult:
        """Migrate one queued batch, yielding to the loop periodically."""
        keys = self._queue.popleft()
        run = self.runs.start("background") if self.runs else None
        started = time.perf_counter()
        result = MigrationResult()

        for key in keys:
            if self._shutdown.is_set():
                log.info(f"Background migration stopped, {len(keys) - self._processed(result)} records left")
                break

            outcome = self.service.migrate_record(key)
            tally(result, outcome)
            if outcome is RecordOutcome.MIGRATED and result.migrated % self.config.BACKGROUND_YIELD_EVERY == 0:
                await asyncio.sleep(self.config.BACKGROUND_YIELD_SECONDS)

        result.duration = (time.perf_counter() - started) * 1000
        if run is not None:
            self.runs.finish(run, result)
        log.info(f"Background migration complete: {result.migrated} records (failed={result.failed}, skipped={result.skipped})")
        return result

    async def wait_idle(self) -> None:
        """Wait until the driver task has drained the queue."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def shutdown(self) -> None:
        self._shutdown.set()
        if self._task is not None:
            await self._task
        if self._queue:
            log.info(f"Background queue dropped with {self.pending} records; they stay legacy until next run")
            self._queue.clear()

    # -------------------------------------------------------------------------
    # Driver
    # -------------------------------------------------------------------------
    async def _drive(self) -> None:
        log.debug("Background migration started")
        try:
            await self._wait_for_idle()
            while self._queue and not self._shutdown.is_set():
                await self.step()
        except Exception as exc:  # noqa: BLE001
            log.exception(f"Background migration error: {exc}")

    async def _wait_for_idle(self) -> None:
        if self.idle_waiter is not None:
            try:
                await asyncio.wait_for(self.idle_waiter(), timeout=self.config.IDLE_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                log.debug("Host never went idle, running background migration anyway")
            return

        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=self.config.FALLBACK_DELAY_SECONDS)
        except asyncio.TimeoutError:
            pass

    @staticmethod
    def _processed(result: MigrationResult) -> int:
        return result.migrated + result.failed + result.skipped

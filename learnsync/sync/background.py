"""
Periodic background push.

Runs SyncCoordinator.background_sync as an APScheduler interval job on
the running asyncio loop, and right away when trigger_now() is called
(e.g. the app returns to the foreground). stop() lets an in-flight cycle
finish.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from learnsync.sync.coordinator import SyncCoordinator, SyncReport

logger = logging.getLogger(__name__)

JOB_ID = "learnsync_background_sync"


class BackgroundSync:
    """
    Interval job around a SyncCoordinator.

    Usage:
        background = BackgroundSync(coordinator, interval=10)
        background.start()
        ...
        background.trigger_now()
        ...
        await background.stop()
    """

    def __init__(self, coordinator: SyncCoordinator, interval: float = 10.0):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.coordinator = coordinator
        self.interval = interval
        self.cycles = 0
        self.last_report: Optional[SyncReport] = None
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._job: Optional[Job] = None
        self._idle: Optional[asyncio.Event] = None
        self._in_flight = False
        self._rerun = False
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._job is not None and not self._stopping

    def start(self) -> None:
        """Schedule the job on the running event loop."""
        if self.running:
            return
        self._stopping = False
        self._rerun = False
        self._idle = asyncio.Event()
        self._idle.set()

        self._scheduler = AsyncIOScheduler(
            event_loop=asyncio.get_running_loop(),
            timezone="UTC",
        )
        self._job = self._scheduler.add_job(
            self._cycle,
            trigger="interval",
            seconds=self.interval,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Background sync started (every %.1fs)", self.interval)

    def trigger_now(self) -> None:
        """Run a cycle now, or right after the one in flight."""
        if not self.running:
            return
        if self._in_flight:
            self._rerun = True
            return
        self._job.modify(next_run_time=datetime.now(timezone.utc))

    async def stop(self) -> None:
        """
        Prevent further cycles and wait for the job to go idle.

        A cycle already in flight runs to completion.
        """
        if self._scheduler is None:
            return
        self._stopping = True
        if self._job is not None:
            self._job.remove()
            self._job = None

        await self._idle.wait()

        # Shutdown cancels coroutine jobs that are still running
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Background sync stopped after %d cycles", self.cycles)

    async def _cycle(self) -> None:
        if self._stopping:
            return

        self._in_flight = True
        self._idle.clear()
        try:
            while True:
                self._rerun = False
                try:
                    self.last_report = await self.coordinator.background_sync()
                except Exception:
                    # Replica failures end this cycle only; the next tick retries
                    logger.exception("Background sync cycle failed")
                self.cycles += 1
                # trigger_now() during the cycle asks for one more
                if not (self._rerun and self.running):
                    break
        finally:
            self._in_flight = False
            self._idle.set()

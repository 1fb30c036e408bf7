"""Scheduler — runs the search on a fixed interval using APScheduler."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from scout.runtime import execute_run

if TYPE_CHECKING:
    from scout.config import RunSettings
    from scout.producers import Producer
    from scout.sinks import ChatSink

logger = logging.getLogger(__name__)

JOB_ID = "scheduled_search"


class SearchScheduler:
    """Runs one search immediately on start, then every ``interval_hours``.

    Runs are serialized: a trigger that fires while a run is still in flight
    is skipped by APScheduler, and ``run_once()`` waits for the current run.
    Pass the previous scheduler's ``run_lock`` when replacing it so a run
    still in flight is not overlapped by the new one.
    """

    def __init__(
        self,
        sink: ChatSink,
        destination: str,
        interval_hours: float,
        producer: Producer,
        prompt: str,
        settings: RunSettings,
        run_lock: asyncio.Lock | None = None,
    ) -> None:
        if interval_hours <= 0:
            raise ValueError(f"interval_hours must be positive, got {interval_hours}")
        self.sink = sink
        self.destination = destination
        self.interval_hours = interval_hours
        self.producer = producer
        self.prompt = prompt
        self.settings = settings

        self._scheduler: AsyncIOScheduler | None = None
        self.run_lock = run_lock or asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        """Arm the interval timer and kick off the first run right away."""
        if self._scheduler is not None:
            logger.warning("Scheduled search already started; ignoring start()")
            return

        logger.info(
            f"Starting scheduled search: interval_hours={self.interval_hours}, "
            f"destination={self.destination}"
        )
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(hours=self.interval_hours),
            id=JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler

    def stop(self) -> None:
        """Disarm the timer. Safe to call when not started."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduled search stopped")

    async def run_once(self) -> str:
        """Run a single search now and return its text."""
        return await self._run()

    async def _run(self) -> str:
        async with self.run_lock:
            return await execute_run(
                self.settings,
                self.prompt,
                self.producer,
                self.sink,
                self.destination,
            )

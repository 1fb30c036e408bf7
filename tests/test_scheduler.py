"""Tests for SearchScheduler lifecycle."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from scout.scheduler import JOB_ID, SearchScheduler


async def _noop_producer(request, token):
    return
    yield  # pragma: no cover


def _make_scheduler(settings, sink, interval_hours: float = 6) -> SearchScheduler:
    return SearchScheduler(
        sink=sink,
        destination="C123",
        interval_hours=interval_hours,
        producer=_noop_producer,
        prompt="prompt",
        settings=settings,
    )


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class TestSearchScheduler:
    def test_rejects_non_positive_interval(self, settings, sink):
        with pytest.raises(ValueError):
            _make_scheduler(settings, sink, interval_hours=0)

    def test_stop_before_start_is_noop(self, settings, sink, caplog):
        scheduler = _make_scheduler(settings, sink)

        with caplog.at_level(logging.INFO, logger="scout.scheduler"):
            scheduler.stop()

        assert not scheduler.running
        assert "Scheduled search stopped" not in caplog.text
        assert sink.posts == []

    @pytest.mark.asyncio
    async def test_start_runs_immediately_and_arms_interval(self, settings, sink):
        scheduler = _make_scheduler(settings, sink, interval_hours=6)

        with patch("scout.scheduler.execute_run", new_callable=AsyncMock, return_value="") as run:
            scheduler.start()
            try:
                await _wait_for(lambda: run.await_count == 1)

                job = scheduler._scheduler.get_job(JOB_ID)
                assert job.trigger.interval == timedelta(hours=6)
                run.assert_awaited_once_with(settings, "prompt", _noop_producer, sink, "C123")
            finally:
                scheduler.stop()

    @pytest.mark.asyncio
    async def test_second_start_is_ignored(self, settings, sink, caplog):
        scheduler = _make_scheduler(settings, sink)

        with patch("scout.scheduler.execute_run", new_callable=AsyncMock, return_value=""):
            scheduler.start()
            inner = scheduler._scheduler
            try:
                with caplog.at_level(logging.WARNING, logger="scout.scheduler"):
                    scheduler.start()

                assert scheduler._scheduler is inner
                assert len(inner.get_jobs()) == 1
                assert "already started" in caplog.text
            finally:
                scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_is_idempotent_and_logs_once(self, settings, sink, caplog):
        scheduler = _make_scheduler(settings, sink)

        with patch("scout.scheduler.execute_run", new_callable=AsyncMock, return_value=""):
            scheduler.start()
            assert scheduler.running

            with caplog.at_level(logging.INFO, logger="scout.scheduler"):
                scheduler.stop()
                scheduler.stop()

        assert not scheduler.running
        assert caplog.text.count("Scheduled search stopped") == 1

    @pytest.mark.asyncio
    async def test_run_once_returns_result(self, settings, sink):
        scheduler = _make_scheduler(settings, sink)

        with patch("scout.scheduler.execute_run", new_callable=AsyncMock, return_value="Listing A"):
            assert await scheduler.run_once() == "Listing A"

        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_runs_do_not_overlap(self, settings, sink):
        scheduler = _make_scheduler(settings, sink)
        active = 0
        peak = 0

        async def slow_run(*args):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1
            return "done"

        with patch("scout.scheduler.execute_run", side_effect=slow_run):
            results = await asyncio.gather(scheduler.run_once(), scheduler.run_once())

        assert results == ["done", "done"]
        assert peak == 1

    @pytest.mark.asyncio
    async def test_replacement_sharing_run_lock_waits_for_old_run(self, settings, sink):
        old = _make_scheduler(settings, sink)
        new = SearchScheduler(
            sink=sink,
            destination="C123",
            interval_hours=6,
            producer=_noop_producer,
            prompt="prompt",
            settings=settings,
            run_lock=old.run_lock,
        )
        order = []

        async def slow_run(settings, prompt, producer, sink, destination):
            order.append("begin")
            await asyncio.sleep(0.02)
            order.append("end")
            return "done"

        with patch("scout.scheduler.execute_run", side_effect=slow_run):
            await asyncio.gather(old.run_once(), new.run_once())

        assert new.run_lock is old.run_lock
        assert order == ["begin", "end", "begin", "end"]

    @pytest.mark.asyncio
    async def test_end_to_end_run_delivers_to_sink(self, settings, sink):
        scheduler = _make_scheduler(settings, sink)

        result = await scheduler.run_once()

        assert result == ""
        assert sink.texts == ["starting", "nothing found"]

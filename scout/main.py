"""Scout — FastAPI app that owns the scheduled search.

Loads config.yaml on startup and, when a channel is configured, starts the
interval scheduler. Exposes /run for an on-demand search plus operational
endpoints for health, config viewing, and hot-reload.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request

from scout.config import (
    ScoutConfig,
    activate_config,
    get_config,
    load_config,
    reload_config,
)
from scout.producers import resolve_producer
from scout.scheduler import SearchScheduler
from scout.sinks import resolve_sink

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_scheduler(
    config: ScoutConfig, run_lock: asyncio.Lock | None = None
) -> SearchScheduler | None:
    """Wire producer, sink and prompt into a scheduler, or None if disabled."""
    if not config.schedule.enabled:
        logger.info("📅 Scheduled search disabled (no SEARCH_CHANNEL_ID configured)")
        return None

    return SearchScheduler(
        sink=resolve_sink(config.sink),
        destination=config.schedule.channel_id,
        interval_hours=config.schedule.interval_hours,
        producer=resolve_producer(config.producer),
        prompt=config.prompt.render(),
        settings=config.run,
        run_lock=run_lock,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load config and start scheduler on startup."""
    config = load_config()
    scheduler = build_scheduler(config)
    if scheduler is not None:
        scheduler.start()
        logger.info(
            f"📅 Scheduled search enabled (channel_id={config.schedule.channel_id}, "
            f"interval_hours={config.schedule.interval_hours})"
        )
    app.state.scheduler = scheduler
    logger.info(
        f"Scout started (producer={config.producer.kind}, sink={config.sink.kind}, "
        f"auth={'enabled' if config.api_key else 'disabled'})"
    )
    yield
    if app.state.scheduler is not None:
        app.state.scheduler.stop()
    logger.info("Scout shutting down")


app = FastAPI(title="Scout", version="0.1.0", lifespan=lifespan)


# ---------------------------------------------------------------------------
# Auth dependency
# ---------------------------------------------------------------------------


async def verify_api_key(request: Request) -> None:
    """Validate X-API-Key header against the configured key.
    If no api_key is set in config, auth is disabled (dev mode).
    """
    config = get_config()
    if not config.api_key:
        return  # Auth disabled — no key configured

    key = request.headers.get("X-API-Key")
    if key != config.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


# ---------------------------------------------------------------------------
# Search endpoint
# ---------------------------------------------------------------------------


@app.post("/run", dependencies=[Depends(verify_api_key)])
async def run_search(request: Request):
    """Run one search now, outside the schedule, and return its text.

    The result is also delivered to the configured channel.
    """
    scheduler: SearchScheduler | None = request.app.state.scheduler
    if scheduler is None:
        raise HTTPException(status_code=409, detail="Scheduled search is disabled")

    result = await scheduler.run_once()
    return {"result": result, "length": len(result)}


# ---------------------------------------------------------------------------
# Operational endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health(request: Request):
    """Liveness check."""
    scheduler: SearchScheduler | None = request.app.state.scheduler
    return {
        "status": "healthy",
        "schedule": "running" if scheduler is not None and scheduler.running else "stopped",
    }


@app.get("/config")
async def get_current_config():
    """Return current config as JSON, without the API key."""
    config = get_config()
    return config.model_dump(exclude={"api_key"})


@app.post("/reload", dependencies=[Depends(verify_api_key)])
async def reload(request: Request):
    """Hot-reload config.yaml without container restart.

    Builds a scheduler from the re-read config first; the old config and
    scheduler stay in place if that fails. The new scheduler shares the old
    one's run lock, so a run still in flight finishes before the next starts.
    """
    old_scheduler: SearchScheduler | None = request.app.state.scheduler
    try:
        new_config = reload_config()
        new_scheduler = build_scheduler(
            new_config,
            run_lock=old_scheduler.run_lock if old_scheduler is not None else None,
        )

        activate_config(new_config)
        if old_scheduler is not None:
            old_scheduler.stop()
        if new_scheduler is not None:
            new_scheduler.start()
        request.app.state.scheduler = new_scheduler

        return {
            "status": "reloaded",
            "schedule": "running" if new_scheduler is not None else "stopped",
        }
    except Exception as e:
        logger.error(f"Reload failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Reload failed: {e}")

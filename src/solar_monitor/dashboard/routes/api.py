"""REST API endpoints returning JSON data."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Body, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from solar_monitor.exceptions import UpstreamError
from solar_monitor.monitor.loop import MonitorLoop

router = APIRouter()
logger = logging.getLogger(__name__)


def _monitor(request: Request) -> MonitorLoop | None:
    return getattr(request.app.state, "monitor", None)


def _not_ready() -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"status": "starting", "message": "No readings collected yet"},
    )


# ── Status ───────────────────────────────────────────

@router.get("/status")
async def system_status(request: Request) -> dict:
    """Get current monitor status, latest reading and snapshot."""
    monitor = _monitor(request)
    if monitor is None:
        return {"status": "stopped", "source": None, "snapshot": None, "latest": None}

    state = monitor.state
    return {
        "status": "running" if state.is_running else "idle",
        "source": state.source or None,
        "last_updated": state.last_updated_at.isoformat() if state.last_updated_at else None,
        "tick_count": state.tick_count,
        "skipped_ticks": state.skipped_ticks,
        "window_size": len(state.window),
        "window_capacity": state.window.capacity,
        "last_error": state.last_error or None,
        "health": monitor.health.to_dict(),
        "snapshot": state.snapshot.to_dict() if state.snapshot else None,
        "latest": state.latest.to_dict() if state.latest else None,
        "counters": state.counters.to_dict(),
        "power_record": state.power_record,
    }


@router.get("/health")
async def source_health(request: Request) -> dict:
    """Upstream source health."""
    monitor = _monitor(request)
    if monitor is None:
        return {"healthy": False, "stale": True}
    return monitor.health.to_dict()


# ── Readings & stats ─────────────────────────────────

@router.get("/readings", response_model=None)
async def readings(
    request: Request,
    since: int | None = Query(None, description="Only readings at or after this epoch-ms timestamp"),
) -> dict | JSONResponse:
    """Return the reading window, oldest first."""
    monitor = _monitor(request)
    if monitor is None:
        return _not_ready()
    window = monitor.state.window
    items = window.since(since) if since is not None else window.readings()
    return {
        "count": len(items),
        "capacity": window.capacity,
        "readings": [r.to_dict() for r in items],
    }


@router.get("/stats", response_model=None)
async def stats(request: Request) -> dict | JSONResponse:
    """Return the latest statistics snapshot."""
    monitor = _monitor(request)
    if monitor is None or monitor.state.snapshot is None:
        return _not_ready()
    return {
        "source": monitor.state.source,
        "snapshot": monitor.state.snapshot.to_dict(),
    }


@router.post("/refresh", response_model=None)
async def refresh(request: Request) -> dict | JSONResponse:
    """Run one tick now. Dropped if a fetch is already in flight."""
    monitor = _monitor(request)
    if monitor is None:
        return _not_ready()
    try:
        snapshot = await monitor.tick_once()
    except UpstreamError as e:
        return JSONResponse(status_code=502, content={"status": "error", "message": str(e)})
    if snapshot is None:
        return {"status": "skipped", "snapshot": None}
    return {"status": "ok", "snapshot": snapshot.to_dict()}


# ── Config & logs ────────────────────────────────────

@router.get("/config")
async def get_config(request: Request) -> dict:
    """Return the active configuration."""
    config = request.app.state.config
    return json.loads(config.model_dump_json())


@router.put("/config", response_model=None)
async def update_config(request: Request, updates: dict = Body(...)) -> dict | JSONResponse:
    """Persist config overrides. Running components pick them up on restart."""
    config_manager = getattr(request.app.state, "config_manager", None)
    if config_manager is None:
        return JSONResponse(
            status_code=409,
            content={"status": "error", "message": "No config file attached"},
        )
    try:
        new_config = config_manager.save_user_config(updates)
    except ValidationError as e:
        logger.warning("Config update rejected: %s", str(e).replace("\n", " ")[:200])
        return JSONResponse(
            status_code=422,
            content={"status": "error", "errors": json.loads(e.json())},
        )
    request.app.state.config = new_config
    return {"status": "saved", "restart_required": True, "config": json.loads(new_config.model_dump_json())}


@router.get("/logs")
async def get_logs(
    limit: int = Query(200, ge=1, le=1000),
    level: str | None = Query(None, description="Minimum level, e.g. WARNING"),
) -> dict:
    """Return recent log entries, newest first."""
    from solar_monitor.dashboard.log_buffer import log_buffer

    records = log_buffer.get_records(limit=limit, min_level=level)
    return {"count": len(records), "records": records}

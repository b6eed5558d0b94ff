"""Server-Sent Events for live dashboard updates."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Request
from starlette.responses import StreamingResponse

from solar_monitor.monitor.loop import MonitorState

router = APIRouter()
logger = logging.getLogger(__name__)


def build_event(state: MonitorState | None) -> dict:
    """Payload pushed to dashboard clients on every SSE interval."""
    if state is None or state.snapshot is None:
        return {"snapshot": None, "latest": None, "source": None, "lastUpdated": None}
    return {
        "snapshot": state.snapshot.to_dict(),
        "latest": state.latest.to_dict() if state.latest else None,
        "source": state.source,
        "lastUpdated": state.last_updated_at.isoformat() if state.last_updated_at else None,
    }


@router.get("/events")
async def event_stream(request: Request) -> StreamingResponse:
    """SSE endpoint streaming the latest snapshot and reading."""
    config = request.app.state.config
    interval = config.dashboard.sse_interval_seconds

    async def generate():
        while True:
            if await request.is_disconnected():
                break

            monitor = getattr(request.app.state, "monitor", None)
            try:
                data = build_event(monitor.state if monitor else None)
                yield f"data: {json.dumps(data)}\n\n"
            except (TypeError, ValueError) as e:
                logger.error("SSE error: %s", e)
                yield f"data: {json.dumps({'error': str(e)})}\n\n"

            await asyncio.sleep(interval)

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )

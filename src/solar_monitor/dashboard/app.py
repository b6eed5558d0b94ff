"""FastAPI application factory for the Solar Monitor API."""

from __future__ import annotations

from fastapi import FastAPI, Request

from solar_monitor import __version__
from solar_monitor.config.manager import ConfigManager
from solar_monitor.config.schema import AppConfig
from solar_monitor.monitor.loop import MonitorLoop


def create_app(
    config: AppConfig,
    monitor: MonitorLoop | None = None,
    config_manager: ConfigManager | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Solar Monitor",
        description="Solar and battery telemetry with rolling statistics",
        version=__version__,
    )

    @app.middleware("http")
    async def disable_browser_cache(request: Request, call_next):
        response = await call_next(request)
        if request.method in {"GET", "HEAD"}:
            # Readings change every tick; never serve a cached snapshot.
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response

    app.state.config = config
    app.state.monitor = monitor
    app.state.config_manager = config_manager

    from solar_monitor.dashboard.routes.api import router as api_router
    from solar_monitor.dashboard.routes.sse import router as sse_router

    app.include_router(api_router, prefix="/api")
    app.include_router(sse_router, prefix="/api")

    return app

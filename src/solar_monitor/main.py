"""Solar Monitor application entry point and lifecycle orchestrator.

Startup sequence:
  config → logging → upstream client → normalizer → aggregator →
  monitor loop → API server
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
from pathlib import Path

from solar_monitor import __version__
from solar_monitor.config.manager import ConfigManager
from solar_monitor.config.schema import AppConfig
from solar_monitor.logging.structured import setup_logging

logger = logging.getLogger(__name__)


class Application:
    """Main application lifecycle manager.

    Wires all modules together and manages startup/shutdown ordering.
    """

    def __init__(self, config: AppConfig, config_manager: ConfigManager | None = None) -> None:
        self.config = config
        self.config_manager = config_manager
        self._running = False
        self._tasks: list[asyncio.Task] = []

        # References held for cleanup
        self._client = None
        self._monitor = None
        self._server = None

    @property
    def monitor(self):
        return self._monitor

    def build_monitor(self):
        """Construct the client, normalizer, aggregator and monitor loop."""
        from solar_monitor.monitor.loop import MonitorLoop
        from solar_monitor.source.client import UpstreamClient
        from solar_monitor.source.synthetic import SyntheticSource
        from solar_monitor.stats.accounting import build_charge_accounting
        from solar_monitor.stats.aggregator import StatsAggregator
        from solar_monitor.telemetry.normalizer import Normalizer

        client = UpstreamClient(self.config.upstream)
        normalizer = Normalizer(self.config.normalizer)
        aggregator = StatsAggregator(
            accounting=build_charge_accounting(self.config.stats.charge_accounting),
            generation_threshold_w=self.config.stats.generation_threshold_w,
        )
        monitor = MonitorLoop(
            config=self.config,
            client=client,
            normalizer=normalizer,
            aggregator=aggregator,
            synthetic=SyntheticSource(self.config.normalizer),
        )
        self._client = client
        self._monitor = monitor
        logger.info(
            "Monitor configured: upstream=%s calibration=%s accounting=%s strict=%s",
            self.config.upstream.url,
            normalizer.calibration,
            aggregator.accounting.name,
            self.config.monitor.strict_mode,
        )
        return monitor

    async def start(self) -> None:
        """Start all components and serve the API until stopped."""
        logger.info("Starting Solar Monitor v%s", __version__)
        self._running = True

        # ── 1. Monitor loop ──────────────────────────────────
        monitor = self.build_monitor()
        self._tasks.append(asyncio.create_task(monitor.run(), name="monitor-loop"))

        # ── 2. API server ────────────────────────────────────
        from solar_monitor.dashboard.app import create_app

        app = create_app(self.config, monitor=monitor, config_manager=self.config_manager)
        app.state.application = self

        import uvicorn

        uvi_config = uvicorn.Config(
            app,
            host=self.config.dashboard.host,
            port=self.config.dashboard.port,
            log_level="warning",
        )
        server = uvicorn.Server(uvi_config)
        # Keep process signal handling in main() so Ctrl+C behaviour is predictable.
        server.install_signal_handlers = lambda: None
        self._server = server

        logger.info(
            "API available at http://%s:%d/api/status",
            self.config.dashboard.host,
            self.config.dashboard.port,
        )

        # Server.serve() blocks until shutdown
        await server.serve()

    async def stop(self) -> None:
        """Gracefully stop all components in reverse order."""
        if not self._running:
            return

        logger.info("Shutting down Solar Monitor")
        self._running = False

        if self._server is not None:
            self._server.should_exit = True

        if self._monitor:
            self._monitor.stop()

        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        if self._client:
            try:
                await self._client.close()
            except Exception:
                logger.exception("Error closing upstream client")

        self._server = None
        logger.info("Shutdown complete")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Solar/battery monitor service")
    parser.add_argument(
        "--defaults", type=Path, default=Path("config.defaults.yaml"),
        help="Defaults YAML file (default: config.defaults.yaml)",
    )
    parser.add_argument(
        "--config", type=Path, default=Path("config.yaml"),
        help="User override YAML file (default: config.yaml)",
    )
    return parser.parse_args(argv)


async def serve(app: Application) -> None:
    """Run ``app`` until SIGINT/SIGTERM; a second signal exits immediately."""
    loop = asyncio.get_running_loop()
    stop_tasks: list[asyncio.Task] = []

    def _request_stop() -> None:
        if stop_tasks:
            logger.warning("Second stop signal; exiting without cleanup")
            os._exit(130)
        stop_tasks.append(loop.create_task(app.stop()))

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _request_stop)

    try:
        await app.start()
    finally:
        if stop_tasks:
            await asyncio.gather(*stop_tasks)
        else:
            await app.stop()


def main(argv: list[str] | None = None) -> None:
    """Entry point for the application."""
    args = parse_args(argv)

    config_manager = ConfigManager(args.defaults, args.config)
    config = config_manager.load()

    setup_logging(
        level=config.logging.level,
        fmt=config.logging.format,
        log_file=config.logging.file,
    )

    # Windows has no loop signal handlers; Ctrl+C surfaces here instead.
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve(Application(config, config_manager)))


if __name__ == "__main__":
    main()

"""Async monitor loop: timer-driven fetch, normalize, aggregate and publish."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable

from solar_monitor.config.schema import AppConfig
from solar_monitor.exceptions import UpstreamError
from solar_monitor.logging.context import bind_context, unbind_context
from solar_monitor.monitor.health import SourceHealth
from solar_monitor.source.client import UpstreamClient
from solar_monitor.source.synthetic import SyntheticSource
from solar_monitor.stats.aggregator import StatsAggregator, StatsSnapshot
from solar_monitor.telemetry.normalizer import Normalizer
from solar_monitor.telemetry.payload import ChargeCounters
from solar_monitor.telemetry.reading import Reading
from solar_monitor.telemetry.reading import now_ms as wall_clock_ms
from solar_monitor.telemetry.window import ReadingWindow

logger = logging.getLogger(__name__)

SOURCE_UPSTREAM = "upstream"
SOURCE_SYNTHETIC = "synthetic"

SnapshotCallback = Callable[["MonitorState"], Awaitable[None]]


@dataclass
class MonitorState:
    """Everything a tick reads and writes, owned by one MonitorLoop."""

    window: ReadingWindow
    snapshot: StatsSnapshot | None = None
    counters: ChargeCounters = field(default_factory=ChargeCounters)
    source: str = ""
    last_updated_at: datetime | None = None
    tick_count: int = 0
    skipped_ticks: int = 0
    last_error: str = ""
    is_running: bool = False
    power_record: list = field(default_factory=list)  # Latest upstream power record, as received
    synthetic_only: bool = False  # Every reading in the window is synthetic

    @property
    def latest(self) -> Reading | None:
        return self.window.latest


@dataclass
class _Batch:
    """Readings acquired by one tick, ready to publish."""

    readings: list[Reading]
    counters: ChargeCounters
    source: str
    power_record: list = field(default_factory=list)
    replace_window: bool = False


class MonitorLoop:
    """Main async monitor loop.

    Every tick (default 30 seconds):
    1. Fetch a sample from upstream (with the client's bounded retries)
    2. Normalize it into one Reading (or seed the window from its history
       when it is empty or holds only synthetic fallback data)
    3. Append to the window, evicting the oldest readings past capacity
    4. Recompute the stats snapshot
    5. Notify snapshot callbacks

    Only one fetch is ever in flight; a tick that starts while another is
    still fetching is dropped rather than queued.
    """

    def __init__(
        self,
        config: AppConfig,
        client: UpstreamClient,
        normalizer: Normalizer,
        aggregator: StatsAggregator,
        synthetic: SyntheticSource | None = None,
        health: SourceHealth | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._normalizer = normalizer
        self._aggregator = aggregator
        self._synthetic = synthetic or SyntheticSource(config.normalizer)
        self._health = health or SourceHealth(
            max_consecutive_failures=config.resilience.max_consecutive_failures,
            stale_after_seconds=config.resilience.stale_after_seconds,
        )
        self._state = MonitorState(window=ReadingWindow(config.monitor.window_capacity))
        self._fetch_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._on_snapshot: list[SnapshotCallback] = []

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def health(self) -> SourceHealth:
        return self._health

    @property
    def fetch_in_flight(self) -> bool:
        return self._fetch_lock.locked()

    def add_snapshot_callback(self, callback: SnapshotCallback) -> None:
        self._on_snapshot.append(callback)

    async def run(self) -> None:
        """Tick every ``refresh_interval_seconds`` until stopped."""
        self._state.is_running = True
        self._stop_event.clear()
        interval = self._config.monitor.refresh_interval_seconds

        logger.info("Monitor loop starting (interval: %ds)", interval)

        try:
            while not self._stop_event.is_set():
                try:
                    await self._tick()
                except UpstreamError as e:
                    logger.error("Tick %d: upstream unavailable (strict mode): %s", self._state.tick_count, e)
                except Exception:
                    logger.exception("Tick %d: unexpected error", self._state.tick_count)
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
                    break  # stop_event was set
                except asyncio.TimeoutError:
                    pass  # Interval elapsed
        finally:
            self._state.is_running = False
            logger.info("Monitor loop stopped after %d ticks", self._state.tick_count)

    def stop(self) -> None:
        """Signal the loop to stop."""
        self._stop_event.set()

    async def tick_once(self) -> StatsSnapshot | None:
        """Execute a single tick outside the timer (tests, manual refresh).

        Returns the new snapshot, or ``None`` if the tick was dropped or
        produced nothing.

        Raises:
            UpstreamError: In strict mode, when upstream could not be read.
        """
        return await self._tick()

    async def _tick(self) -> StatsSnapshot | None:
        if self._fetch_lock.locked():
            self._state.skipped_ticks += 1
            logger.info(
                "Tick dropped: previous fetch still in flight (%d dropped so far)",
                self._state.skipped_ticks,
            )
            return None

        async with self._fetch_lock:
            self._state.tick_count += 1
            tick = self._state.tick_count
            bind_context(tick=tick)
            tick_start = time.monotonic()
            try:
                batch = await self._acquire_readings()
                if batch is None:
                    return None
                snapshot = self._publish(batch)
            finally:
                unbind_context("tick")

        elapsed_ms = int((time.monotonic() - tick_start) * 1000)
        logger.info(
            "Tick %d: source=%s readings=%d window=%d battery=%d%% power=%dW load=%dW elapsed=%dms",
            tick,
            batch.source,
            len(batch.readings),
            len(self._state.window),
            snapshot.battery_percentage,
            snapshot.current_power_usage,
            snapshot.current_load,
            elapsed_ms,
        )

        for cb in self._on_snapshot:
            try:
                await cb(self._state)
            except Exception:
                logger.exception("Snapshot callback error")

        return snapshot

    async def _acquire_readings(self) -> _Batch | None:
        """Fetch and normalize, falling back to synthetic data on failure."""
        try:
            sample = await self._client.fetch_sample()
        except UpstreamError as e:
            self._health.record_failure(str(e))
            self._state.last_error = str(e)
            if self._config.monitor.strict_mode:
                raise
            if not self._config.monitor.synthetic_fallback:
                logger.warning("Upstream unavailable and fallback disabled; keeping previous data")
                return None
            logger.warning("Upstream unavailable, using synthetic data: %s", e)
            return _Batch(self._synthetic_readings(), self._synthetic.counters(), SOURCE_SYNTHETIC)

        self._health.record_success()
        self._state.last_error = ""
        now = wall_clock_ms()

        # A window of nothing but fallback data is dropped once real data arrives.
        replace = self._state.synthetic_only
        if replace:
            logger.info("Upstream recovered; discarding %d synthetic readings", len(self._state.window))

        if (replace or not self._state.window) and self._can_seed(sample.history):
            readings = self._normalizer.normalize_many(sample.history, sample.counters, now)
            logger.info("Seeded window with %d historical records", len(readings))
        else:
            readings = [self._normalizer.normalize(sample.record, sample.counters, now)]
        return _Batch(
            readings,
            sample.counters,
            SOURCE_UPSTREAM,
            power_record=list(sample.power_record),
            replace_window=replace,
        )

    def _can_seed(self, history: list[list]) -> bool:
        """History is only usable when every record carries its own date/time."""
        if len(history) < 2:
            return False
        undated = sum(1 for r in history if self._normalizer.record_timestamp(r) is None)
        if undated:
            logger.info(
                "Not seeding from history: %d of %d records have no date/time",
                undated, len(history),
            )
            return False
        return True

    def _synthetic_readings(self) -> list[Reading]:
        monitor_cfg = self._config.monitor
        if self._state.window:
            return [self._synthetic.reading()]
        return self._synthetic.history(
            count=self._state.window.capacity,
            spacing_minutes=monitor_cfg.synthetic_history_spacing_minutes,
        )

    def _publish(self, batch: _Batch) -> StatsSnapshot:
        state = self._state
        if batch.replace_window:
            state.window.clear()
        was_empty = not state.window
        state.window.extend(batch.readings)
        if batch.source == SOURCE_SYNTHETIC:
            state.synthetic_only = was_empty or state.synthetic_only
        else:
            state.synthetic_only = False
            state.power_record = batch.power_record

        snapshot = self._aggregator.aggregate(state.window, batch.counters)
        state.snapshot = snapshot
        state.counters = batch.counters
        state.source = batch.source
        state.last_updated_at = datetime.now(timezone.utc)
        return snapshot

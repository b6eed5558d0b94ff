"""Synthetic readings used when the upstream endpoint cannot be reached.

Values stay within ranges a small off-grid system would plausibly report,
and go through the same derivations as normalized upstream readings, so a
dashboard fed with fallback data still satisfies every Reading invariant.
"""

from __future__ import annotations

import random

from solar_monitor.config.schema import NormalizerConfig
from solar_monitor.telemetry.payload import ChargeCounters
from solar_monitor.telemetry.reading import Reading, battery_percentage
from solar_monitor.telemetry.reading import now_ms as wall_clock_ms

_MS_PER_MINUTE = 60_000


class SyntheticSource:
    """Generates random but well-formed readings and counters."""

    def __init__(self, config: NormalizerConfig | None = None, seed: int | None = None) -> None:
        self._config = config or NormalizerConfig()
        self._rng = random.Random(seed)
        self._min_v, self._max_v = self._config.calibration

    def reading(self, timestamp_ms: int | None = None) -> Reading:
        rng = self._rng
        solar_v = rng.uniform(15.0, 25.0)
        battery_v = rng.uniform(12.0, 14.0)
        if self._config.double_battery_voltage:
            battery_v *= 2
        amps = rng.uniform(0.0, 10.0)
        load = rng.uniform(10.0, 200.0)
        return Reading(
            timestamp=timestamp_ms if timestamp_ms is not None else wall_clock_ms(),
            solar_voltage=solar_v,
            charging_voltage=battery_v,
            charging_amps=amps,
            battery_percentage=battery_percentage(battery_v, self._min_v, self._max_v),
            solar_power=solar_v * amps,
            inverter_load=load,
        )

    def history(
        self,
        count: int = 96,
        spacing_minutes: int = 15,
        now_ms: int | None = None,
    ) -> list[Reading]:
        """``count`` readings spaced back from ``now_ms``, oldest first."""
        end = now_ms if now_ms is not None else wall_clock_ms()
        step = spacing_minutes * _MS_PER_MINUTE
        return [self.reading(end - (count - i) * step) for i in range(count)]

    def counters(self) -> ChargeCounters:
        rng = self._rng
        return ChargeCounters(
            kwh_positive=round(rng.uniform(0.0, 3.0), 2),
            kwh_negative=-round(rng.uniform(0.0, 2.0), 2),
            last_shunt_voltage=round(rng.uniform(-5.0, 5.0), 2),
        )

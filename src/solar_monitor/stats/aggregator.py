"""Statistics aggregator: derives a StatsSnapshot from the reading window."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from solar_monitor.exceptions import EmptyWindowError
from solar_monitor.stats.accounting import ChargeAccounting, CounterChargeAccounting
from solar_monitor.telemetry.payload import ChargeCounters
from solar_monitor.telemetry.reading import Reading

logger = logging.getLogger(__name__)

# Solar generation treats each sample as one minute of output:
# sum(W) * 1 min / 60 min/h / 1000 W/kW == sum(W) / 60000 kWh.
SAMPLES_PER_HOUR_ASSUMED = 60
_W_MIN_TO_KWH = SAMPLES_PER_HOUR_ASSUMED * 1000


@dataclass(frozen=True)
class StatsSnapshot:
    """Aggregate figures for the presentation layer, recomputed every update."""

    daily_energy_charged: int  # Wh
    daily_energy_discharged: int  # Wh
    current_power_usage: int  # W
    current_load: int  # W
    peak_power: int  # W
    battery_percentage: int  # 0-100
    solar_generation: float  # kWh, 2 dp
    net_total_charge: float  # kWh, 2 dp
    reading_count: int
    charge_accounting: str = ""

    def to_dict(self) -> dict:
        return {
            "dailyEnergyCharged": self.daily_energy_charged,
            "dailyEnergyDischarged": self.daily_energy_discharged,
            "currentPowerUsage": self.current_power_usage,
            "currentLoad": self.current_load,
            "peakPower": self.peak_power,
            "batteryPercentage": self.battery_percentage,
            "solarGeneration": self.solar_generation,
            "netTotalCharge": self.net_total_charge,
            "readingCount": self.reading_count,
            "chargeAccounting": self.charge_accounting,
        }


class StatsAggregator:
    """Computes a :class:`StatsSnapshot` from an oldest-first window of readings.

    Instantaneous figures (current power, load, battery percentage) come from
    the most recent reading as-is. Daily energy totals are delegated to the
    injected :class:`ChargeAccounting` strategy.
    """

    def __init__(
        self,
        accounting: ChargeAccounting | None = None,
        generation_threshold_w: float = 10.0,
    ) -> None:
        self._accounting = accounting or CounterChargeAccounting()
        self._generation_threshold_w = generation_threshold_w

    @property
    def accounting(self) -> ChargeAccounting:
        return self._accounting

    def aggregate(
        self,
        window: Iterable[Reading],
        counters: ChargeCounters | None = None,
    ) -> StatsSnapshot:
        """Build a snapshot for ``window``.

        The result depends only on ``window`` and ``counters``; callers record
        when it was computed (see ``MonitorState.last_updated_at``).

        Raises:
            EmptyWindowError: If the window holds no readings.
        """
        readings = list(window)
        if not readings:
            raise EmptyWindowError()
        counters = counters or ChargeCounters()

        latest = readings[-1]
        peak = max(r.solar_power for r in readings)
        totals = self._accounting.totals(readings, counters)
        generation = self.solar_generation_kwh(readings)

        snapshot = StatsSnapshot(
            daily_energy_charged=round(totals.charged_wh),
            daily_energy_discharged=round(totals.discharged_wh),
            current_power_usage=round(latest.solar_power),
            current_load=round(latest.inverter_load),
            peak_power=round(peak),
            battery_percentage=round(latest.battery_percentage),
            solar_generation=round(generation, 2),
            net_total_charge=round(totals.net_wh / 1000, 2),
            reading_count=len(readings),
            charge_accounting=self._accounting.name,
        )
        logger.debug(
            "Stats: %d readings, peak=%dW charged=%dWh discharged=%dWh battery=%d%%",
            snapshot.reading_count,
            snapshot.peak_power,
            snapshot.daily_energy_charged,
            snapshot.daily_energy_discharged,
            snapshot.battery_percentage,
        )
        return snapshot

    def solar_generation_kwh(self, readings: Iterable[Reading]) -> float:
        """Approximate generation from samples above the noise threshold.

        Only meaningful at the assumed one-sample-per-minute cadence; at other
        cadences this is a relative indicator, not an energy integral.
        """
        total_w = sum(
            r.solar_power for r in readings if r.solar_power > self._generation_threshold_w
        )
        return total_w / _W_MIN_TO_KWH

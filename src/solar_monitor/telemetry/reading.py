"""Normalized solar/battery reading and its derived quantities."""

from __future__ import annotations

import time
from dataclasses import dataclass


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def battery_percentage(voltage: float, min_v: float, max_v: float) -> float:
    """Map a battery voltage onto 0-100% linearly between the calibration points."""
    pct = (voltage - min_v) / (max_v - min_v) * 100
    return min(100.0, max(0.0, pct))


@dataclass(frozen=True)
class Reading:
    """One sampled instant of solar/battery telemetry.

    ``solar_power`` and ``inverter_load`` are derived when the reading is
    built (see :mod:`solar_monitor.telemetry.normalizer`); a reading is never
    mutated after it enters the window.
    """

    timestamp: int  # Epoch milliseconds
    solar_voltage: float
    charging_voltage: float  # Battery voltage
    charging_amps: float
    battery_percentage: float  # 0-100
    solar_power: float  # solar_voltage * charging_amps
    inverter_load: float  # Load power, watts

    @property
    def net_battery_power(self) -> float:
        """Positive when the battery is gaining energy, negative when draining."""
        return self.solar_power - self.inverter_load

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "solarVoltage": self.solar_voltage,
            "chargingVoltage": self.charging_voltage,
            "chargingAmps": self.charging_amps,
            "batteryPercentage": self.battery_percentage,
            "solarPower": self.solar_power,
            "inverterLoad": self.inverter_load,
        }

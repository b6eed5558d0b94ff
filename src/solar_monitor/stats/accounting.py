"""Charge accounting strategies for daily charged/discharged energy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, runtime_checkable

from solar_monitor.telemetry.payload import ChargeCounters
from solar_monitor.telemetry.reading import Reading

_MS_PER_HOUR = 3_600_000


@dataclass(frozen=True)
class ChargeTotals:
    """Energy moved into and out of the battery, in watt-hours (unrounded)."""

    charged_wh: float = 0.0
    discharged_wh: float = 0.0

    @property
    def net_wh(self) -> float:
        return self.charged_wh - self.discharged_wh


@runtime_checkable
class ChargeAccounting(Protocol):
    """Strategy producing daily charge totals from readings and counters."""

    name: str

    def totals(self, readings: Sequence[Reading], counters: ChargeCounters) -> ChargeTotals:
        """Compute charged/discharged energy."""
        ...


class IntegratedChargeAccounting:
    """Integrates net battery power across consecutive readings.

    Each reading's power is held until the next reading arrives, so the last
    reading in the window contributes nothing yet. Pairs whose timestamps do
    not advance are skipped.
    """

    name = "integrated"

    def totals(self, readings: Sequence[Reading], counters: ChargeCounters) -> ChargeTotals:
        charged = 0.0
        discharged = 0.0
        for current, following in zip(readings, readings[1:]):
            elapsed_ms = following.timestamp - current.timestamp
            if elapsed_ms <= 0:
                continue
            energy = current.net_battery_power * elapsed_ms / _MS_PER_HOUR
            if energy > 0:
                charged += energy
            else:
                discharged += -energy
        return ChargeTotals(charged_wh=charged, discharged_wh=discharged)


class CounterChargeAccounting:
    """Uses the device's own cumulative kWh counters.

    The upstream device integrates at its internal sample rate, which is more
    accurate than integrating 15-minute-spaced readings locally.
    """

    name = "counters"

    def totals(self, readings: Sequence[Reading], counters: ChargeCounters) -> ChargeTotals:
        return ChargeTotals(
            charged_wh=abs(counters.kwh_positive) * 1000,
            discharged_wh=abs(counters.kwh_negative) * 1000,
        )


_STRATEGIES: dict[str, type] = {
    IntegratedChargeAccounting.name: IntegratedChargeAccounting,
    CounterChargeAccounting.name: CounterChargeAccounting,
}


def build_charge_accounting(name: str) -> ChargeAccounting:
    """Instantiate the strategy configured under ``stats.charge_accounting``."""
    try:
        return _STRATEGIES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown charge accounting strategy {name!r}; expected one of {sorted(_STRATEGIES)}"
        ) from None

"""Normalizer that turns a raw upstream sensor record into a Reading.

The raw record is a positional list of strings. Field positions, the battery
calibration pair and the optional voltage doubling are deployment settings
(:class:`~solar_monitor.config.schema.NormalizerConfig`), never inferred from
the data.

Normalization is fail-soft: a missing or non-numeric field becomes ``0`` and
an unparsable embedded timestamp falls back to the caller's clock, so one bad
field cannot block the rest of the record.
"""

from __future__ import annotations

import logging
import math

from solar_monitor.config.schema import NormalizerConfig
from solar_monitor.telemetry.parsing import field_at, parse_local_timestamp, parse_numeric_or_default
from solar_monitor.telemetry.payload import ChargeCounters
from solar_monitor.telemetry.reading import Reading, battery_percentage
from solar_monitor.telemetry.reading import now_ms as wall_clock_ms
from solar_monitor.timezone_utils import resolve_timezone

logger = logging.getLogger(__name__)


def inverter_load(solar_power: float, shunt_voltage: float, battery_voltage: float) -> float:
    """Derive load power from the shunt reading.

    A negative shunt value means the battery is discharging, so the shunt
    flow alone feeds the load. Otherwise the load is what solar supplies
    beyond the charge going into the battery.
    """
    battery_flow = shunt_voltage * battery_voltage
    if shunt_voltage < 0:
        return abs(battery_flow)
    return abs(solar_power - battery_flow)


class Normalizer:
    """Converts raw upstream records into :class:`Reading` instances."""

    def __init__(self, config: NormalizerConfig | None = None) -> None:
        self._config = config or NormalizerConfig()
        self._min_v, self._max_v = self._config.calibration
        self._tz = resolve_timezone(self._config.timezone)

    @property
    def calibration(self) -> tuple[float, float]:
        return (self._min_v, self._max_v)

    def normalize(
        self,
        record: list,
        counters: ChargeCounters | None = None,
        now_ms: int | None = None,
    ) -> Reading:
        """Build a Reading from one raw record. Never raises."""
        layout = self._config.layout
        counters = counters or ChargeCounters()

        battery_v = self._number(record, layout.battery_voltage_index, "battery_voltage")
        if self._config.double_battery_voltage:
            battery_v *= 2
        solar_v = self._number(record, layout.solar_voltage_index, "solar_voltage")
        amps = self._number(record, layout.charging_amps_index, "charging_amps")

        solar_power = solar_v * amps
        load = inverter_load(solar_power, counters.last_shunt_voltage, battery_v)
        floor = self._config.load_floor_w
        if floor is not None and load < floor:
            load = floor

        timestamp = self.record_timestamp(record)
        if timestamp is None:
            timestamp = now_ms if now_ms is not None else wall_clock_ms()
            logger.debug("Record has no usable date/time; stamped with %d", timestamp)

        return Reading(
            timestamp=timestamp,
            solar_voltage=solar_v,
            charging_voltage=battery_v,
            charging_amps=amps,
            battery_percentage=battery_percentage(battery_v, self._min_v, self._max_v),
            solar_power=solar_power,
            inverter_load=load,
        )

    def record_timestamp(self, record: list) -> int | None:
        """Epoch ms from the record's own date/time fields, or ``None``."""
        layout = self._config.layout
        return parse_local_timestamp(
            field_at(record, layout.date_index),
            field_at(record, layout.time_index),
            self._tz,
        )

    def normalize_many(
        self,
        records: list[list],
        counters: ChargeCounters | None = None,
        now_ms: int | None = None,
    ) -> list[Reading]:
        """Normalize a batch of records in order, sharing one set of counters."""
        return [self.normalize(r, counters, now_ms) for r in records]

    @staticmethod
    def _number(record: list, index: int, name: str) -> float:
        raw = field_at(record, index)
        value = parse_numeric_or_default(raw, default=math.nan)
        if math.isnan(value):
            if raw not in (None, ""):
                logger.debug("Field '%s' at position %d is not numeric (%r); using 0", name, index, raw)
            return 0.0
        # Sampled quantities are magnitudes; sign is carried by the shunt only.
        return max(0.0, value)

"""Upstream response shapes, resolved once at the fetch boundary.

The monitoring endpoint has served two JSON layouts over its lifetime:

* ``PAIRED``: an object with ``first``/``second`` string arrays and the
  charge counters as top-level string fields::

      {"first": [...], "second": [...], "kwh_positive": "1.25",
       "kwh_negative": "-0.75", "last_shunt_voltage": "-2.5"}

* ``POSITIONAL``: an array of sections, ``[0]`` sensor records, ``[1]``
  power records, ``[2]`` monthly records and ``[3]`` a counters object
  using the ``last_shunt_v`` spelling.

Both are reduced to an :class:`UpstreamSample` so that nothing downstream
needs to know which layout the endpoint returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from solar_monitor.exceptions import PayloadShapeError
from solar_monitor.telemetry.parsing import parse_numeric_or_default

logger = logging.getLogger(__name__)

_SHUNT_KEYS = ("last_shunt_voltage", "last_shunt_v")


class PayloadShape(str, Enum):
    PAIRED = "paired"
    POSITIONAL = "positional"


@dataclass(frozen=True)
class ChargeCounters:
    """Cumulative charge totals and the latest shunt reading from upstream."""

    kwh_positive: float = 0.0  # Energy into the battery today
    kwh_negative: float = 0.0  # Energy out of the battery today (reported negative)
    last_shunt_voltage: float = 0.0  # Sign gives charge (+) / discharge (-) direction

    def to_dict(self) -> dict:
        return {
            "kwhPositive": self.kwh_positive,
            "kwhNegative": self.kwh_negative,
            "lastShuntVoltage": self.last_shunt_voltage,
        }


@dataclass
class UpstreamSample:
    """One decoded upstream response."""

    record: list  # Latest sensor record (positional fields)
    counters: ChargeCounters
    shape: PayloadShape
    history: list[list] = field(default_factory=list)  # All sensor records, oldest first
    power_record: list = field(default_factory=list)


def parse_charge_counters(data: Any) -> ChargeCounters:
    """Read charge counters from a mapping, tolerating either shunt key spelling."""
    if not isinstance(data, dict):
        return ChargeCounters()
    shunt: object = None
    for key in _SHUNT_KEYS:
        if key in data:
            shunt = data[key]
            break
    return ChargeCounters(
        kwh_positive=parse_numeric_or_default(data.get("kwh_positive")),
        kwh_negative=parse_numeric_or_default(data.get("kwh_negative")),
        last_shunt_voltage=parse_numeric_or_default(shunt),
    )


def detect_shape(payload: Any) -> PayloadShape:
    """Identify which upstream layout ``payload`` uses."""
    if isinstance(payload, dict):
        if "first" in payload:
            return PayloadShape.PAIRED
        raise PayloadShapeError("object payload has no 'first' record", "object")
    if isinstance(payload, list):
        return PayloadShape.POSITIONAL
    raise PayloadShapeError("expected a JSON object or array", type(payload).__name__)


def decode_payload(payload: Any) -> UpstreamSample:
    """Decode either upstream layout into an :class:`UpstreamSample`.

    Raises:
        PayloadShapeError: If required sections are missing or malformed.
    """
    shape = detect_shape(payload)
    if shape is PayloadShape.PAIRED:
        return _decode_paired(payload)
    return _decode_positional(payload)


def _decode_paired(payload: dict) -> UpstreamSample:
    record = payload.get("first")
    if not isinstance(record, list) or not record:
        raise PayloadShapeError("'first' must be a non-empty array")
    power = payload.get("second")
    return UpstreamSample(
        record=list(record),
        counters=parse_charge_counters(payload),
        shape=PayloadShape.PAIRED,
        history=[list(record)],
        power_record=list(power) if isinstance(power, list) else [],
    )


def _decode_positional(payload: list) -> UpstreamSample:
    if not payload or not isinstance(payload[0], list):
        raise PayloadShapeError("section [0] (sensor records) must be an array")

    sensor = payload[0]
    if not sensor:
        raise PayloadShapeError("section [0] (sensor records) is empty")

    # A list of records, or a single flat record.
    if isinstance(sensor[0], list):
        history = [list(r) for r in sensor if isinstance(r, list) and r]
        if not history:
            raise PayloadShapeError("section [0] contains no usable records")
    else:
        history = [list(sensor)]

    power_section = payload[1] if len(payload) > 1 and isinstance(payload[1], list) else []
    if power_section and isinstance(power_section[-1], list):
        power_record = list(power_section[-1])
    else:
        power_record = list(power_section)

    if len(payload) > 3:
        counters = parse_charge_counters(payload[3])
    else:
        logger.debug("Positional payload has no counters section; using zero counters")
        counters = ChargeCounters()

    return UpstreamSample(
        record=history[-1],
        counters=counters,
        shape=PayloadShape.POSITIONAL,
        history=history,
        power_record=power_record,
    )

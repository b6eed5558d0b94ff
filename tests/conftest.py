"""Shared test fixtures for Solar Monitor."""

from __future__ import annotations

from pathlib import Path

import pytest

from solar_monitor.config.manager import ConfigManager
from solar_monitor.config.schema import AppConfig
from solar_monitor.telemetry.payload import ChargeCounters, PayloadShape, UpstreamSample
from solar_monitor.telemetry.reading import Reading

# Record layout: date, time, battery V, solar V, ?, charging A, battery A, temp, mode, -, -
EXAMPLE_RECORD = ["2025-01-01", "12:00:00", "12.30", "40.00", "0", "1.00", "-1.20", "10", "MPPT", "", "0"]
EXAMPLE_COUNTERS = ChargeCounters(kwh_positive=1.25, kwh_negative=-0.75, last_shunt_voltage=-2.5)
EXAMPLE_TIMESTAMP_UTC = 1735732800000  # 2025-01-01T12:00:00Z


def make_reading(
    timestamp: int = 0,
    solar_power: float = 100.0,
    inverter_load: float = 50.0,
    battery_percentage: float = 50.0,
) -> Reading:
    """Reading with solar_power expressed as solar_voltage=power, charging_amps=1."""
    return Reading(
        timestamp=timestamp,
        solar_voltage=solar_power,
        charging_voltage=12.5,
        charging_amps=1.0,
        battery_percentage=battery_percentage,
        solar_power=solar_power,
        inverter_load=inverter_load,
    )


def make_sample(record: list | None = None, history: list[list] | None = None) -> UpstreamSample:
    record = record if record is not None else list(EXAMPLE_RECORD)
    return UpstreamSample(
        record=record,
        counters=EXAMPLE_COUNTERS,
        shape=PayloadShape.PAIRED,
        history=history if history is not None else [record],
    )


@pytest.fixture
def config() -> AppConfig:
    """Default configuration pinned to UTC so record timestamps are deterministic."""
    return AppConfig(normalizer={"timezone": "UTC"})


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    """Provide a config manager with test paths."""
    defaults = tmp_path / "config.defaults.yaml"
    defaults.write_text("upstream:\n  url: http://upstream.test/data\n")
    user = tmp_path / "config.yaml"
    mgr = ConfigManager(defaults_path=defaults, user_path=user)
    mgr.load()
    return mgr


@pytest.fixture
def example_record() -> list:
    return list(EXAMPLE_RECORD)


@pytest.fixture
def example_counters() -> ChargeCounters:
    return EXAMPLE_COUNTERS


@pytest.fixture
def reading_factory():
    return make_reading


@pytest.fixture
def sample_factory():
    return make_sample

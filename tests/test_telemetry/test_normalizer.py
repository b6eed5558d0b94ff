"""Tests for record normalization into Readings."""

from __future__ import annotations

import time

import pytest

from solar_monitor.config.schema import NormalizerConfig
from solar_monitor.telemetry.normalizer import Normalizer, inverter_load
from solar_monitor.telemetry.payload import ChargeCounters

UTC_12V = NormalizerConfig(timezone="UTC")


class TestExampleRecord:
    def test_end_to_end_example(self, example_record, example_counters) -> None:
        reading = Normalizer(UTC_12V).normalize(example_record, example_counters)

        assert reading.charging_voltage == pytest.approx(12.30)
        assert reading.battery_percentage == pytest.approx(46.15, abs=0.01)
        assert reading.solar_voltage == pytest.approx(40.0)
        assert reading.charging_amps == pytest.approx(1.0)
        assert reading.solar_power == pytest.approx(40.00)
        # Negative shunt → discharge → load is the shunt flow alone
        assert reading.inverter_load == pytest.approx(30.75)
        assert reading.timestamp == 1735732800000

    def test_solar_power_is_voltage_times_amps(self) -> None:
        record = ["2025-06-01", "09:30:00", "13.1", "18.7", "0", "3.3"]
        reading = Normalizer(UTC_12V).normalize(record)
        assert reading.solar_power == reading.solar_voltage * reading.charging_amps


class TestBatteryPercentage:
    @pytest.mark.parametrize(
        ("voltage", "expected"),
        [("10.5", 0.0), ("14.4", 100.0), ("9.0", 0.0), ("16.0", 100.0), ("12.45", 50.0)],
    )
    def test_12v_clamped(self, voltage, expected) -> None:
        reading = Normalizer(UTC_12V).normalize(["", "", voltage, "0", "0", "0"])
        assert reading.battery_percentage == pytest.approx(expected)
        assert 0.0 <= reading.battery_percentage <= 100.0

    def test_24v_pack_with_doubled_sensor(self) -> None:
        cfg = NormalizerConfig(battery_preset="24v", double_battery_voltage=True, timezone="UTC")
        reading = Normalizer(cfg).normalize(["", "", "12.25", "0", "0", "0"])
        assert reading.charging_voltage == pytest.approx(24.5)
        assert reading.battery_percentage == pytest.approx(50.0)

    def test_explicit_calibration(self) -> None:
        cfg = NormalizerConfig(min_voltage=11.0, max_voltage=13.0, timezone="UTC")
        reading = Normalizer(cfg).normalize(["", "", "12.5", "0", "0", "0"])
        assert reading.battery_percentage == pytest.approx(75.0)


class TestInverterLoad:
    def test_discharge_uses_shunt_flow(self) -> None:
        assert inverter_load(40.0, -2.5, 12.3) == pytest.approx(30.75)

    def test_charge_subtracts_battery_flow(self) -> None:
        assert inverter_load(40.0, 2.0, 12.3) == pytest.approx(15.4)

    def test_charge_result_is_absolute(self) -> None:
        assert inverter_load(10.0, 2.0, 12.0) == pytest.approx(14.0)

    def test_zero_shunt_is_solar_power(self) -> None:
        assert inverter_load(55.0, 0.0, 12.0) == pytest.approx(55.0)

    def test_floor_disabled_by_default(self, example_record) -> None:
        counters = ChargeCounters(last_shunt_voltage=0.0)
        record = list(example_record)
        record[3] = "0"
        reading = Normalizer(UTC_12V).normalize(record, counters)
        assert reading.inverter_load == 0.0

    def test_floor_raises_small_loads(self, example_record) -> None:
        cfg = NormalizerConfig(load_floor_w=100.0, timezone="UTC")
        reading = Normalizer(cfg).normalize(example_record, ChargeCounters(last_shunt_voltage=-0.1))
        assert reading.inverter_load == 100.0

    def test_floor_leaves_large_loads(self, example_record, example_counters) -> None:
        cfg = NormalizerConfig(load_floor_w=10.0, timezone="UTC")
        reading = Normalizer(cfg).normalize(example_record, example_counters)
        assert reading.inverter_load == pytest.approx(30.75)


class TestFailSoft:
    def test_non_numeric_field_becomes_zero(self, example_record, example_counters) -> None:
        record = list(example_record)
        record[3] = "ERR"
        reading = Normalizer(UTC_12V).normalize(record, example_counters)
        assert reading.solar_voltage == 0.0
        assert reading.solar_power == 0.0
        assert reading.charging_voltage == pytest.approx(12.30)

    def test_short_record(self) -> None:
        reading = Normalizer(UTC_12V).normalize(["2025-01-01"], now_ms=42)
        assert reading.solar_voltage == 0.0
        assert reading.charging_amps == 0.0
        assert reading.battery_percentage == 0.0
        assert reading.timestamp == 42

    def test_empty_record(self) -> None:
        reading = Normalizer(UTC_12V).normalize([], now_ms=7)
        assert reading.solar_power == 0.0
        assert reading.timestamp == 7

    def test_negative_magnitudes_clamped(self) -> None:
        reading = Normalizer(UTC_12V).normalize(["", "", "12.0", "-18", "0", "-2"])
        assert reading.solar_voltage == 0.0
        assert reading.charging_amps == 0.0

    def test_unparsable_time_falls_back_to_clock(self, example_record) -> None:
        record = list(example_record)
        record[1] = "noon"
        reading = Normalizer(UTC_12V).normalize(record, now_ms=1234)
        assert reading.timestamp == 1234

    def test_missing_time_uses_wall_clock(self) -> None:
        reading = Normalizer(UTC_12V).normalize(["", "", "12", "0", "0", "0"])
        assert reading.timestamp > 1_600_000_000_000

    def test_missing_counters(self, example_record) -> None:
        reading = Normalizer(UTC_12V).normalize(example_record)
        # Zero shunt counts as charging: load == solar power
        assert reading.inverter_load == pytest.approx(40.0)


class TestLayout:
    def test_custom_positions(self) -> None:
        cfg = NormalizerConfig(
            timezone="UTC",
            layout={
                "date_index": 4,
                "time_index": 5,
                "battery_voltage_index": 0,
                "solar_voltage_index": 1,
                "charging_amps_index": 2,
            },
        )
        reading = Normalizer(cfg).normalize(["12.45", "20", "2", "x", "2025-01-01", "12:00:00"])
        assert reading.battery_percentage == pytest.approx(50.0)
        assert reading.solar_power == pytest.approx(40.0)
        assert reading.timestamp == 1735732800000

    def test_normalize_many_preserves_order(self) -> None:
        records = [
            ["2025-01-01", "12:00:00", "12", "20", "0", "1"],
            ["2025-01-01", "12:15:00", "12", "20", "0", "2"],
        ]
        readings = Normalizer(UTC_12V).normalize_many(records)
        assert [r.solar_power for r in readings] == [20.0, 40.0]
        assert readings[1].timestamp - readings[0].timestamp == 15 * 60 * 1000


@pytest.fixture
def new_york_host(monkeypatch):
    """Run with the host clock set to America/New_York."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class TestHostLocalTime:
    def test_default_config_uses_host_rules(self, new_york_host) -> None:
        normalizer = Normalizer(NormalizerConfig())
        winter = normalizer.normalize(["2025-01-01", "12:00:00", "12", "0", "0", "0"])
        summer = normalizer.normalize(["2025-07-01", "12:00:00", "12", "0", "0", "0"])
        # EST is UTC-5, EDT is UTC-4
        assert winter.timestamp == 1735750800000
        assert summer.timestamp == 1751385600000

    def test_unknown_zone_falls_back_to_host_rules(self, new_york_host) -> None:
        normalizer = Normalizer(NormalizerConfig(timezone="Nowhere/Special"))
        reading = normalizer.normalize(["2025-01-01", "12:00:00", "12", "0", "0", "0"])
        assert reading.timestamp == 1735750800000

    def test_explicit_zone_ignores_host(self, new_york_host) -> None:
        reading = Normalizer(UTC_12V).normalize(["2025-07-01", "12:00:00", "12", "0", "0", "0"])
        assert reading.timestamp == 1751371200000

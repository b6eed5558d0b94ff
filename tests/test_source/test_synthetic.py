"""Tests for synthetic fallback readings."""

from __future__ import annotations

from solar_monitor.config.schema import NormalizerConfig
from solar_monitor.source.synthetic import SyntheticSource

MINUTE_MS = 60_000


class TestSyntheticSource:
    def test_seed_is_reproducible(self) -> None:
        a = SyntheticSource(seed=7).reading(1000)
        b = SyntheticSource(seed=7).reading(1000)
        assert a == b

    def test_reading_invariants(self) -> None:
        source = SyntheticSource(seed=1)
        for _ in range(50):
            r = source.reading(0)
            assert 15.0 <= r.solar_voltage <= 25.0
            assert 12.0 <= r.charging_voltage <= 14.0
            assert 0.0 <= r.battery_percentage <= 100.0
            assert r.solar_power == r.solar_voltage * r.charging_amps
            assert r.solar_power >= 0.0
            assert 10.0 <= r.inverter_load <= 200.0

    def test_doubled_battery_voltage(self) -> None:
        cfg = NormalizerConfig(battery_preset="24v", double_battery_voltage=True)
        r = SyntheticSource(cfg, seed=3).reading(0)
        assert 24.0 <= r.charging_voltage <= 28.0

    def test_history_order_and_spacing(self) -> None:
        history = SyntheticSource(seed=2).history(count=96, spacing_minutes=15, now_ms=100 * 15 * MINUTE_MS)
        assert len(history) == 96
        stamps = [r.timestamp for r in history]
        assert stamps == sorted(stamps)
        assert all(b - a == 15 * MINUTE_MS for a, b in zip(stamps, stamps[1:]))
        assert stamps[-1] == 99 * 15 * MINUTE_MS

    def test_counter_signs(self) -> None:
        source = SyntheticSource(seed=4)
        for _ in range(20):
            c = source.counters()
            assert 0.0 <= c.kwh_positive <= 3.0
            assert -2.0 <= c.kwh_negative <= 0.0
            assert -5.0 <= c.last_shunt_voltage <= 5.0

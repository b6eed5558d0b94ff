"""Pydantic configuration models for all service settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

# Voltage-to-percentage calibration pairs for common pack sizes.
CALIBRATION_PRESETS: dict[str, tuple[float, float]] = {
    "12v": (10.5, 14.4),
    "24v": (20.0, 29.0),
}


class UpstreamConfig(BaseModel):
    url: str = "http://localhost:8000/data"
    timeout_seconds: float = 10.0
    retry_attempts: int = Field(3, ge=1)
    retry_delay_seconds: float = Field(3.0, ge=0.0)
    max_retry_delay_seconds: float = Field(30.0, ge=0.0)
    backoff: Literal["linear", "exponential"] = "linear"


class MonitorConfig(BaseModel):
    refresh_interval_seconds: int = Field(30, ge=1)
    window_capacity: int = Field(96, ge=1)  # ~24h at 15-minute spacing
    strict_mode: bool = False  # Surface upstream failures instead of masking them
    synthetic_fallback: bool = True
    synthetic_history_spacing_minutes: int = Field(15, ge=1)


class RecordLayoutConfig(BaseModel):
    """Field positions within the upstream sensor record."""

    date_index: int = Field(0, ge=0)
    time_index: int = Field(1, ge=0)
    battery_voltage_index: int = Field(2, ge=0)
    solar_voltage_index: int = Field(3, ge=0)
    charging_amps_index: int = Field(5, ge=0)


class NormalizerConfig(BaseModel):
    battery_preset: Literal["12v", "24v"] = "12v"
    min_voltage: float | None = None  # Overrides the preset when both are set
    max_voltage: float | None = None
    double_battery_voltage: bool = False  # Half-range sensor on a 24V pack
    load_floor_w: float | None = None  # None = no floor applied
    timezone: str = ""  # Empty = host local time
    layout: RecordLayoutConfig = RecordLayoutConfig()

    @model_validator(mode="after")
    def _check_calibration(self) -> NormalizerConfig:
        if (self.min_voltage is None) != (self.max_voltage is None):
            raise ValueError("min_voltage and max_voltage must be set together")
        min_v, max_v = self.calibration
        if max_v <= min_v:
            raise ValueError(f"max_voltage ({max_v}) must exceed min_voltage ({min_v})")
        return self

    @property
    def calibration(self) -> tuple[float, float]:
        """Return the (min_v, max_v) pair in effect."""
        if self.min_voltage is not None and self.max_voltage is not None:
            return (self.min_voltage, self.max_voltage)
        return CALIBRATION_PRESETS[self.battery_preset]


class StatsConfig(BaseModel):
    charge_accounting: Literal["counters", "integrated"] = "counters"
    generation_threshold_w: float = Field(10.0, ge=0.0)


class ResilienceConfig(BaseModel):
    max_consecutive_failures: int = Field(3, ge=1)
    stale_after_seconds: int = Field(300, ge=1)


class DashboardConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080
    sse_interval_seconds: int = Field(5, ge=1)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file: str = ""


class AppConfig(BaseModel):
    """Root configuration model containing all service settings."""

    upstream: UpstreamConfig = UpstreamConfig()
    monitor: MonitorConfig = MonitorConfig()
    normalizer: NormalizerConfig = NormalizerConfig()
    stats: StatsConfig = StatsConfig()
    resilience: ResilienceConfig = ResilienceConfig()
    dashboard: DashboardConfig = DashboardConfig()
    logging: LoggingConfig = LoggingConfig()

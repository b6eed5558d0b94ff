"""Configuration management for Solar Monitor."""

from solar_monitor.config.schema import AppConfig
from solar_monitor.config.manager import ConfigManager

__all__ = ["AppConfig", "ConfigManager"]

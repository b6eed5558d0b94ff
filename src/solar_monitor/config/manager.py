"""Layered YAML configuration: shipped defaults overlaid with user overrides."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from solar_monitor.config.schema import AppConfig

logger = logging.getLogger(__name__)

DEFAULTS_FILE = Path("config.defaults.yaml")
USER_FILE = Path("config.yaml")


class ConfigManager:
    """Owns the validated :class:`AppConfig` and the user override file.

    Only the user file is ever written; the defaults file is read-only.
    """

    def __init__(
        self,
        defaults_path: Path | None = None,
        user_path: Path | None = None,
    ) -> None:
        self._defaults_path = defaults_path or DEFAULTS_FILE
        self._user_path = user_path or USER_FILE
        self._config: AppConfig | None = None

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            raise RuntimeError("Config not loaded. Call load() first.")
        return self._config

    @property
    def user_path(self) -> Path:
        return self._user_path

    def load(self) -> AppConfig:
        """Read both files, merge and validate."""
        raw = self._layered(self._read(self._user_path))
        config = AppConfig.model_validate(raw)
        self._config = config
        logger.info(
            "Configuration loaded from %s (+%s): upstream=%s refresh=%ds window=%d",
            self._defaults_path,
            self._user_path if self._user_path.exists() else "no overrides",
            config.upstream.url,
            config.monitor.refresh_interval_seconds,
            config.monitor.window_capacity,
        )
        return config

    def to_json(self) -> str:
        return self.config.model_dump_json(indent=2)

    def save_user_config(self, updates: dict[str, Any]) -> AppConfig:
        """Merge ``updates`` into the user file and reload.

        Raises:
            pydantic.ValidationError: If the result would be invalid. The
                file is left untouched in that case.
        """
        user = self._deep_merge(self._read(self._user_path), updates)
        AppConfig.model_validate(self._layered(user))
        self._user_path.write_text(yaml.safe_dump(user, default_flow_style=False, sort_keys=False))
        logger.info("User config updated: sections=%s", sorted(updates))
        return self.load()

    def _layered(self, user: dict[str, Any]) -> dict[str, Any]:
        return self._deep_merge(self._read(self._defaults_path), user)

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        data = yaml.safe_load(path.read_text())
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override into base, returning a new dict."""
        result = dict(base)
        for key, value in override.items():
            if isinstance(result.get(key), dict) and isinstance(value, dict):
                result[key] = ConfigManager._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

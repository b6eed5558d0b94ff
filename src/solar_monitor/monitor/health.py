"""Upstream source health tracking."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


@dataclass
class SourceHealthState:
    healthy: bool = True
    consecutive_failures: int = 0
    total_failures: int = 0
    total_successes: int = 0
    last_success_at: datetime | None = None
    last_failure_at: datetime | None = None
    last_error: str = ""


class SourceHealth:
    """Tracks whether the upstream endpoint is answering.

    The source turns unhealthy after ``max_consecutive_failures`` failed
    ticks in a row and recovers on the next success. It is stale when no
    success has been seen for ``stale_after_seconds``.
    """

    def __init__(self, max_consecutive_failures: int = 3, stale_after_seconds: int = 300) -> None:
        self._max_failures = max_consecutive_failures
        self._stale_after = stale_after_seconds
        self._state = SourceHealthState()
        self._last_success_mono: float | None = None

    @property
    def state(self) -> SourceHealthState:
        return self._state

    @property
    def is_healthy(self) -> bool:
        return self._state.healthy

    def record_success(self) -> None:
        s = self._state
        if not s.healthy:
            logger.info("Upstream recovered after %d consecutive failures", s.consecutive_failures)
        s.healthy = True
        s.consecutive_failures = 0
        s.total_successes += 1
        s.last_success_at = datetime.now(timezone.utc)
        self._last_success_mono = time.monotonic()

    def record_failure(self, error: str = "") -> None:
        s = self._state
        s.consecutive_failures += 1
        s.total_failures += 1
        s.last_failure_at = datetime.now(timezone.utc)
        s.last_error = error

        if s.healthy and s.consecutive_failures >= self._max_failures:
            s.healthy = False
            logger.warning(
                "Upstream marked unhealthy (%d consecutive failures): %s",
                s.consecutive_failures, error,
            )

    def is_stale(self, now_mono: float | None = None) -> bool:
        """True when the last success is older than the staleness limit (or never happened)."""
        if self._last_success_mono is None:
            return True
        now_mono = now_mono if now_mono is not None else time.monotonic()
        return now_mono - self._last_success_mono > self._stale_after

    def to_dict(self) -> dict:
        s = self._state
        return {
            "healthy": s.healthy,
            "stale": self.is_stale(),
            "consecutive_failures": s.consecutive_failures,
            "total_failures": s.total_failures,
            "total_successes": s.total_successes,
            "last_success_at": s.last_success_at.isoformat() if s.last_success_at else None,
            "last_failure_at": s.last_failure_at.isoformat() if s.last_failure_at else None,
            "last_error": s.last_error,
        }

"""Bounded in-memory log capture served by the /api/logs endpoint."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class BufferedLogEntry:
    timestamp: str
    level: str
    levelno: int
    logger: str
    message: str


class RingBufferHandler(logging.Handler):
    """Logging handler that retains the most recent formatted records."""

    def __init__(self, capacity: int = 500) -> None:
        super().__init__()
        self._entries: deque[BufferedLogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = BufferedLogEntry(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname,
                levelno=record.levelno,
                logger=record.name,
                message=self.format(record),
            )
        except Exception:
            self.handleError(record)
            return
        with self._lock:
            self._entries.append(entry)

    def get_records(self, limit: int = 200, min_level: str | None = None) -> list[dict]:
        """Return up to ``limit`` entries at or above ``min_level``, newest first."""
        threshold = logging.getLevelName(min_level.upper()) if min_level else logging.NOTSET
        if not isinstance(threshold, int):
            threshold = logging.NOTSET
        with self._lock:
            entries = [e for e in reversed(self._entries) if e.levelno >= threshold]
        return [asdict(e) for e in entries[: max(limit, 0)]]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


log_buffer = RingBufferHandler(capacity=1000)
log_buffer.setFormatter(logging.Formatter("%(message)s"))

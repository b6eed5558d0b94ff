"""Bounded FIFO window of recent readings."""

from __future__ import annotations

from collections import deque
from typing import Iterable, Iterator

from solar_monitor.telemetry.reading import Reading

DEFAULT_CAPACITY = 96  # 24h of 15-minute readings


class ReadingWindow:
    """Insertion-ordered buffer holding the most recent readings.

    Appending past capacity evicts the oldest reading. Readings are never
    reordered, so the window stays oldest-first by arrival.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"Window capacity must be at least 1, got {capacity}")
        self._readings: deque[Reading] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._readings.maxlen  # type: ignore[return-value]

    @property
    def latest(self) -> Reading | None:
        return self._readings[-1] if self._readings else None

    def append(self, reading: Reading) -> None:
        self._readings.append(reading)

    def extend(self, readings: Iterable[Reading]) -> None:
        self._readings.extend(readings)

    def clear(self) -> None:
        self._readings.clear()

    def readings(self) -> list[Reading]:
        """Oldest-first copy of the current contents."""
        return list(self._readings)

    def since(self, timestamp_ms: int) -> list[Reading]:
        """Readings stamped at or after ``timestamp_ms``, in window order."""
        return [r for r in self._readings if r.timestamp >= timestamp_ms]

    def __len__(self) -> int:
        return len(self._readings)

    def __iter__(self) -> Iterator[Reading]:
        return iter(list(self._readings))

    def __bool__(self) -> bool:
        return bool(self._readings)

"""Captured sensor record storage."""

from __future__ import annotations

import threading
from collections.abc import Iterator

from .models.sensor_data import SensorSample


class SensorRecordStore:
    """Append-only, arrival-ordered store of streamed sensor samples.

    There is no eviction. During long captures, export and clear
    periodically. Safe to read from another thread while samples are
    being appended.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._samples: list[SensorSample] = []

    def append(self, sample: SensorSample) -> None:
        """Add a sample at the end of the store."""
        with self._lock:
            self._samples.append(sample)

    def all(self) -> list[SensorSample]:
        """Get a snapshot of all samples in arrival order."""
        with self._lock:
            return list(self._samples)

    def clear(self) -> None:
        """Remove all samples."""
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def __iter__(self) -> Iterator[SensorSample]:
        return iter(self.all())

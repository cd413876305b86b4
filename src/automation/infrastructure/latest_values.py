"""In-memory latest-value lookup."""

import threading
from typing import Iterable

from src.automation.domain.protocols import LatestValueProvider


class InMemoryLatestValues(LatestValueProvider):
    """Keeps the most recent value reported by each sensor."""

    def __init__(self, initial: dict[str, float] | None = None):
        self.current_values: dict[str, float] = dict(initial or {})
        self._lock = threading.Lock()

    def update(self, sensor_id: str, value: float | None) -> None:
        """Record a new value. ``None`` forgets the sensor."""
        with self._lock:
            if value is None:
                self.current_values.pop(sensor_id, None)
            else:
                self.current_values[sensor_id] = float(value)

    def get_latest(self, sensor_id: str) -> float | None:
        return self.current_values.get(sensor_id)

    def get_many(self, sensor_ids: Iterable[str]) -> dict[str, float]:
        with self._lock:
            return {s: self.current_values[s] for s in sensor_ids if s in self.current_values}

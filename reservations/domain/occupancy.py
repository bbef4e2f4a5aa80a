"""Per-hour headcount store for the park."""

from __future__ import annotations

from typing import Iterable, Optional


class OccupancyTable:
    """Headcount per simulated hour over ``[hour_start, hour_end + 1]``.

    Every reservation occupies two consecutive hourly buckets. The table does
    no locking of its own; callers hold the simulation lock.
    """

    def __init__(self, hour_start: int, hour_end: int, capacity: int) -> None:
        self.hour_start = hour_start
        self.hour_end = hour_end
        self.capacity = capacity
        self._counts: dict[int, int] = {
            hour: 0 for hour in range(hour_start, hour_end + 2)
        }

    def get(self, hour: int) -> int:
        return self._counts.get(hour, 0)

    def add(self, hour: int, count: int) -> None:
        """Add ``count`` visitors to ``hour`` without any capacity check."""
        if hour not in self._counts:
            raise KeyError(f"hour {hour} is outside the occupancy table")
        self._counts[hour] += count

    def fits(self, hour: int, count: int) -> bool:
        """True when a two-hour stay starting at ``hour`` keeps both buckets within capacity."""
        if hour < self.hour_start or hour + 1 > self.hour_end:
            return False
        if self.get(hour) + count > self.capacity:
            return False
        if self.get(hour + 1) + count > self.capacity:
            return False
        return True

    def snapshot(self, hours: Optional[Iterable[int]] = None) -> dict[int, int]:
        if hours is None:
            return dict(self._counts)
        return {hour: self.get(hour) for hour in hours}

    def operating_hours(self) -> range:
        return range(self.hour_start, self.hour_end + 1)

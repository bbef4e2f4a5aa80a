"""Simulated clock that advances one park hour per configured real interval."""

from __future__ import annotations

import enum
from threading import Event

from reservations.services.simulation_state import SimulationState
from reservations.utils.logger import get_logger


logger = get_logger(__name__)


class ClockState(enum.Enum):
    RUNNING = "running"
    FINISHED = "finished"


class SimulationClock:
    """Runs on its own thread until the simulated day is over.

    ``shutdown`` is shared with the dispatcher: the clock sets it when the
    day ends, and an operator stop sets it from outside to end the clock early.
    """

    def __init__(
        self,
        state: SimulationState,
        seconds_per_hour: float,
        shutdown: Event,
    ) -> None:
        self._state = state
        self._seconds_per_hour = seconds_per_hour
        self._shutdown = shutdown
        self.status = ClockState.RUNNING

    def tick(self) -> bool:
        """Advance one hour; returns True once the day is over."""
        hour, finished = self._state.advance_hour()
        if finished:
            if self.status is ClockState.RUNNING:
                self.status = ClockState.FINISHED
                logger.info("Simulated day finished at %s:00", hour)
                self._shutdown.set()
            return True

        logger.info(
            "Clock advanced to %s:00, %s/%s visitors in the park",
            hour,
            self._state.occupancy_at(hour),
            self._state.config.capacity,
        )
        return False

    def run(self) -> None:
        logger.info(
            "Clock started at %s:00, one hour every %.2fs",
            self._state.current_hour,
            self._seconds_per_hour,
        )
        while self.status is ClockState.RUNNING:
            if self._shutdown.wait(self._seconds_per_hour):
                logger.info("Clock stopped before the end of the day")
                return
            self.tick()

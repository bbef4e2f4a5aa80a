"""Shared simulation state guarded by a single lock.

The clock thread and the dispatcher thread both hold a reference to the same
``SimulationState``. Every read or write of the current hour, the occupancy
table, the statistics or the agent registry goes through one of the methods
below, each of which takes the lock for the duration of the operation only.
"""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from reservations.domain.constraints import ControllerConfig
from reservations.domain.models import (
    AdmissionStatistics,
    AgentRegistry,
    Decision,
    ReservationRequest,
)
from reservations.domain.occupancy import OccupancyTable
from reservations.services import admission_service


@dataclass(frozen=True)
class StateSnapshot:
    current_hour: int
    finished: bool
    capacity: int
    hour_start: int
    hour_end: int
    occupancy: dict[int, int]
    statistics: dict[str, int]
    agents: list[str]


class SimulationState:
    def __init__(self, config: ControllerConfig) -> None:
        self.config = config
        self._lock = Lock()
        self._table = OccupancyTable(config.hour_start, config.hour_end, config.capacity)
        self._current_hour = config.hour_start
        self._finished = False
        self._statistics = AdmissionStatistics()
        self._agents = AgentRegistry()

    @property
    def current_hour(self) -> int:
        with self._lock:
            return self._current_hour

    @property
    def finished(self) -> bool:
        with self._lock:
            return self._finished

    def admit(self, request: ReservationRequest) -> Decision:
        """Classify, book and count ``request`` as one atomic step."""
        with self._lock:
            decision = admission_service.classify(request, self._current_hour, self._table)
            admission_service.apply(decision, request, self._table)
            self._statistics.record(decision.kind)
            return decision

    def register_agent(self, reply_channel: str, agent_name: str) -> tuple[int, bool]:
        """Record a handshake; returns the current hour and whether the channel is new."""
        with self._lock:
            is_new = self._agents.register(reply_channel, agent_name)
            return self._current_hour, is_new

    def advance_hour(self) -> tuple[int, bool]:
        """Move the clock forward one hour; returns the new hour and the finished flag.

        Once finished the clock never moves again.
        """
        with self._lock:
            if self._finished:
                return self._current_hour, True
            self._current_hour += 1
            if self._current_hour > self.config.hour_end:
                self._finished = True
            return self._current_hour, self._finished

    def occupancy_at(self, hour: int) -> int:
        with self._lock:
            return self._table.get(hour)

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return StateSnapshot(
                current_hour=self._current_hour,
                finished=self._finished,
                capacity=self.config.capacity,
                hour_start=self.config.hour_start,
                hour_end=self.config.hour_end,
                occupancy=self._table.snapshot(self._table.operating_hours()),
                statistics=self._statistics.to_dict(),
                agents=self._agents.channels(),
            )

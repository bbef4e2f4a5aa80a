"""Domain models for park reservation admission."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional


# Wire sentinel for responses that carry no assigned hour.
NO_HOUR = -1


class DecisionKind(enum.IntEnum):
    """Response classification; values are the wire codes."""

    ACCEPTED = 0
    RESCHEDULED = 1
    LATE_RESCHEDULED = 2
    DENIED = 3


class DenialReason(str, enum.Enum):
    EXCEEDS_CAPACITY = "exceeds capacity"
    OUT_OF_RANGE = "out of range"
    LATE_NO_SLOT = "late, no slot"
    NO_SLOT = "no slot in any window"


@dataclass(frozen=True)
class AgentHello:
    agent_name: str
    reply_channel: str


@dataclass(frozen=True)
class ReservationRequest:
    agent_name: str
    family_name: str
    reply_channel: str
    requested_hour: int
    party_size: int


@dataclass(frozen=True)
class Decision:
    """Outcome of one admission check. Carries no side effects."""

    kind: DecisionKind
    hour: Optional[int] = None
    reason: Optional[DenialReason] = None

    @classmethod
    def accepted(cls, hour: int) -> "Decision":
        return cls(DecisionKind.ACCEPTED, hour=hour)

    @classmethod
    def rescheduled(cls, hour: int) -> "Decision":
        return cls(DecisionKind.RESCHEDULED, hour=hour)

    @classmethod
    def late_rescheduled(cls, hour: int) -> "Decision":
        return cls(DecisionKind.LATE_RESCHEDULED, hour=hour)

    @classmethod
    def denied(cls, reason: DenialReason) -> "Decision":
        return cls(DecisionKind.DENIED, reason=reason)

    @property
    def is_denied(self) -> bool:
        return self.kind is DecisionKind.DENIED


@dataclass(frozen=True)
class ReservationResponse:
    classification: DecisionKind
    assigned_hour: int
    message: str


@dataclass(frozen=True)
class Welcome:
    current_hour: int


@dataclass
class AdmissionStatistics:
    accepted: int = 0
    late_rescheduled: int = 0
    rescheduled: int = 0
    denied: int = 0

    def record(self, kind: DecisionKind) -> None:
        if kind is DecisionKind.ACCEPTED:
            self.accepted += 1
        elif kind is DecisionKind.LATE_RESCHEDULED:
            self.late_rescheduled += 1
        elif kind is DecisionKind.RESCHEDULED:
            self.rescheduled += 1
        else:
            self.denied += 1

    @property
    def total(self) -> int:
        return self.accepted + self.late_rescheduled + self.rescheduled + self.denied

    def to_dict(self) -> dict[str, int]:
        return {
            "accepted": self.accepted,
            "late_rescheduled": self.late_rescheduled,
            "rescheduled": self.rescheduled,
            "denied": self.denied,
        }


@dataclass
class AgentRegistry:
    """Reply channels announced in handshakes, in first-seen order."""

    _agents: dict[str, str] = field(default_factory=dict)

    def register(self, reply_channel: str, agent_name: str) -> bool:
        if reply_channel in self._agents:
            return False
        self._agents[reply_channel] = agent_name
        return True

    def __contains__(self, reply_channel: object) -> bool:
        return reply_channel in self._agents

    def __len__(self) -> int:
        return len(self._agents)

    def channels(self) -> list[str]:
        return list(self._agents)

    def agent_names(self) -> list[str]:
        return list(self._agents.values())


@dataclass(frozen=True)
class SimulationSummary:
    statistics: dict[str, int]
    occupancy: dict[int, int]
    peak_hours: list[int]
    peak_occupancy: int
    valley_hours: list[int]
    valley_occupancy: int

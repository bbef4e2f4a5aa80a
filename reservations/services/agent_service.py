"""Reservation agent: reads planned visits and submits them to the controller.

The agent handles one request at a time and waits a bounded time for each
reply. It does not retry; an unanswered request is logged and skipped.
"""

from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

import pandas as pd

from reservations.domain.models import AgentHello, ReservationRequest, ReservationResponse
from reservations.transport.base import TransportError
from reservations.transport.fifo_transport import FifoReplyChannel, send_frame
from reservations.transport.protocol import (
    RESPONSE_SIZE,
    WELCOME_SIZE,
    ProtocolError,
    decode_response,
    decode_welcome,
    encode_hello,
    encode_request,
)
from reservations.utils.config import Settings, get_settings
from reservations.utils.logger import get_logger


logger = get_logger(__name__)

_REQUEST_COLUMNS = ["family_name", "requested_hour", "party_size"]


class RequestFileError(Exception):
    """Raised when the requests file cannot be read."""


class HandshakeError(Exception):
    """Raised when the controller does not answer the handshake."""


@dataclass(frozen=True)
class PlannedVisit:
    family_name: str
    requested_hour: int
    party_size: int


@dataclass(frozen=True)
class AgentOutcome:
    visit: PlannedVisit
    response: Optional[ReservationResponse]
    skipped: bool = False


def load_planned_visits(path: str | Path) -> list[PlannedVisit]:
    """Read ``family,hour,party_size`` rows; malformed rows are logged and skipped."""
    try:
        frame = pd.read_csv(
            path,
            header=None,
            names=_REQUEST_COLUMNS,
            dtype=str,
            skipinitialspace=True,
            comment="#",
            skip_blank_lines=True,
        )
    except FileNotFoundError as exc:
        raise RequestFileError(f"requests file {path} not found") from exc
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise RequestFileError(f"requests file {path} is unreadable: {exc}") from exc
    if frame.empty:
        raise RequestFileError(f"requests file {path} has no rows")

    visits: list[PlannedVisit] = []
    for line_number, row in enumerate(frame.itertuples(index=False), start=1):
        family = (row.family_name or "").strip() if isinstance(row.family_name, str) else ""
        try:
            hour = int(str(row.requested_hour).strip())
            party_size = int(str(row.party_size).strip())
        except ValueError:
            logger.warning("Skipping malformed row %s in %s", line_number, path)
            continue
        if not family or party_size <= 0:
            logger.warning("Skipping invalid row %s in %s", line_number, path)
            continue
        visits.append(PlannedVisit(family, hour, party_size))
    return visits


def _channel_token(agent_name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]", "_", agent_name)[:20] or "agent"


class ReservationAgent:
    def __init__(
        self,
        agent_name: str,
        controller_pipe: str | Path,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        self.agent_name = agent_name
        self._controller_pipe = Path(controller_pipe)
        self._sleep = sleep
        self._sequence = 0
        self.start_hour: Optional[int] = None

    def _next_reply_path(self) -> Path:
        self._sequence += 1
        name = f"{_channel_token(self.agent_name)}_{os.getpid()}_{self._sequence}.reply"
        return Path(self._settings.reply_channel_dir) / name

    def handshake(self) -> int:
        """Announce the agent and return the controller's current hour."""
        with FifoReplyChannel(self._next_reply_path()) as channel:
            send_frame(
                self._controller_pipe,
                encode_hello(AgentHello(self.agent_name, str(channel.path))),
            )
            data = channel.read(WELCOME_SIZE, self._settings.agent_reply_timeout_seconds)
        if data is None:
            raise HandshakeError("controller did not answer the handshake")
        welcome = decode_welcome(data)
        self.start_hour = welcome.current_hour
        logger.info("Agent %s registered, simulation hour is %s:00", self.agent_name, welcome.current_hour)
        return welcome.current_hour

    def submit(self, visit: PlannedVisit) -> Optional[ReservationResponse]:
        """Send one request on a fresh reply channel and wait for its response."""
        with FifoReplyChannel(self._next_reply_path()) as channel:
            request = ReservationRequest(
                agent_name=self.agent_name,
                family_name=visit.family_name,
                reply_channel=str(channel.path),
                requested_hour=visit.requested_hour,
                party_size=visit.party_size,
            )
            send_frame(self._controller_pipe, encode_request(request))
            data = channel.read(RESPONSE_SIZE, self._settings.agent_reply_timeout_seconds)

        if data is None:
            logger.warning("No answer for family %s, moving on", visit.family_name)
            return None
        try:
            response = decode_response(data)
        except ProtocolError as exc:
            logger.warning("Unreadable answer for family %s: %s", visit.family_name, exc)
            return None
        logger.info(
            "Family %s: %s (%s)",
            visit.family_name,
            response.classification.name,
            response.message,
        )
        return response

    def run(self, visits: Iterable[PlannedVisit]) -> list[AgentOutcome]:
        if self.start_hour is None:
            self.handshake()

        outcomes: list[AgentOutcome] = []
        for visit in visits:
            if visit.requested_hour < self.start_hour:
                logger.info(
                    "Skipping family %s: %s:00 is before the simulation start hour",
                    visit.family_name,
                    visit.requested_hour,
                )
                outcomes.append(AgentOutcome(visit=visit, response=None, skipped=True))
                continue
            try:
                response = self.submit(visit)
            except ProtocolError as exc:
                logger.warning("Cannot encode request for family %s: %s", visit.family_name, exc)
                outcomes.append(AgentOutcome(visit=visit, response=None, skipped=True))
                continue
            except TransportError as exc:
                logger.error("Controller unreachable, agent %s stops: %s", self.agent_name, exc)
                break
            outcomes.append(AgentOutcome(visit=visit, response=response))
            self._sleep(self._settings.agent_request_interval_seconds)

        logger.info("Agent %s finished %s requests", self.agent_name, len(outcomes))
        return outcomes

"""Request dispatcher: reads agent frames, admits reservations, sends replies."""

from __future__ import annotations

from threading import Event

from reservations.domain.models import AgentHello, ReservationRequest, Welcome
from reservations.services.admission_service import build_response
from reservations.services.simulation_state import SimulationState
from reservations.transport.base import MessageTransport, ReplyDeliveryError, TransportError
from reservations.transport.protocol import (
    ProtocolError,
    decode_inbound,
    encode_response,
    encode_welcome,
)
from reservations.utils.logger import get_logger


logger = get_logger(__name__)


class RequestDispatcher:
    """Serves agent frames until the shared shutdown event is set.

    A frame that has been received is always handled to completion (decision
    applied and reply attempted) before shutdown is checked again.
    """

    def __init__(
        self,
        state: SimulationState,
        transport: MessageTransport,
        shutdown: Event,
        poll_interval_seconds: float = 0.05,
    ) -> None:
        self._state = state
        self._transport = transport
        self._shutdown = shutdown
        self._poll_interval = poll_interval_seconds
        self.frames_handled = 0
        self.frames_discarded = 0
        self.replies_dropped = 0

    def run(self) -> None:
        logger.info("Dispatcher waiting for requests")
        while not self._shutdown.is_set():
            try:
                frame = self._transport.receive(self._poll_interval)
            except TransportError as exc:
                if self._shutdown.is_set():
                    break
                logger.error("Dispatcher stopped: %s", exc)
                return
            if frame is None:
                continue
            self.handle_frame(frame)
        logger.info("Dispatcher stopped after %s frames", self.frames_handled)

    def handle_frame(self, frame: bytes) -> None:
        try:
            message = decode_inbound(frame)
        except ProtocolError as exc:
            self.frames_discarded += 1
            logger.warning("Discarding malformed frame: %s", exc)
            return

        self.frames_handled += 1
        if isinstance(message, AgentHello):
            self._handle_hello(message)
        else:
            self._handle_reservation(message)

    def _handle_hello(self, hello: AgentHello) -> None:
        current_hour, is_new = self._state.register_agent(hello.reply_channel, hello.agent_name)
        if is_new:
            logger.info("Agent %s registered (reply channel %s)", hello.agent_name, hello.reply_channel)
        else:
            logger.info("Agent %s handshake repeated on %s", hello.agent_name, hello.reply_channel)
        self._deliver(hello.reply_channel, encode_welcome(Welcome(current_hour=current_hour)))

    def _handle_reservation(self, request: ReservationRequest) -> None:
        decision = self._state.admit(request)
        response = build_response(decision, request)
        logger.info(
            "Request agent=%s family=%s hour=%s people=%s -> %s (%s)",
            request.agent_name,
            request.family_name,
            request.requested_hour,
            request.party_size,
            decision.kind.name,
            decision.reason.value if decision.reason else response.assigned_hour,
        )
        self._deliver(request.reply_channel, encode_response(response))

    def _deliver(self, reply_channel: str, payload: bytes) -> None:
        try:
            self._transport.send(reply_channel, payload)
        except ReplyDeliveryError as exc:
            self.replies_dropped += 1
            logger.warning("Reply dropped: %s", exc)

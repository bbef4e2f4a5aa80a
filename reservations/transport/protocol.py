"""Fixed-layout binary records exchanged between agents and the controller.

All records start with a little-endian ``int32`` kind tag. Text fields are
UTF-8, NUL padded, and always keep one byte for the terminating NUL. Inbound
records (agent -> controller) are padded to ``INBOUND_FRAME_SIZE`` so that
the controller can read its pipe one frame at a time.
"""

from __future__ import annotations

import enum
import struct
from typing import Union

from reservations.domain.models import (
    AgentHello,
    DecisionKind,
    ReservationRequest,
    ReservationResponse,
    Welcome,
)


NAME_FIELD_SIZE = 50
CHANNEL_FIELD_SIZE = 100
MESSAGE_FIELD_SIZE = 100


class MessageKind(enum.IntEnum):
    HELLO = 1
    RESERVATION = 2
    WELCOME = 3
    RESPONSE = 4


class ProtocolError(Exception):
    """Raised when a record has the wrong size or shape."""


_KIND = struct.Struct("<i")
_HELLO = struct.Struct(f"<i{NAME_FIELD_SIZE}s{CHANNEL_FIELD_SIZE}s")
_RESERVATION = struct.Struct(
    f"<i{NAME_FIELD_SIZE}s{NAME_FIELD_SIZE}s{CHANNEL_FIELD_SIZE}sii"
)
_WELCOME = struct.Struct("<ii")
_RESPONSE = struct.Struct(f"<iii{MESSAGE_FIELD_SIZE}s")

INBOUND_FRAME_SIZE = max(_HELLO.size, _RESERVATION.size)
WELCOME_SIZE = _WELCOME.size
RESPONSE_SIZE = _RESPONSE.size

InboundMessage = Union[AgentHello, ReservationRequest]


def _pack_text(value: str, size: int, field_name: str) -> bytes:
    raw = value.encode("utf-8")
    if len(raw) >= size:
        raise ProtocolError(f"{field_name} must be shorter than {size} bytes")
    return raw


def _truncate_text(value: str, size: int) -> bytes:
    # Cut on a character boundary so the receiver can always decode it.
    raw = value.encode("utf-8")[: size - 1]
    return raw.decode("utf-8", errors="ignore").encode("utf-8")


def _unpack_text(raw: bytes, field_name: str) -> str:
    try:
        return raw.split(b"\0", 1)[0].decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ProtocolError(f"{field_name} is not valid UTF-8") from exc


def encode_hello(hello: AgentHello) -> bytes:
    payload = _HELLO.pack(
        MessageKind.HELLO,
        _pack_text(hello.agent_name, NAME_FIELD_SIZE, "agent_name"),
        _pack_text(hello.reply_channel, CHANNEL_FIELD_SIZE, "reply_channel"),
    )
    return payload.ljust(INBOUND_FRAME_SIZE, b"\0")


def encode_request(request: ReservationRequest) -> bytes:
    try:
        payload = _RESERVATION.pack(
            MessageKind.RESERVATION,
            _pack_text(request.agent_name, NAME_FIELD_SIZE, "agent_name"),
            _pack_text(request.family_name, NAME_FIELD_SIZE, "family_name"),
            _pack_text(request.reply_channel, CHANNEL_FIELD_SIZE, "reply_channel"),
            request.requested_hour,
            request.party_size,
        )
    except struct.error as exc:
        raise ProtocolError(
            f"hour {request.requested_hour} or party size {request.party_size} "
            "does not fit a 32-bit field"
        ) from exc
    return payload.ljust(INBOUND_FRAME_SIZE, b"\0")


def decode_inbound(frame: bytes) -> InboundMessage:
    """Decode one agent frame into a handshake or a reservation request."""
    if len(frame) != INBOUND_FRAME_SIZE:
        raise ProtocolError(
            f"expected {INBOUND_FRAME_SIZE} bytes, got {len(frame)}"
        )
    (kind,) = _KIND.unpack_from(frame)

    if kind == MessageKind.HELLO:
        _, raw_agent, raw_channel = _HELLO.unpack_from(frame)
        reply_channel = _unpack_text(raw_channel, "reply_channel")
        if not reply_channel:
            raise ProtocolError("handshake without reply channel")
        return AgentHello(
            agent_name=_unpack_text(raw_agent, "agent_name"),
            reply_channel=reply_channel,
        )

    if kind == MessageKind.RESERVATION:
        _, raw_agent, raw_family, raw_channel, hour, party_size = _RESERVATION.unpack_from(frame)
        reply_channel = _unpack_text(raw_channel, "reply_channel")
        if not reply_channel:
            raise ProtocolError("reservation without reply channel")
        if party_size <= 0:
            raise ProtocolError(f"party size must be positive, got {party_size}")
        return ReservationRequest(
            agent_name=_unpack_text(raw_agent, "agent_name"),
            family_name=_unpack_text(raw_family, "family_name"),
            reply_channel=reply_channel,
            requested_hour=hour,
            party_size=party_size,
        )

    raise ProtocolError(f"unknown message kind {kind}")


def encode_welcome(welcome: Welcome) -> bytes:
    return _WELCOME.pack(MessageKind.WELCOME, welcome.current_hour)


def decode_welcome(data: bytes) -> Welcome:
    if len(data) != WELCOME_SIZE:
        raise ProtocolError(f"expected {WELCOME_SIZE} bytes, got {len(data)}")
    kind, current_hour = _WELCOME.unpack(data)
    if kind != MessageKind.WELCOME:
        raise ProtocolError(f"expected welcome record, got kind {kind}")
    return Welcome(current_hour=current_hour)


def encode_response(response: ReservationResponse) -> bytes:
    return _RESPONSE.pack(
        MessageKind.RESPONSE,
        int(response.classification),
        response.assigned_hour,
        _truncate_text(response.message, MESSAGE_FIELD_SIZE),
    )


def decode_response(data: bytes) -> ReservationResponse:
    if len(data) != RESPONSE_SIZE:
        raise ProtocolError(f"expected {RESPONSE_SIZE} bytes, got {len(data)}")
    kind, classification, assigned_hour, raw_message = _RESPONSE.unpack(data)
    if kind != MessageKind.RESPONSE:
        raise ProtocolError(f"expected response record, got kind {kind}")
    try:
        decision_kind = DecisionKind(classification)
    except ValueError as exc:
        raise ProtocolError(f"unknown classification {classification}") from exc
    return ReservationResponse(
        classification=decision_kind,
        assigned_hour=assigned_hour,
        message=_unpack_text(raw_message, "message"),
    )

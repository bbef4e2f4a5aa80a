from __future__ import annotations

import struct

import pytest

from reservations.domain.models import (
    AgentHello,
    DecisionKind,
    ReservationRequest,
    ReservationResponse,
    Welcome,
)
from reservations.transport.protocol import (
    INBOUND_FRAME_SIZE,
    MESSAGE_FIELD_SIZE,
    RESPONSE_SIZE,
    MessageKind,
    ProtocolError,
    decode_inbound,
    decode_response,
    decode_welcome,
    encode_hello,
    encode_request,
    encode_response,
    encode_welcome,
)


def _request(**overrides) -> ReservationRequest:
    fields = {
        "agent_name": "agent1",
        "family_name": "Zuluaga",
        "reply_channel": "/tmp/agent1_1.reply",
        "requested_hour": 8,
        "party_size": 10,
    }
    fields.update(overrides)
    return ReservationRequest(**fields)


def test_inbound_frames_share_one_size() -> None:
    assert INBOUND_FRAME_SIZE == 212
    assert len(encode_request(_request())) == INBOUND_FRAME_SIZE
    assert len(encode_hello(AgentHello("agent1", "/tmp/a.reply"))) == INBOUND_FRAME_SIZE


def test_request_frame_decodes_back() -> None:
    request = _request(family_name="Müller")
    assert decode_inbound(encode_request(request)) == request


def test_hello_frame_decodes_to_handshake() -> None:
    message = decode_inbound(encode_hello(AgentHello("agent7", "/tmp/agent7.reply")))
    assert message == AgentHello("agent7", "/tmp/agent7.reply")


def test_frame_starts_with_kind_tag() -> None:
    frame = encode_request(_request())
    assert struct.unpack_from("<i", frame)[0] == MessageKind.RESERVATION


def test_short_frame_is_rejected() -> None:
    with pytest.raises(ProtocolError):
        decode_inbound(encode_request(_request())[:100])


def test_unknown_kind_is_rejected() -> None:
    frame = bytearray(encode_request(_request()))
    struct.pack_into("<i", frame, 0, 99)
    with pytest.raises(ProtocolError):
        decode_inbound(bytes(frame))


def test_non_positive_party_is_rejected() -> None:
    frame = encode_request(_request(party_size=0))
    with pytest.raises(ProtocolError):
        decode_inbound(frame)


def test_missing_reply_channel_is_rejected() -> None:
    with pytest.raises(ProtocolError):
        decode_inbound(encode_hello(AgentHello("agent1", "")))


def test_oversized_text_cannot_be_encoded() -> None:
    with pytest.raises(ProtocolError):
        encode_request(_request(family_name="x" * 50))


def test_numbers_beyond_int32_cannot_be_encoded() -> None:
    with pytest.raises(ProtocolError):
        encode_request(_request(requested_hour=99_999_999_999))
    with pytest.raises(ProtocolError):
        encode_request(_request(party_size=2**31))


def test_response_message_is_truncated_on_character_boundary() -> None:
    response = ReservationResponse(
        classification=DecisionKind.RESCHEDULED,
        assigned_hour=10,
        message="ñ" * 80,
    )
    data = encode_response(response)
    assert len(data) == RESPONSE_SIZE
    decoded = decode_response(data)
    assert decoded.classification is DecisionKind.RESCHEDULED
    assert decoded.assigned_hour == 10
    assert len(decoded.message.encode("utf-8")) < MESSAGE_FIELD_SIZE
    assert set(decoded.message) == {"ñ"}


def test_welcome_carries_current_hour() -> None:
    assert decode_welcome(encode_welcome(Welcome(current_hour=11))) == Welcome(11)


def test_response_decoder_rejects_welcome_record() -> None:
    with pytest.raises(ProtocolError):
        decode_response(encode_welcome(Welcome(current_hour=11)))


def test_unknown_classification_is_rejected() -> None:
    data = struct.pack(f"<iii{MESSAGE_FIELD_SIZE}s", MessageKind.RESPONSE, 9, 8, b"hi")
    with pytest.raises(ProtocolError):
        decode_response(data)

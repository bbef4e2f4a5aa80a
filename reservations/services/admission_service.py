"""Admission policy: earliest-fit block search and reservation classification.

``classify`` is pure and ``apply`` is the only writer of the occupancy table.
Callers must run both under the simulation lock, otherwise a decision can be
applied against occupancy that changed after it was computed.
"""

from __future__ import annotations

from typing import Optional

from reservations.domain.models import (
    NO_HOUR,
    Decision,
    DecisionKind,
    DenialReason,
    ReservationRequest,
    ReservationResponse,
)
from reservations.domain.occupancy import OccupancyTable


def find_earliest_block(
    table: OccupancyTable,
    party_size: int,
    from_hour: int,
) -> Optional[int]:
    """Return the first hour >= ``from_hour`` where a two-hour stay fits, or None."""
    for hour in range(max(from_hour, table.hour_start), table.hour_end):
        if table.fits(hour, party_size):
            return hour
    return None


def classify(
    request: ReservationRequest,
    current_hour: int,
    table: OccupancyTable,
) -> Decision:
    """Decide the outcome of ``request`` at simulated time ``current_hour``.

    Rules are evaluated in order and the first match wins:

    1. party larger than the park capacity -> denied
    2. stay would end after closing time -> denied, no search
    3. requested hour already passed -> earliest block from now, or denied
    4. requested block fits -> accepted
    5. otherwise -> earliest block from now, or denied
    """
    party_size = request.party_size
    requested_hour = request.requested_hour

    if party_size > table.capacity:
        return Decision.denied(DenialReason.EXCEEDS_CAPACITY)

    if requested_hour > table.hour_end or requested_hour + 1 > table.hour_end:
        return Decision.denied(DenialReason.OUT_OF_RANGE)

    if requested_hour < current_hour:
        hour = find_earliest_block(table, party_size, current_hour)
        if hour is None:
            return Decision.denied(DenialReason.LATE_NO_SLOT)
        return Decision.late_rescheduled(hour)

    if table.fits(requested_hour, party_size):
        return Decision.accepted(requested_hour)

    hour = find_earliest_block(table, party_size, current_hour)
    if hour is None:
        return Decision.denied(DenialReason.NO_SLOT)
    return Decision.rescheduled(hour)


def apply(decision: Decision, request: ReservationRequest, table: OccupancyTable) -> None:
    """Book the stay chosen by ``decision``. Denials leave the table untouched."""
    if decision.is_denied or decision.hour is None:
        return
    table.add(decision.hour, request.party_size)
    table.add(decision.hour + 1, request.party_size)


def build_response(decision: Decision, request: ReservationRequest) -> ReservationResponse:
    family = request.family_name
    if decision.kind is DecisionKind.DENIED:
        reason = decision.reason.value if decision.reason else "denied"
        return ReservationResponse(
            classification=DecisionKind.DENIED,
            assigned_hour=NO_HOUR,
            message=f"Reservation denied for family {family}: {reason}",
        )

    hour = decision.hour
    if decision.kind is DecisionKind.ACCEPTED:
        message = f"Reservation OK for family {family} from {hour}:00 to {hour + 2}:00"
    elif decision.kind is DecisionKind.RESCHEDULED:
        message = (
            f"Family {family} rescheduled to {hour}:00-{hour + 2}:00, "
            f"{request.requested_hour}:00 is full"
        )
    else:
        message = (
            f"{request.requested_hour}:00 already passed, family {family} "
            f"rescheduled to {hour}:00-{hour + 2}:00"
        )
    return ReservationResponse(
        classification=decision.kind,
        assigned_hour=hour,
        message=message,
    )

"""Admission policy tests: earliest-fit search, rule ordering and booking."""

from __future__ import annotations

import random

import pytest

from reservations.domain.models import (
    NO_HOUR,
    Decision,
    DecisionKind,
    DenialReason,
    ReservationRequest,
)
from reservations.domain.occupancy import OccupancyTable
from reservations.services.admission_service import (
    apply,
    build_response,
    classify,
    find_earliest_block,
)


def _request(hour: int, party: int, family: str = "Perez") -> ReservationRequest:
    return ReservationRequest(
        agent_name="agent1",
        family_name=family,
        reply_channel="/tmp/agent1.reply",
        requested_hour=hour,
        party_size=party,
    )


def _admit(table: OccupancyTable, request: ReservationRequest, current_hour: int) -> Decision:
    decision = classify(request, current_hour, table)
    apply(decision, request, table)
    return decision


@pytest.fixture
def table() -> OccupancyTable:
    return OccupancyTable(hour_start=7, hour_end=19, capacity=50)


# --- Worked scenarios ---

def test_scenario_sequence_accept_reschedule_and_late_reschedule(table) -> None:
    decision = _admit(table, _request(8, 10), current_hour=7)
    assert decision == Decision.accepted(8)
    assert table.get(8) == 10
    assert table.get(9) == 10

    decision = _admit(table, _request(8, 45), current_hour=7)
    assert decision == Decision.rescheduled(10)
    assert table.get(10) == 45
    assert table.get(11) == 45

    decision = _admit(table, _request(7, 5), current_hour=9)
    assert decision == Decision.late_rescheduled(9)
    assert table.get(9) == 15
    assert table.get(10) == 50


def test_party_larger_than_capacity_is_denied_without_mutation(table) -> None:
    before = table.snapshot()
    decision = _admit(table, _request(10, 60), current_hour=7)
    assert decision == Decision.denied(DenialReason.EXCEEDS_CAPACITY)
    assert table.snapshot() == before


def test_stay_ending_after_closing_is_out_of_range(table) -> None:
    decision = classify(_request(19, 1), 7, table)
    assert decision == Decision.denied(DenialReason.OUT_OF_RANGE)


def test_hour_past_closing_is_out_of_range(table) -> None:
    assert classify(_request(23, 1), 7, table).reason is DenialReason.OUT_OF_RANGE


# --- Rule ordering ---

def test_capacity_rule_wins_over_range_rule(table) -> None:
    decision = classify(_request(25, 99), 7, table)
    assert decision.reason is DenialReason.EXCEEDS_CAPACITY


def test_out_of_range_denies_without_searching_even_when_late(table) -> None:
    decision = classify(_request(19, 1), 12, table)
    assert decision.reason is DenialReason.OUT_OF_RANGE


def test_late_request_with_no_remaining_block_is_denied(table) -> None:
    decision = classify(_request(8, 5), 19, table)
    assert decision == Decision.denied(DenialReason.LATE_NO_SLOT)


def test_request_before_opening_is_handled_as_late(table) -> None:
    decision = classify(_request(5, 5), 7, table)
    assert decision == Decision.late_rescheduled(7)


def test_full_day_denies_with_no_slot_reason() -> None:
    table = OccupancyTable(hour_start=7, hour_end=10, capacity=10)
    for hour in range(7, 11):
        table.add(hour, 10)
    decision = classify(_request(8, 1), 7, table)
    assert decision == Decision.denied(DenialReason.NO_SLOT)


def test_reschedule_search_starts_at_current_hour(table) -> None:
    table.add(12, 50)
    decision = classify(_request(11, 5), 10, table)
    # 11:00 collides with the full 12:00 bucket; 10:00 is the first block from now.
    assert decision == Decision.rescheduled(10)

    decision = classify(_request(12, 5), 11, table)
    assert decision == Decision.rescheduled(13)


def test_request_at_current_hour_is_not_late(table) -> None:
    assert classify(_request(9, 5), 9, table) == Decision.accepted(9)


# --- Block search ---

def test_find_earliest_block_returns_first_fitting_hour(table) -> None:
    table.add(7, 45)
    table.add(8, 45)
    assert find_earliest_block(table, 10, 7) == 9
    assert find_earliest_block(table, 5, 7) == 7


def test_find_earliest_block_clamps_start_to_opening_hour(table) -> None:
    assert find_earliest_block(table, 1, 3) == 7


def test_find_earliest_block_returns_none_when_nothing_fits() -> None:
    table = OccupancyTable(hour_start=7, hour_end=9, capacity=5)
    table.add(8, 5)
    assert find_earliest_block(table, 1, 7) is None


def test_find_earliest_block_matches_exhaustive_minimum() -> None:
    rng = random.Random(7)
    for _ in range(200):
        table = OccupancyTable(hour_start=7, hour_end=19, capacity=30)
        for hour in range(7, 20):
            table.add(hour, rng.randint(0, 30))
        party = rng.randint(1, 30)
        start = rng.randint(5, 19)
        expected = next(
            (hour for hour in range(7, 19) if hour >= start and table.fits(hour, party)),
            None,
        )
        assert find_earliest_block(table, party, start) == expected


# --- Apply ---

def test_apply_denied_never_mutates(table) -> None:
    before = table.snapshot()
    apply(Decision.denied(DenialReason.NO_SLOT), _request(8, 10), table)
    assert table.snapshot() == before


@pytest.mark.parametrize(
    "decision",
    [Decision.accepted(12), Decision.rescheduled(12), Decision.late_rescheduled(12)],
)
def test_apply_books_both_hours_exactly_once(table, decision) -> None:
    apply(decision, _request(8, 7), table)
    assert table.get(12) == 7
    assert table.get(13) == 7
    assert sum(table.snapshot().values()) == 14


def test_capacity_invariant_holds_for_random_request_streams() -> None:
    rng = random.Random(2024)
    table = OccupancyTable(hour_start=7, hour_end=19, capacity=40)
    current_hour = 7
    for step in range(500):
        if step % 40 == 39:
            current_hour += 1
        request = _request(rng.randint(5, 21), rng.randint(1, 45))
        decision = _admit(table, request, current_hour)
        if decision.kind is DecisionKind.ACCEPTED:
            assert decision.hour == request.requested_hour
            assert decision.hour >= current_hour
        assert all(count <= 40 for count in table.snapshot().values())


def test_accepted_iff_requested_block_fits(table) -> None:
    table.add(10, 30)
    for hour in range(7, 19):
        request = _request(hour, 25)
        expected_accept = hour >= 8 and table.fits(hour, 25)
        decision = classify(request, 8, table)
        assert (decision.kind is DecisionKind.ACCEPTED) == expected_accept


# --- Responses ---

def test_denied_response_uses_sentinel_hour() -> None:
    response = build_response(Decision.denied(DenialReason.OUT_OF_RANGE), _request(19, 2))
    assert response.classification is DecisionKind.DENIED
    assert response.assigned_hour == NO_HOUR
    assert "out of range" in response.message


def test_accepted_response_reports_two_hour_stay() -> None:
    response = build_response(Decision.accepted(8), _request(8, 2, family="Gomez"))
    assert response.assigned_hour == 8
    assert "Gomez" in response.message
    assert "8:00" in response.message and "10:00" in response.message

from __future__ import annotations

import threading
import time
from dataclasses import replace

from reservations.domain.constraints import ControllerConfig
from reservations.domain.models import DecisionKind, ReservationRequest
from reservations.services.clock_service import ClockState, SimulationClock
from reservations.services.controller_service import ReservationController
from reservations.services.report_service import build_summary, format_summary
from reservations.services.simulation_state import SimulationState
from reservations.transport.memory_transport import InMemoryTransport
from reservations.transport.protocol import decode_response, encode_request
from reservations.utils.config import get_settings


def _build_test_settings():
    return replace(
        get_settings(),
        dispatcher_poll_interval_seconds=0.01,
        shutdown_grace_seconds=0.5,
    )


def _config(**overrides) -> ControllerConfig:
    fields = {"hour_start": 7, "hour_end": 9, "seconds_per_hour": 0.1, "capacity": 20}
    fields.update(overrides)
    return ControllerConfig(**fields)


def _frame(family: str, hour: int, party: int, channel: str) -> bytes:
    return encode_request(ReservationRequest("agent1", family, channel, hour, party))


# --- Clock ---

def test_clock_advances_until_day_is_over_then_stays_finished() -> None:
    state = SimulationState(_config(hour_end=8))
    shutdown = threading.Event()
    clock = SimulationClock(state, seconds_per_hour=0.1, shutdown=shutdown)

    assert clock.tick() is False
    assert state.current_hour == 8
    assert not shutdown.is_set()

    assert clock.tick() is True
    assert state.current_hour == 9
    assert state.finished
    assert clock.status is ClockState.FINISHED
    assert shutdown.is_set()

    assert clock.tick() is True
    assert state.current_hour == 9


def test_clock_run_stops_early_when_shutdown_is_set() -> None:
    state = SimulationState(_config(seconds_per_hour=5.0))
    shutdown = threading.Event()
    clock = SimulationClock(state, seconds_per_hour=5.0, shutdown=shutdown)
    thread = threading.Thread(target=clock.run, daemon=True)
    thread.start()
    shutdown.set()
    thread.join(timeout=1.0)

    assert not thread.is_alive()
    assert state.current_hour == 7
    assert clock.status is ClockState.RUNNING


# --- Controller lifecycle ---

def test_controller_runs_full_day_and_reports() -> None:
    transport = InMemoryTransport()
    controller = ReservationController(_config(), transport, settings=_build_test_settings())
    transport.submit(_frame("Zuluaga", 7, 10, "c-1"))
    transport.submit(_frame("Rojas", 7, 15, "c-2"))

    started = time.monotonic()
    summary = controller.run()
    elapsed = time.monotonic() - started

    assert elapsed < 3.0
    assert controller.state.finished
    assert controller.state.current_hour == 10

    first = decode_response(transport.replies("c-1")[0])
    second = decode_response(transport.replies("c-2")[0])
    assert first.classification is DecisionKind.ACCEPTED
    assert second.classification is DecisionKind.DENIED

    assert summary.statistics == {
        "accepted": 1,
        "late_rescheduled": 0,
        "rescheduled": 0,
        "denied": 1,
    }
    assert summary.occupancy == {7: 10, 8: 10, 9: 0}
    assert summary.peak_hours == [7, 8]
    assert summary.peak_occupancy == 10
    assert summary.valley_hours == [9]
    assert summary.valley_occupancy == 0
    assert controller.summary == summary


def test_requests_arriving_after_clock_moves_are_judged_against_new_hour() -> None:
    transport = InMemoryTransport()
    controller = ReservationController(
        _config(hour_end=12, seconds_per_hour=0.2),
        transport,
        settings=_build_test_settings(),
    )
    controller.start()
    deadline = time.monotonic() + 2.0
    while controller.state.current_hour < 9 and time.monotonic() < deadline:
        time.sleep(0.01)
    transport.submit(_frame("Late", 7, 5, "late-1"))
    controller.wait()

    response = decode_response(transport.replies("late-1")[0])
    assert response.classification is DecisionKind.LATE_RESCHEDULED
    assert response.assigned_hour >= 9


def test_stop_ends_the_day_early() -> None:
    transport = InMemoryTransport()
    controller = ReservationController(
        _config(seconds_per_hour=10.0),
        transport,
        settings=_build_test_settings(),
    )
    controller.start()
    controller.stop()
    summary = controller.wait()

    assert not controller.state.finished
    assert summary.statistics["accepted"] == 0
    assert summary.valley_hours == [7, 8, 9]


def test_format_summary_lists_counters_and_hours() -> None:
    state = SimulationState(_config())
    state.admit(ReservationRequest("a", "F", "ch", 8, 4))
    lines = format_summary(build_summary(state.snapshot()))
    assert any("Accepted" in line and "1" in line for line in lines)
    assert any(line.startswith("Peak hours (4 visitors)") and "8:00, 9:00" in line for line in lines)
    assert any(line.startswith("Valley hours (0 visitors)") and "7:00" in line for line in lines)


class _SlowReplyTransport(InMemoryTransport):
    def __init__(self, delay: float) -> None:
        super().__init__()
        self.delay = delay
        self.send_started = threading.Event()
        self.send_finished = threading.Event()

    def send(self, reply_channel: str, payload: bytes) -> None:
        self.send_started.set()
        time.sleep(self.delay)
        super().send(reply_channel, payload)
        self.send_finished.set()


def test_wait_abandons_a_dispatcher_stuck_past_the_grace_period() -> None:
    transport = _SlowReplyTransport(delay=1.5)
    settings = replace(
        get_settings(),
        dispatcher_poll_interval_seconds=0.01,
        shutdown_grace_seconds=0.2,
    )
    controller = ReservationController(
        _config(hour_end=8, seconds_per_hour=0.15),
        transport,
        settings=settings,
    )
    transport.submit(_frame("Rojas", 7, 3, "slow-1"))
    controller.start()
    assert transport.send_started.wait(1.0)

    started = time.monotonic()
    summary = controller.wait()
    elapsed = time.monotonic() - started

    assert elapsed < 1.0
    assert not transport.send_finished.is_set()
    assert not transport.is_open
    assert summary.statistics["accepted"] == 1
    assert summary.occupancy[7] == 3

    # The abandoned thread still completes its reply and then exits.
    assert transport.send_finished.wait(3.0)
    assert len(transport.replies("slow-1")) == 1

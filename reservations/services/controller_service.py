"""Controller lifecycle: owns shared state and runs the clock and dispatcher threads."""

from __future__ import annotations

import threading
from typing import Optional

from reservations.domain.constraints import ControllerConfig, validate_controller_config
from reservations.domain.models import SimulationSummary
from reservations.services.clock_service import SimulationClock
from reservations.services.dispatcher_service import RequestDispatcher
from reservations.services.report_service import build_summary
from reservations.services.simulation_state import SimulationState, StateSnapshot
from reservations.transport.base import MessageTransport
from reservations.utils.config import Settings, get_settings
from reservations.utils.logger import get_logger


logger = get_logger(__name__)


def build_controller_config(settings: Settings) -> ControllerConfig:
    config = ControllerConfig(
        hour_start=settings.hour_start,
        hour_end=settings.hour_end,
        seconds_per_hour=settings.seconds_per_hour,
        capacity=settings.capacity,
    )
    validate_controller_config(config)
    return config


class ReservationController:
    """Coordinates the simulated day.

    Configuration is validated in the constructor, before ``start`` opens the
    transport. The clock and dispatcher share one ``SimulationState`` and one
    shutdown event; shutdown is always cooperative.
    """

    def __init__(
        self,
        config: ControllerConfig,
        transport: MessageTransport,
        settings: Optional[Settings] = None,
    ) -> None:
        validate_controller_config(config)
        self._settings = settings or get_settings()
        self._config = config
        self._transport = transport
        self._shutdown = threading.Event()
        self._state = SimulationState(config)
        self._clock = SimulationClock(
            state=self._state,
            seconds_per_hour=config.seconds_per_hour,
            shutdown=self._shutdown,
        )
        self._dispatcher = RequestDispatcher(
            state=self._state,
            transport=transport,
            shutdown=self._shutdown,
            poll_interval_seconds=self._settings.dispatcher_poll_interval_seconds,
        )
        self._clock_thread: Optional[threading.Thread] = None
        self._dispatcher_thread: Optional[threading.Thread] = None
        self._summary: Optional[SimulationSummary] = None

    @property
    def config(self) -> ControllerConfig:
        return self._config

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def dispatcher(self) -> RequestDispatcher:
        return self._dispatcher

    @property
    def summary(self) -> Optional[SimulationSummary]:
        return self._summary

    def start(self) -> None:
        """Open the transport and launch both threads. Raises ``TransportError``."""
        if self._clock_thread is not None:
            raise RuntimeError("controller already started")
        self._transport.open()
        logger.info(
            "Controller started: hours %s-%s, capacity %s, %.2fs per hour",
            self._config.hour_start,
            self._config.hour_end,
            self._config.capacity,
            self._config.seconds_per_hour,
        )
        self._dispatcher_thread = threading.Thread(
            target=self._dispatcher.run,
            name="dispatcher",
            daemon=True,
        )
        self._clock_thread = threading.Thread(
            target=self._clock.run,
            name="clock",
            daemon=True,
        )
        self._dispatcher_thread.start()
        self._clock_thread.start()

    def stop(self) -> None:
        """Request an early, cooperative shutdown."""
        logger.info("Stop requested")
        self._shutdown.set()

    def wait(self, timeout: Optional[float] = None) -> SimulationSummary:
        """Block until the day ends, wind down the dispatcher and return the summary."""
        if self._clock_thread is None or self._dispatcher_thread is None:
            raise RuntimeError("controller has not been started")

        self._clock_thread.join(timeout)
        self._shutdown.set()

        self._dispatcher_thread.join(self._settings.shutdown_grace_seconds)
        if self._dispatcher_thread.is_alive():
            # Threads cannot be killed; closing the endpoint makes the next
            # receive fail, and the daemon thread is abandoned otherwise.
            logger.warning(
                "Dispatcher still busy after %.2fs grace period, closing endpoint",
                self._settings.shutdown_grace_seconds,
            )
        self._transport.close()

        self._summary = build_summary(self._state.snapshot())
        self._log_summary(self._summary)
        return self._summary

    def run(self) -> SimulationSummary:
        self.start()
        try:
            return self.wait()
        except KeyboardInterrupt:
            self.stop()
            return self.wait()

    def snapshot(self) -> StateSnapshot:
        return self._state.snapshot()

    def live_summary(self) -> SimulationSummary:
        return build_summary(self._state.snapshot())

    @staticmethod
    def _log_summary(summary: SimulationSummary) -> None:
        stats = summary.statistics
        logger.info(
            "Final statistics: accepted=%s rescheduled=%s late_rescheduled=%s denied=%s",
            stats["accepted"],
            stats["rescheduled"],
            stats["late_rescheduled"],
            stats["denied"],
        )
        logger.info("Peak hours %s with %s visitors", summary.peak_hours, summary.peak_occupancy)
        logger.info("Valley hours %s with %s visitors", summary.valley_hours, summary.valley_occupancy)

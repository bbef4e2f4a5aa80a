"""Read-only HTTP endpoints exposing the live simulation state."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from reservations.controllers.dependencies import get_reservation_controller
from reservations.services.controller_service import ReservationController


router = APIRouter(tags=["status"])


class HealthResponse(BaseModel):
    status: str


class StatisticsResponse(BaseModel):
    accepted: int = Field(ge=0)
    rescheduled: int = Field(ge=0)
    late_rescheduled: int = Field(ge=0)
    denied: int = Field(ge=0)


class StatusResponse(BaseModel):
    current_hour: int
    finished: bool
    hour_start: int
    hour_end: int
    capacity: int = Field(gt=0)
    statistics: StatisticsResponse
    registered_agents: list[str]


class HourOccupancy(BaseModel):
    hour: int
    visitors: int = Field(ge=0)


class OccupancyResponse(BaseModel):
    capacity: int = Field(gt=0)
    hours: list[HourOccupancy]


class ReportResponse(BaseModel):
    statistics: StatisticsResponse
    peak_hours: list[int]
    peak_occupancy: int = Field(ge=0)
    valley_hours: list[int]
    valley_occupancy: int = Field(ge=0)


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get("/status", response_model=StatusResponse)
def get_status(
    controller: ReservationController = Depends(get_reservation_controller),
) -> StatusResponse:
    snapshot = controller.snapshot()
    return StatusResponse(
        current_hour=snapshot.current_hour,
        finished=snapshot.finished,
        hour_start=snapshot.hour_start,
        hour_end=snapshot.hour_end,
        capacity=snapshot.capacity,
        statistics=StatisticsResponse(**snapshot.statistics),
        registered_agents=snapshot.agents,
    )


@router.get("/occupancy", response_model=OccupancyResponse)
def get_occupancy(
    controller: ReservationController = Depends(get_reservation_controller),
) -> OccupancyResponse:
    snapshot = controller.snapshot()
    return OccupancyResponse(
        capacity=snapshot.capacity,
        hours=[
            HourOccupancy(hour=hour, visitors=visitors)
            for hour, visitors in sorted(snapshot.occupancy.items())
        ],
    )


@router.get("/report", response_model=ReportResponse)
def get_report(
    controller: ReservationController = Depends(get_reservation_controller),
) -> ReportResponse:
    summary = controller.live_summary()
    return ReportResponse(
        statistics=StatisticsResponse(**summary.statistics),
        peak_hours=summary.peak_hours,
        peak_occupancy=summary.peak_occupancy,
        valley_hours=summary.valley_hours,
        valley_occupancy=summary.valley_occupancy,
    )

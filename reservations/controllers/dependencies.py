"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from reservations.services.controller_service import ReservationController


def get_reservation_controller(request: Request) -> ReservationController:
    controller = getattr(request.app.state, "reservation_controller", None)
    if controller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reservation controller is not running",
        )
    return controller

"""
app.py — FastAPI application factory for the controller status API.

The API is read-only: it reports the simulated hour, counters and per-hour
occupancy of a running ``ReservationController``. ``main.py`` serves it on a
background thread when a status port is configured:

    python main.py -i 7 -f 19 -s 1 -t 50 -p /tmp/pipe_controller --status-port 8000
"""

from __future__ import annotations

import threading
from typing import Optional

import uvicorn
from fastapi import FastAPI

from reservations.controllers.status_controller import router as status_router
from reservations.services.controller_service import ReservationController
from reservations.utils.config import get_settings
from reservations.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(controller: Optional[ReservationController] = None) -> FastAPI:
    """
    Build the FastAPI application around a controller instance.

    The controller is injected through app.state; endpoints that need it
    answer 503 when none is attached.
    """
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
    )
    app.include_router(status_router)
    app.state.reservation_controller = controller
    return app


def start_status_server(app: FastAPI, host: str, port: int) -> tuple[uvicorn.Server, threading.Thread]:
    """Serve ``app`` with uvicorn on a daemon thread; stop it with ``server.should_exit = True``."""
    config = uvicorn.Config(app, host=host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, name="status-api", daemon=True)
    thread.start()
    logger.info("Status API listening on http://%s:%s", host, port)
    return server, thread

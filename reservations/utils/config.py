"""Environment-backed runtime settings."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from functools import lru_cache


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Process settings. Tests derive variants with ``dataclasses.replace``."""

    app_name: str = "Park Reservation Controller"
    app_version: str = "1.0.0"
    log_level: str = field(default_factory=lambda: _env_str("LOG_LEVEL", "INFO"))

    controller_pipe_path: str = field(
        default_factory=lambda: _env_str("CONTROLLER_PIPE", "/tmp/pipe_controller")
    )
    hour_start: int = field(default_factory=lambda: _env_int("HOUR_START", 7))
    hour_end: int = field(default_factory=lambda: _env_int("HOUR_END", 19))
    seconds_per_hour: float = field(
        default_factory=lambda: _env_float("SECONDS_PER_HOUR", 1.0)
    )
    capacity: int = field(default_factory=lambda: _env_int("PARK_CAPACITY", 50))

    # The dispatcher's receive timeout bounds how long shutdown goes unnoticed.
    dispatcher_poll_interval_seconds: float = 0.05
    shutdown_grace_seconds: float = 1.0
    reply_open_timeout_seconds: float = 0.5

    status_api_host: str = field(
        default_factory=lambda: _env_str("STATUS_API_HOST", "127.0.0.1")
    )
    status_api_port: int = field(default_factory=lambda: _env_int("STATUS_API_PORT", 0))

    agent_reply_timeout_seconds: float = field(
        default_factory=lambda: _env_float("AGENT_REPLY_TIMEOUT", 5.0)
    )
    agent_request_interval_seconds: float = field(
        default_factory=lambda: _env_float("AGENT_REQUEST_INTERVAL", 2.0)
    )
    reply_channel_dir: str = field(
        default_factory=lambda: _env_str("REPLY_CHANNEL_DIR", tempfile.gettempdir())
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached process settings."""
    return Settings()

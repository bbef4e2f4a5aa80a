"""Domain-level validation rules for the controller configuration."""

from __future__ import annotations

from dataclasses import dataclass


# The park opens at 7:00 and the last visitors leave at 19:00.
HOUR_DOMAIN_START = 7
HOUR_DOMAIN_END = 19


@dataclass(frozen=True)
class ControllerConfig:
    hour_start: int
    hour_end: int
    seconds_per_hour: float
    capacity: int


def validate_controller_config(config: ControllerConfig) -> None:
    if not HOUR_DOMAIN_START <= config.hour_start <= HOUR_DOMAIN_END:
        raise ValueError(
            f"hour_start must be between {HOUR_DOMAIN_START} and {HOUR_DOMAIN_END}"
        )
    if not HOUR_DOMAIN_START <= config.hour_end <= HOUR_DOMAIN_END:
        raise ValueError(
            f"hour_end must be between {HOUR_DOMAIN_START} and {HOUR_DOMAIN_END}"
        )
    if config.hour_start >= config.hour_end:
        raise ValueError("hour_start must be less than hour_end")
    if config.seconds_per_hour <= 0:
        raise ValueError("seconds_per_hour must be > 0")
    if config.capacity <= 0:
        raise ValueError("capacity must be > 0")

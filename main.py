"""
main.py — Reservation controller launcher.

Runs one simulated park day: listens for agents on a named pipe, admits or
reschedules their reservations, and prints the final report.

    python main.py -i 7 -f 19 -s 2 -t 50 -p /tmp/pipe_controller

Flags override the environment-backed settings in reservations/utils/config.py.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from typing import Optional, Sequence

from app import create_app, start_status_server
from reservations.services.controller_service import ReservationController, build_controller_config
from reservations.services.report_service import format_summary
from reservations.transport.base import TransportError
from reservations.transport.fifo_transport import FifoTransport
from reservations.utils.config import Settings, get_settings
from reservations.utils.logger import get_logger


logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Park reservation controller")
    parser.add_argument("-i", "--hour-start", type=int, help="first simulated hour (7-19)")
    parser.add_argument("-f", "--hour-end", type=int, help="closing hour (7-19)")
    parser.add_argument("-s", "--seconds-per-hour", type=float, help="real seconds per simulated hour")
    parser.add_argument("-t", "--capacity", type=int, help="maximum visitors per hour")
    parser.add_argument("-p", "--pipe", help="named pipe the controller listens on")
    parser.add_argument("--status-port", type=int, help="serve the status API on this port")
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    overrides = {
        "hour_start": args.hour_start,
        "hour_end": args.hour_end,
        "seconds_per_hour": args.seconds_per_hour,
        "capacity": args.capacity,
        "controller_pipe_path": args.pipe,
        "status_api_port": args.status_port,
    }
    return replace(base, **{key: value for key, value in overrides.items() if value is not None})


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = settings_from_args(args, get_settings())
        config = build_controller_config(settings)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    transport = FifoTransport(
        settings.controller_pipe_path,
        reply_open_timeout_seconds=settings.reply_open_timeout_seconds,
    )
    controller = ReservationController(config, transport, settings=settings)

    status_server = None
    if settings.status_api_port > 0:
        status_server, _ = start_status_server(
            create_app(controller),
            settings.status_api_host,
            settings.status_api_port,
        )

    print("=" * 60)
    print(f"  {settings.app_name}")
    print("=" * 60)
    print(f"  Pipe      : {settings.controller_pipe_path}")
    print(f"  Hours     : {config.hour_start}:00 - {config.hour_end}:00")
    print(f"  Capacity  : {config.capacity} visitors per hour")
    print(f"  Hour lasts: {config.seconds_per_hour} s")
    print("=" * 60)

    try:
        summary = controller.run()
    except TransportError as exc:
        logger.error("Cannot open controller endpoint: %s", exc)
        return 1
    finally:
        if status_server is not None:
            status_server.should_exit = True

    print("=" * 60)
    print("  Final report")
    print("=" * 60)
    for line in format_summary(summary):
        print(f"  {line}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

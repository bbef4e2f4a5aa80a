"""
agent.py — Reservation agent launcher.

Registers with the controller and submits every visit listed in a CSV file
(``family,hour,party_size`` per line), one at a time.

    python agent.py -s agent1 -a data/sample_requests.csv -p /tmp/pipe_controller
"""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from reservations.services.agent_service import (
    HandshakeError,
    RequestFileError,
    ReservationAgent,
    load_planned_visits,
)
from reservations.transport.base import TransportError
from reservations.transport.protocol import ProtocolError
from reservations.utils.config import get_settings
from reservations.utils.logger import get_logger


logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Park reservation agent")
    parser.add_argument("-s", "--name", required=True, help="agent name")
    parser.add_argument("-a", "--requests-file", required=True, help="CSV file of planned visits")
    parser.add_argument("-p", "--pipe", help="controller named pipe")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1
    pipe = args.pipe or settings.controller_pipe_path

    try:
        visits = load_planned_visits(args.requests_file)
    except RequestFileError as exc:
        logger.error("%s", exc)
        return 1

    agent = ReservationAgent(args.name, pipe, settings=settings)
    try:
        agent.handshake()
    except (TransportError, HandshakeError, ProtocolError) as exc:
        logger.error("Agent %s could not register: %s", args.name, exc)
        return 1

    outcomes = agent.run(visits)
    answered = sum(1 for outcome in outcomes if outcome.response is not None)
    print(f"Agent {args.name} finished: {answered}/{len(visits)} requests answered")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

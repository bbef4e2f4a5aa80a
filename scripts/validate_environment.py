#!/usr/bin/env python3
"""Validate local reservation controller environment readiness."""

from __future__ import annotations

import importlib
import os
import shutil
import sys
import tempfile
from dataclasses import replace
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from reservations.domain.models import DecisionKind, ReservationRequest
from reservations.services.controller_service import ReservationController, build_controller_config
from reservations.transport.fifo_transport import FifoTransport
from reservations.transport.memory_transport import InMemoryTransport
from reservations.transport.protocol import decode_response, encode_request
from reservations.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="reservations-env-")

    # CHECK 1 — Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2 — Required packages importable
    package_specs = ["fastapi", "uvicorn", "pydantic", "pandas", "httpx", "pytest"]
    import_errors: list[str] = []
    for module_name in package_specs:
        try:
            importlib.import_module(module_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        # CHECK 3 — Named pipe support
        if not hasattr(os, "mkfifo"):
            ok, line = _print_result("Named pipes", False, "os.mkfifo is unavailable on this platform")
        else:
            transport = FifoTransport(Path(temp_dir) / "controller.fifo")
            try:
                transport.open()
                ok, line = _print_result("Named pipes", True)
            except Exception as exc:
                ok, line = _print_result("Named pipes", False, str(exc))
            finally:
                transport.close()
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4 — One in-process admission round
        try:
            settings = replace(
                get_settings(),
                hour_start=7,
                hour_end=9,
                seconds_per_hour=0.2,
                capacity=20,
                shutdown_grace_seconds=0.5,
            )
            memory = InMemoryTransport()
            controller = ReservationController(build_controller_config(settings), memory, settings=settings)
            memory.submit(
                encode_request(
                    ReservationRequest("validator", "Smith", "validator-reply", 7, 5)
                )
            )
            controller.start()
            summary = controller.wait()
            replies = memory.replies("validator-reply")
            if len(replies) != 1:
                raise RuntimeError(f"expected one reply, got {len(replies)}")
            response = decode_response(replies[0])
            if response.classification is not DecisionKind.ACCEPTED:
                raise RuntimeError(f"expected ACCEPTED, got {response.classification.name}")
            ok, line = _print_result(
                "Admission round",
                True,
                f": peak hours {summary.peak_hours}",
            )
        except Exception as exc:
            ok, line = _print_result("Admission round", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Reservation Controller Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())

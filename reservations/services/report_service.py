"""End-of-day occupancy report."""

from __future__ import annotations

import pandas as pd

from reservations.domain.models import SimulationSummary
from reservations.services.simulation_state import StateSnapshot


def build_summary(snapshot: StateSnapshot) -> SimulationSummary:
    """Summarize counters and find the peak and valley hours over the operating day.

    Ties are reported together: every hour sharing the maximum headcount is a
    peak hour, every hour sharing the minimum is a valley hour.
    """
    hours = range(snapshot.hour_start, snapshot.hour_end + 1)
    series = pd.Series(
        [snapshot.occupancy.get(hour, 0) for hour in hours],
        index=pd.Index(list(hours), name="hour"),
        name="occupancy",
        dtype="int64",
    )
    peak_value = int(series.max())
    valley_value = int(series.min())

    return SimulationSummary(
        statistics=dict(snapshot.statistics),
        occupancy={int(hour): int(count) for hour, count in series.items()},
        peak_hours=[int(hour) for hour in series[series == peak_value].index],
        peak_occupancy=peak_value,
        valley_hours=[int(hour) for hour in series[series == valley_value].index],
        valley_occupancy=valley_value,
    )


def format_summary(summary: SimulationSummary) -> list[str]:
    """Render the report as console lines."""
    stats = summary.statistics
    lines = [
        f"Accepted requests          : {stats['accepted']}",
        f"Rescheduled requests       : {stats['rescheduled']}",
        f"Late rescheduled requests  : {stats['late_rescheduled']}",
        f"Denied requests            : {stats['denied']}",
        "Peak hours ({count} visitors): {hours}".format(
            count=summary.peak_occupancy,
            hours=", ".join(f"{hour}:00" for hour in summary.peak_hours),
        ),
        "Valley hours ({count} visitors): {hours}".format(
            count=summary.valley_occupancy,
            hours=", ".join(f"{hour}:00" for hour in summary.valley_hours),
        ),
    ]
    return lines

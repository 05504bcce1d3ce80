"""Status counts and shares for the statistics overlay."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from .models import CountryRecord, Status

# ACTIVE is the operational default, not a classification; it only counts
# towards the total.
TRACKED_STATUSES: tuple[Status, ...] = (
    Status.COMPLETE,
    Status.NO_EPOCH,
    Status.MISSING_INFO,
    Status.LOCAL_NETWORK,
)


@dataclass(frozen=True, slots=True)
class StatusStat:
    count: int
    percentage: float


def aggregate(records: Iterable[CountryRecord]) -> dict[Status, StatusStat]:
    items = list(records)
    total = len(items)
    out: dict[Status, StatusStat] = {}
    for status in TRACKED_STATUSES:
        count = sum(1 for record in items if record.status == status)
        percentage = round(count / total * 100, 1) if total else 0.0
        out[status] = StatusStat(count=count, percentage=percentage)
    return out


def format_stats_lines(
    stats: Mapping[Status, StatusStat],
    labels: Mapping[Status, str] | None = None,
) -> Sequence[str]:
    lines: list[str] = []
    for status in TRACKED_STATUSES:
        stat = stats.get(status, StatusStat(count=0, percentage=0.0))
        label = labels.get(status, status.value) if labels else status.value
        lines.append(f"{label:<24} {stat.count:>4} {stat.percentage:>6.1f}%")
    return lines

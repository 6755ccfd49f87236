"""
Time intervals for scheduled installations.

A scheduled job occupies the half-open interval [start, start + duration).
Two jobs sharing only a boundary (one ends at 10:00, the next starts at
10:00) do not overlap.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .models import Installation


@dataclass(frozen=True)
class Interval:
    """Half-open time range [start, end)."""
    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)

    def __str__(self) -> str:
        return f"{self.start.strftime('%Y-%m-%d %H:%M')} - {self.end.strftime('%H:%M')}"


def overlaps(a: Interval, b: Interval) -> bool:
    """True when the intervals share any instant; symmetric in its arguments."""
    return a.start < b.end and b.start < a.end


def interval_for(installation: Installation) -> Optional[Interval]:
    """
    Build the interval an installation occupies.

    Returns None when the scheduled date, time or a positive duration is
    missing, so callers can skip partial records.
    """
    if installation.scheduled_date is None or installation.scheduled_time is None:
        return None
    if not installation.duration or installation.duration <= 0:
        return None
    start = datetime.combine(installation.scheduled_date, installation.scheduled_time)
    return Interval(start, start + timedelta(minutes=installation.duration))

"""
Tests for scheduling intervals.
"""

from datetime import date, datetime, time

from fieldops.scheduling.intervals import Interval, interval_for, overlaps
from fieldops.scheduling.models import Installation


def _interval(start: str, end: str) -> Interval:
    day = date(2024, 3, 4)
    return Interval(
        datetime.combine(day, time.fromisoformat(start)),
        datetime.combine(day, time.fromisoformat(end)),
    )


class TestOverlaps:

    def test_partial_overlap(self):
        assert overlaps(_interval("09:00", "10:00"), _interval("09:30", "10:30"))

    def test_overlap_is_symmetric(self):
        a = _interval("09:00", "10:00")
        b = _interval("09:30", "10:30")
        assert overlaps(a, b) == overlaps(b, a)

    def test_back_to_back_does_not_overlap(self):
        assert not overlaps(_interval("09:00", "10:00"), _interval("10:00", "11:00"))
        assert not overlaps(_interval("10:00", "11:00"), _interval("09:00", "10:00"))

    def test_containment_overlaps(self):
        assert overlaps(_interval("08:00", "12:00"), _interval("09:00", "10:00"))

    def test_interval_method_delegates(self):
        assert _interval("09:00", "10:00").overlaps(_interval("09:59", "10:30"))


class TestIntervalFor:

    def test_builds_interval_from_installation(self):
        installation = Installation(
            id="inst-1",
            scheduled_date=date(2024, 3, 4),
            scheduled_time=time(9, 0),
            duration=90,
        )

        interval = interval_for(installation)

        assert interval.start == datetime(2024, 3, 4, 9, 0)
        assert interval.end == datetime(2024, 3, 4, 10, 30)
        assert interval.duration_minutes == 90
        assert str(interval) == "2024-03-04 09:00 - 10:30"

    def test_missing_fields_yield_none(self):
        assert interval_for(Installation(id="a", scheduled_time=time(9, 0), duration=60)) is None
        assert interval_for(Installation(id="b", scheduled_date=date(2024, 3, 4), duration=60)) is None
        assert interval_for(Installation(
            id="c", scheduled_date=date(2024, 3, 4), scheduled_time=time(9, 0)
        )) is None

    def test_non_positive_duration_yields_none(self):
        installation = Installation(
            id="inst-1",
            scheduled_date=date(2024, 3, 4),
            scheduled_time=time(9, 0),
            duration=0,
        )
        assert interval_for(installation) is None

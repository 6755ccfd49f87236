"""
Tests for workload aggregation.
"""

from datetime import timedelta

import pytest

from fieldops.scheduling.models import DateRange, WorkloadData, WorkloadStatus
from fieldops.scheduling.workload import (
    DEFAULT_CAPACITY_MINUTES,
    classify_utilization,
    compute_workloads,
    summarize_workloads,
)


class TestComputeWorkloads:

    def test_capacity_math(self, make_assignment):
        """600 assigned minutes against 480 capacity is 125% and two hours overtime."""
        assignments = [
            make_assignment(f"asg-{i}", f"inst-{i}", start=f"{8 + 2 * i:02d}:00", duration=120)
            for i in range(5)
        ]

        workloads = compute_workloads(assignments)

        assert len(workloads) == 1
        workload = workloads[0]
        assert workload.assigned_minutes == 600
        assert workload.capacity_minutes == DEFAULT_CAPACITY_MINUTES
        assert workload.utilization_percentage == pytest.approx(125.0)
        assert workload.status == WorkloadStatus.OVERLOADED
        assert workload.overtime_minutes == 120
        assert workload.overtime_hours == pytest.approx(2.0)
        assert workload.job_count == 5

    def test_missing_duration_counts_default(self, make_assignment):
        workloads = compute_workloads([make_assignment("asg-1", "inst-1", duration=None)])
        assert workloads[0].assigned_minutes == 120

    def test_lead_and_assistant_both_loaded(self, make_assignment):
        workloads = compute_workloads([
            make_assignment("asg-1", "inst-1", lead_id="tm-1", assistant_id="tm-2", duration=240),
        ])

        by_member = {w.team_member_id: w for w in workloads}
        assert set(by_member) == {"tm-1", "tm-2"}
        assert by_member["tm-2"].assigned_minutes == 240
        assert by_member["tm-2"].utilization_percentage == pytest.approx(50.0)

    def test_member_capacity_overrides_default(self, make_assignment, make_member):
        member = make_member("tm-1", daily_capacity_minutes=240)
        workloads = compute_workloads(
            [make_assignment("asg-1", "inst-1", duration=240)],
            team_members=[member],
        )
        assert workloads[0].utilization_percentage == pytest.approx(100.0)
        assert workloads[0].status == WorkloadStatus.CRITICAL

    def test_travel_and_buffer_accumulate(self, make_assignment):
        first = make_assignment("asg-1", "inst-1", travel_time=20)
        first.buffer_time = 15
        second = make_assignment("asg-2", "inst-2", start="11:00")

        workload = compute_workloads([first, second])[0]

        assert workload.travel_minutes == 20
        assert workload.buffer_minutes == 15
        assert workload.assigned_minutes == 120

    def test_groups_by_day_and_respects_range(self, make_assignment, day):
        assignments = [
            make_assignment("asg-1", "inst-1", day=day),
            make_assignment("asg-2", "inst-2", day=day + timedelta(days=1)),
            make_assignment("asg-3", "inst-3", day=day + timedelta(days=5)),
        ]

        workloads = compute_workloads(assignments, DateRange(day, day + timedelta(days=1)))

        assert [w.date for w in workloads] == [day, day + timedelta(days=1)]

    def test_skips_unscheduled(self, make_assignment):
        assert compute_workloads([make_assignment("asg-1", "inst-1", day=None)]) == []


class TestClassification:

    @pytest.mark.parametrize("utilization,expected", [
        (125.0, WorkloadStatus.OVERLOADED),
        (100.0, WorkloadStatus.CRITICAL),
        (90.5, WorkloadStatus.CRITICAL),
        (90.0, WorkloadStatus.OPTIMAL),
        (60.0, WorkloadStatus.OPTIMAL),
        (59.9, WorkloadStatus.UNDERUTILIZED),
    ])
    def test_thresholds(self, utilization, expected):
        assert classify_utilization(utilization) == expected


class TestSummarizeWorkloads:

    def test_distribution(self, day):
        overloaded = WorkloadData(
            team_member_id="tm-1", date=day, capacity_minutes=480,
            utilization_percentage=125.0, status=WorkloadStatus.OVERLOADED,
        )
        idle = WorkloadData(
            team_member_id="tm-2", date=day, capacity_minutes=480,
            utilization_percentage=25.0, status=WorkloadStatus.UNDERUTILIZED,
        )

        summary = summarize_workloads([overloaded, idle])

        assert summary.total == 2
        assert summary.overloaded == 1
        assert summary.underutilized == 1
        assert summary.average_utilization == pytest.approx(75.0)
        assert summary.variance == pytest.approx(2500.0)
        assert summary.standard_deviation == pytest.approx(50.0)
        assert summary.balance_score == pytest.approx(0.5)
        assert summary.redistribution_opportunities == 1
        assert summary.overloaded_members == ["tm-1"]
        assert summary.underutilized_members == ["tm-2"]

    def test_empty(self):
        summary = summarize_workloads([])
        assert summary.total == 0
        assert summary.balance_score == 1.0

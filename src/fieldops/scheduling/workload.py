"""
Workload aggregation per team member and day.

Thresholds here are fixed design constants:
- > 100% utilization: overloaded (overtime = assigned - capacity)
- > 90%: critical
- < 60%: underutilized
- otherwise optimal
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Assignment, DateRange, TeamMember, WorkloadData, WorkloadStatus
from fieldops.platform.logging import get_logger

logger = get_logger(__name__)

DEFAULT_JOB_DURATION_MINUTES = 120
DEFAULT_CAPACITY_MINUTES = 8 * 60

OVERLOADED_THRESHOLD = 100.0
CRITICAL_THRESHOLD = 90.0
UNDERUTILIZED_THRESHOLD = 60.0


@dataclass
class WorkloadDistribution:
    """Balance summary across a set of workloads."""
    total: int
    overloaded: int
    critical: int
    optimal: int
    underutilized: int
    average_utilization: float
    variance: float
    standard_deviation: float
    balance_score: float
    redistribution_opportunities: int
    overloaded_members: List[str] = field(default_factory=list)
    underutilized_members: List[str] = field(default_factory=list)


def classify_utilization(utilization: float) -> WorkloadStatus:
    if utilization > OVERLOADED_THRESHOLD:
        return WorkloadStatus.OVERLOADED
    if utilization > CRITICAL_THRESHOLD:
        return WorkloadStatus.CRITICAL
    if utilization < UNDERUTILIZED_THRESHOLD:
        return WorkloadStatus.UNDERUTILIZED
    return WorkloadStatus.OPTIMAL


def capacity_minutes_for(member: Optional[TeamMember]) -> int:
    if member is not None and member.daily_capacity_minutes:
        return member.daily_capacity_minutes
    return DEFAULT_CAPACITY_MINUTES


def compute_workloads(
    assignments: Iterable[Assignment],
    date_range: Optional[DateRange] = None,
    team_members: Optional[Iterable[TeamMember]] = None,
) -> List[WorkloadData]:
    """
    Aggregate assigned minutes per team member per day.

    A member counts an assignment whether they lead or assist on it. Jobs with
    no duration count as DEFAULT_JOB_DURATION_MINUTES. Assignments without a
    scheduled date are skipped.

    Returns:
        WorkloadData records in first-seen (member, date) order
    """
    roster = {m.id: m for m in team_members or []}
    workloads: Dict[Tuple[str, object], WorkloadData] = {}

    for assignment in assignments:
        installation = assignment.installation
        if not assignment.id or installation is None or installation.scheduled_date is None:
            logger.debug("Skipping assignment without a scheduled date", assignment_id=assignment.id)
            continue
        day = installation.scheduled_date
        if date_range is not None and not date_range.contains(day):
            continue

        duration = installation.duration if installation.duration and installation.duration > 0 \
            else DEFAULT_JOB_DURATION_MINUTES

        for member_id in assignment.team_member_ids:
            key = (member_id, day)
            workload = workloads.get(key)
            if workload is None:
                workload = WorkloadData(
                    team_member_id=member_id,
                    date=day,
                    capacity_minutes=capacity_minutes_for(roster.get(member_id)),
                )
                workloads[key] = workload

            workload.assigned_minutes += duration
            workload.travel_minutes += assignment.estimated_travel_time or 0
            workload.buffer_minutes += assignment.buffer_time or 0
            workload.assignments.append(assignment.id)
            workload.job_count += 1

    for workload in workloads.values():
        workload.utilization_percentage = (
            workload.assigned_minutes / workload.capacity_minutes
        ) * 100
        workload.status = classify_utilization(workload.utilization_percentage)
        if workload.status == WorkloadStatus.OVERLOADED:
            workload.overtime_minutes = workload.assigned_minutes - workload.capacity_minutes

    return list(workloads.values())


def summarize_workloads(workloads: List[WorkloadData]) -> WorkloadDistribution:
    """Summarize how evenly work is spread across the given workloads."""
    counts = {status: 0 for status in WorkloadStatus}
    for workload in workloads:
        counts[workload.status] += 1

    utilizations = [w.utilization_percentage for w in workloads]
    if utilizations:
        mean = sum(utilizations) / len(utilizations)
        variance = sum((u - mean) ** 2 for u in utilizations) / len(utilizations)
    else:
        mean = 0.0
        variance = 0.0
    std_dev = math.sqrt(variance)

    overloaded = sorted({w.team_member_id for w in workloads if w.status == WorkloadStatus.OVERLOADED})
    underutilized = sorted({w.team_member_id for w in workloads if w.status == WorkloadStatus.UNDERUTILIZED})

    return WorkloadDistribution(
        total=len(workloads),
        overloaded=counts[WorkloadStatus.OVERLOADED],
        critical=counts[WorkloadStatus.CRITICAL],
        optimal=counts[WorkloadStatus.OPTIMAL],
        underutilized=counts[WorkloadStatus.UNDERUTILIZED],
        average_utilization=round(mean, 2),
        variance=round(variance, 2),
        standard_deviation=round(std_dev, 2),
        # 1.0 when every member sits at the same utilization
        balance_score=round(max(0.0, 1.0 - std_dev / 100), 3),
        redistribution_opportunities=min(len(overloaded), len(underutilized)),
        overloaded_members=overloaded,
        underutilized_members=underutilized,
    )

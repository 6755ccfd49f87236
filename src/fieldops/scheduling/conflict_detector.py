"""
Conflict Detector

Scans assignments within a date range and reports scheduling conflicts.

Conflict Types:
- Time overlap (same team member, overlapping installations)
- Capacity exceeded (> 100% of daily capacity, or more jobs than allowed)
- Travel distance (estimated travel beyond the member's limit)
- Unavailable team (member scheduled outside their availability)
- Missing specialization (team lacks a skill the installation requires)
- Deadline conflict (installation scheduled after its deadline)
- Geographic mismatch (job far from the member's other jobs)

Usage:
    detector = ConflictDetector()

    conflicts = detector.detect_conflicts(assignments, date_range, team_members)
    summary = detector.summarize(conflicts)

The overlap scan is pairwise within each member's assignment list, which is
fine at expected daily job counts (< 20 per member). Larger per-member volumes
would call for a sweep over start-sorted intervals instead.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from fieldops.platform.config import Settings

from .base import SchedulerBase
from .exceptions import InputValidationError
from .impact import score_conflict
from .intervals import Interval, interval_for, overlaps
from .models import (
    Assignment,
    AssignmentStatus,
    AvailabilityWindow,
    ConflictType,
    DateRange,
    InstallationStatus,
    SchedulingConflict,
    Severity,
    TeamMember,
    utc_now,
)
from .workload import compute_workloads


@dataclass
class ConflictSummary:
    """Summary of a conflict detection run."""
    total_conflicts: int
    by_type: Dict[str, int]
    by_severity: Dict[str, int]
    critical_issues: List[SchedulingConflict]
    auto_resolvable: int
    detected_at: datetime = field(default_factory=utc_now)


class ConflictDetector(SchedulerBase):
    """
    Detects scheduling conflicts in a snapshot of assignments.

    Detection is pure: the same assignments in the same order always produce
    the same conflicts in the same order.
    """

    # Thresholds
    OVERALLOCATION_THRESHOLD = 100.0
    GEOGRAPHIC_OUTLIER_FACTOR = 2.0

    def __init__(
        self,
        settings: Optional[Settings] = None,
        max_travel_distance: Optional[float] = None,
        max_travel_time: Optional[float] = None,
    ):
        super().__init__(settings)
        self.max_travel_distance = (
            max_travel_distance if max_travel_distance is not None
            else self.settings.MAX_TRAVEL_DISTANCE_MILES
        )
        self.max_travel_time = (
            max_travel_time if max_travel_time is not None
            else self.settings.MAX_TRAVEL_TIME_MINUTES
        )

    def detect_conflicts(
        self,
        assignments: Iterable[Assignment],
        date_range: DateRange,
        team_members: Optional[Iterable[TeamMember]] = None,
    ) -> List[SchedulingConflict]:
        """
        Detect all types of conflicts.

        Args:
            assignments: Assignment snapshot, in the order to scan
            date_range: Inclusive range of scheduled dates to check
            team_members: Roster used for names, capacity and availability

        Returns:
            Conflicts grouped by type, each with an impact score
        """
        if not isinstance(date_range, DateRange):
            raise InputValidationError("date_range must be a DateRange")

        roster = {member.id: member for member in team_members or []}
        scoped = self._scope(assignments, date_range)

        self.logger.info(
            f"Running conflict detection over {len(scoped)} assignments "
            f"({date_range.start.isoformat()} to {date_range.end.isoformat()})"
        )

        # Untimed jobs only count toward workload, with the default duration
        timed = []
        for assignment in scoped:
            if interval_for(assignment.installation) is None:
                self.logger.debug("Skipping untimed assignment", assignment_id=assignment.id)
                continue
            timed.append(assignment)

        conflicts: List[SchedulingConflict] = []
        conflicts.extend(self.detect_time_overlaps(timed, roster))
        conflicts.extend(self.detect_capacity_exceeded(scoped, roster, date_range))
        conflicts.extend(self.detect_travel_distance(timed, roster))
        conflicts.extend(self.detect_unavailable_team(timed, roster))
        conflicts.extend(self.detect_missing_specializations(timed, roster))
        conflicts.extend(self.detect_deadline_conflicts(timed))
        conflicts.extend(self.detect_geographic_mismatches(timed))

        for conflict in conflicts:
            conflict.impact_score = score_conflict(conflict)

        self.logger.info(f"Conflict detection complete: {len(conflicts)} conflicts found")
        return conflicts

    def summarize(self, conflicts: Sequence[SchedulingConflict]) -> ConflictSummary:
        """Categorize conflicts by type and severity."""
        by_type: Dict[str, int] = defaultdict(int)
        by_severity: Dict[str, int] = defaultdict(int)
        critical_issues = []

        for conflict in conflicts:
            by_type[conflict.type.value] += 1
            by_severity[conflict.severity.value] += 1
            if conflict.severity == Severity.CRITICAL:
                critical_issues.append(conflict)

        return ConflictSummary(
            total_conflicts=len(conflicts),
            by_type=dict(by_type),
            by_severity=dict(by_severity),
            critical_issues=critical_issues,
            auto_resolvable=sum(1 for c in conflicts if c.auto_resolvable),
        )

    # =========================================================================
    # Detection rules
    # =========================================================================

    def detect_time_overlaps(
        self,
        assignments: List[Assignment],
        roster: Dict[str, TeamMember],
    ) -> List[SchedulingConflict]:
        """
        Detect team members booked on overlapping installations.

        One conflict per overlapping installation pair; members who share the
        pair are listed together.
        """
        schedules: Dict[str, List[Tuple[Assignment, Interval]]] = defaultdict(list)
        for assignment in assignments:
            interval = interval_for(assignment.installation)
            if interval is None:
                continue
            for member_id in assignment.team_member_ids:
                schedules[member_id].append((assignment, interval))

        pairs: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for member_id, booked in schedules.items():
            for i in range(len(booked) - 1):
                for j in range(i + 1, len(booked)):
                    first, first_interval = booked[i]
                    second, second_interval = booked[j]
                    if first.installation_id == second.installation_id:
                        continue
                    if not overlaps(first_interval, second_interval):
                        continue

                    key = (first.installation_id, second.installation_id)
                    if key not in pairs and key[::-1] in pairs:
                        key = key[::-1]
                    if key not in pairs:
                        pairs[key] = {
                            'assignments': (first, second),
                            'intervals': (first_interval, second_interval),
                            'members': [],
                        }
                    if member_id not in pairs[key]['members']:
                        pairs[key]['members'].append(member_id)

        conflicts = []
        for (first_job, second_job), pair in pairs.items():
            first, second = pair['assignments']
            first_interval, second_interval = pair['intervals']
            names = ', '.join(self._member_name(roster, m) for m in pair['members'])
            conflicts.append(SchedulingConflict(
                id=f"overlap_{first.id}_{second.id}",
                type=ConflictType.TIME_OVERLAP,
                severity=Severity.MEDIUM,
                description=(
                    f"{names} has overlapping assignments: {first_job} "
                    f"({first_interval}) and {second_job} ({second_interval})"
                ),
                affected_jobs=[first_job, second_job],
                affected_team_members=list(pair['members']),
                auto_resolvable=True,
                scheduled_date=first.installation.scheduled_date,
                details=self._details([first, second]),
            ))

        self.logger.info(f"Detected {len(conflicts)} time overlaps")
        return conflicts

    def detect_capacity_exceeded(
        self,
        assignments: List[Assignment],
        roster: Dict[str, TeamMember],
        date_range: Optional[DateRange] = None,
    ) -> List[SchedulingConflict]:
        """Detect members loaded beyond their daily capacity."""
        by_id = {a.id: a for a in assignments}
        conflicts = []

        for workload in compute_workloads(assignments, date_range, roster.values()):
            member = roster.get(workload.team_member_id)
            max_jobs = member.max_daily_jobs if member else None

            over_minutes = workload.utilization_percentage > self.OVERALLOCATION_THRESHOLD
            over_jobs = bool(max_jobs) and workload.job_count > max_jobs
            if not over_minutes and not over_jobs:
                continue

            load = workload.utilization_percentage
            if over_jobs:
                load = max(load, workload.job_count / max_jobs * 100)
            excess = load - 100

            if load > 120:
                severity = Severity.CRITICAL
            elif load > 110:
                severity = Severity.HIGH
            elif load > 105:
                severity = Severity.MEDIUM
            else:
                severity = Severity.LOW

            name = self._member_name(roster, workload.team_member_id)
            day = workload.date.isoformat()
            if over_minutes:
                description = (
                    f"{name} is overallocated at {workload.utilization_percentage:.0f}% on {day} "
                    f"({workload.assigned_minutes} of {workload.capacity_minutes} minutes)"
                )
            else:
                description = (
                    f"{name} exceeds daily job capacity on {day} "
                    f"({workload.job_count}/{max_jobs} jobs)"
                )

            members_jobs = [by_id[assignment_id] for assignment_id in workload.assignments]
            details = self._details(members_jobs)
            details['workload'] = {
                'assigned_minutes': workload.assigned_minutes,
                'capacity_minutes': workload.capacity_minutes,
                'utilization_percentage': round(workload.utilization_percentage, 2),
                'overtime_minutes': workload.overtime_minutes,
                'job_count': workload.job_count,
                'max_daily_jobs': max_jobs,
                'excess_percentage': round(excess, 2),
            }

            conflicts.append(SchedulingConflict(
                id=f"capacity_{workload.team_member_id}_{day}",
                type=ConflictType.CAPACITY_EXCEEDED,
                severity=severity,
                description=description,
                affected_jobs=[a.installation_id for a in members_jobs],
                affected_team_members=[workload.team_member_id],
                auto_resolvable=True,
                scheduled_date=workload.date,
                details=details,
            ))

        self.logger.info(f"Detected {len(conflicts)} capacity violations")
        return conflicts

    def detect_travel_distance(
        self,
        assignments: List[Assignment],
        roster: Dict[str, TeamMember],
    ) -> List[SchedulingConflict]:
        """
        Detect legs whose externally estimated travel exceeds the allowed limit.

        The estimate on an assignment is the leg from the member's previous job
        that day; the limit is the lower of the member's travel radius and the
        configured maximum.
        """
        previous_jobs = self._previous_jobs(assignments)
        conflicts = []

        for assignment in assignments:
            member_id = assignment.lead_id
            member = roster.get(member_id)
            distance_limit = self.max_travel_distance
            if member and member.travel_radius:
                distance_limit = min(member.travel_radius, distance_limit)

            distance = assignment.estimated_travel_distance
            travel_time = assignment.estimated_travel_time
            ratios = []
            if distance is not None and distance_limit and distance > distance_limit:
                ratios.append(distance / distance_limit)
            if travel_time is not None and self.max_travel_time and travel_time > self.max_travel_time:
                ratios.append(travel_time / self.max_travel_time)
            if not ratios:
                continue

            severity = Severity.HIGH if max(ratios) > 2 else Severity.MEDIUM
            parts = []
            if distance is not None and distance > distance_limit:
                parts.append(f"{distance:g} miles (limit {distance_limit:g})")
            if travel_time is not None and travel_time > self.max_travel_time:
                parts.append(f"{travel_time:g} minutes (limit {self.max_travel_time:g})")

            details = self._details([assignment])
            details['travel'] = {
                'distance': distance,
                'time': travel_time,
                'distance_limit': distance_limit,
                'time_limit': self.max_travel_time,
                'previous_job': previous_jobs.get(assignment.id),
            }

            conflicts.append(SchedulingConflict(
                id=f"travel_{assignment.id}",
                type=ConflictType.TRAVEL_DISTANCE,
                severity=severity,
                description=(
                    f"{self._member_name(roster, member_id)} must travel "
                    f"{' and '.join(parts)} to reach {assignment.installation_id}"
                ),
                affected_jobs=[assignment.installation_id],
                affected_team_members=[member_id],
                auto_resolvable=True,
                scheduled_date=assignment.installation.scheduled_date,
                details=details,
            ))

        self.logger.info(f"Detected {len(conflicts)} travel distance violations")
        return conflicts

    def detect_unavailable_team(
        self,
        assignments: List[Assignment],
        roster: Dict[str, TeamMember],
    ) -> List[SchedulingConflict]:
        """Detect members scheduled outside their availability."""
        conflicts = []

        for assignment in assignments:
            installation = assignment.installation
            interval = interval_for(installation)
            for member_id in assignment.team_member_ids:
                member = roster.get(member_id)
                if member is None:
                    continue
                if self._is_available(member, installation.scheduled_date, interval):
                    continue

                conflicts.append(SchedulingConflict(
                    id=f"unavailable_{assignment.id}_{member_id}",
                    type=ConflictType.UNAVAILABLE_TEAM,
                    severity=Severity.CRITICAL,
                    description=(
                        f"{member.full_name} is not available on "
                        f"{installation.scheduled_date.isoformat()} for {installation.id}"
                    ),
                    affected_jobs=[installation.id],
                    affected_team_members=[member_id],
                    auto_resolvable=False,
                    scheduled_date=installation.scheduled_date,
                    details=self._details([assignment]),
                ))

        self.logger.info(f"Detected {len(conflicts)} availability conflicts")
        return conflicts

    def detect_missing_specializations(
        self,
        assignments: List[Assignment],
        roster: Dict[str, TeamMember],
    ) -> List[SchedulingConflict]:
        """Detect installations whose team lacks a required specialization."""
        conflicts = []

        for assignment in assignments:
            required = assignment.installation.required_specializations
            if not required:
                continue
            team = [roster[m] for m in assignment.team_member_ids if m in roster]
            if not team:
                continue

            covered = {skill for member in team for skill in member.specializations}
            missing = [skill for skill in required if skill not in covered]
            if not missing:
                continue

            conflicts.append(SchedulingConflict(
                id=f"specialization_{assignment.id}",
                type=ConflictType.MISSING_SPECIALIZATION,
                severity=Severity.HIGH,
                description=(
                    f"Team on {assignment.installation_id} lacks required specializations: "
                    f"{', '.join(missing)}"
                ),
                affected_jobs=[assignment.installation_id],
                affected_team_members=[m.id for m in team],
                auto_resolvable=True,
                scheduled_date=assignment.installation.scheduled_date,
                details={**self._details([assignment]), 'missing_specializations': missing},
            ))

        self.logger.info(f"Detected {len(conflicts)} specialization gaps")
        return conflicts

    def detect_deadline_conflicts(self, assignments: List[Assignment]) -> List[SchedulingConflict]:
        """Detect installations scheduled after their deadline."""
        conflicts = []

        for assignment in assignments:
            installation = assignment.installation
            if installation.deadline is None or installation.scheduled_date <= installation.deadline:
                continue

            late_days = (installation.scheduled_date - installation.deadline).days
            conflicts.append(SchedulingConflict(
                id=f"deadline_{assignment.id}",
                type=ConflictType.DEADLINE_CONFLICT,
                severity=Severity.CRITICAL,
                description=(
                    f"{installation.id} is scheduled {late_days} day(s) after its deadline "
                    f"of {installation.deadline.isoformat()}"
                ),
                affected_jobs=[installation.id],
                affected_team_members=assignment.team_member_ids,
                auto_resolvable=False,
                scheduled_date=installation.scheduled_date,
                details=self._details([assignment]),
            ))

        self.logger.info(f"Detected {len(conflicts)} deadline conflicts")
        return conflicts

    def detect_geographic_mismatches(self, assignments: List[Assignment]) -> List[SchedulingConflict]:
        """Detect jobs far out of line with the rest of a member's jobs in the period."""
        by_member: Dict[str, List[Assignment]] = defaultdict(list)
        for assignment in assignments:
            if assignment.estimated_travel_distance is not None:
                by_member[assignment.lead_id].append(assignment)

        conflicts = []
        for member_id, jobs in by_member.items():
            if len(jobs) <= 1:
                continue
            average = sum(a.estimated_travel_distance for a in jobs) / len(jobs)
            if average <= 0:
                continue

            for assignment in jobs:
                if assignment.estimated_travel_distance <= average * self.GEOGRAPHIC_OUTLIER_FACTOR:
                    continue
                conflicts.append(SchedulingConflict(
                    id=f"geographic_{assignment.id}",
                    type=ConflictType.GEOGRAPHIC_MISMATCH,
                    severity=Severity.LOW,
                    description=(
                        f"{assignment.installation_id} is geographically isolated from "
                        f"{member_id}'s other jobs ({assignment.estimated_travel_distance:g} "
                        f"miles vs {average:.1f} average)"
                    ),
                    affected_jobs=[assignment.installation_id],
                    affected_team_members=[member_id],
                    auto_resolvable=True,
                    scheduled_date=assignment.installation.scheduled_date,
                    details=self._details([assignment]),
                ))

        self.logger.info(f"Detected {len(conflicts)} geographic mismatches")
        return conflicts

    # =========================================================================
    # Helpers
    # =========================================================================

    def _scope(self, assignments: Iterable[Assignment], date_range: DateRange) -> List[Assignment]:
        """Keep live, well-formed assignments scheduled inside the range."""
        scoped = []
        for assignment in assignments:
            installation = getattr(assignment, 'installation', None)
            if (
                not getattr(assignment, 'id', None)
                or installation is None
                or not installation.id
                or not assignment.lead_id
                or installation.scheduled_date is None
            ):
                self.logger.debug(
                    "Skipping incomplete assignment record",
                    assignment_id=getattr(assignment, 'id', None),
                )
                continue
            if assignment.status == AssignmentStatus.DECLINED:
                continue
            if installation.status == InstallationStatus.CANCELLED:
                continue
            if not date_range.contains(installation.scheduled_date):
                continue
            scoped.append(assignment)
        return scoped

    def _details(self, assignments: Sequence[Assignment]) -> Dict[str, Any]:
        """Lookups the resolution generator needs to build concrete changes."""
        details: Dict[str, Any] = {'assignments': {}, 'slots': {}, 'roles': {}}
        for assignment in assignments:
            installation = assignment.installation
            details['assignments'][installation.id] = assignment.id
            details['roles'][installation.id] = {
                'lead': assignment.lead_id,
                'assistant': assignment.assistant_id,
            }
            interval = interval_for(installation)
            if interval is not None:
                details['slots'][installation.id] = {
                    'start': interval.start.isoformat(),
                    'end': interval.end.isoformat(),
                }
        return details

    def _previous_jobs(self, assignments: List[Assignment]) -> Dict[str, Optional[str]]:
        """Map each assignment to the installation its lead works just before it that day."""
        days: Dict[Tuple[str, date], List[Tuple[datetime, Assignment]]] = defaultdict(list)
        for assignment in assignments:
            interval = interval_for(assignment.installation)
            if interval is None:
                continue
            key = (assignment.lead_id, assignment.installation.scheduled_date)
            days[key].append((interval.start, assignment))

        previous: Dict[str, Optional[str]] = {}
        for booked in days.values():
            booked.sort(key=lambda item: item[0])
            prior = None
            for _, assignment in booked:
                previous[assignment.id] = prior
                prior = assignment.installation_id
        return previous

    def _is_available(
        self,
        member: TeamMember,
        day: date,
        interval: Optional[Interval],
    ) -> bool:
        """
        Check a member's availability for a slot.

        Unavailable dates and blocking windows always win. Members with no
        positive availability windows on file are treated as available.
        """
        if member.work_preferences and day in member.work_preferences.unavailable_dates:
            return False

        for window in member.availability:
            if not window.is_available and self._window_applies(window, day) \
                    and self._window_overlaps(window, interval):
                return False

        open_windows = [w for w in member.availability if w.is_available]
        if not open_windows:
            return True

        return any(
            self._window_applies(w, day) and self._window_contains(w, interval)
            for w in open_windows
        )

    @staticmethod
    def _window_applies(window: AvailabilityWindow, day: date) -> bool:
        if not window.start_date <= day <= window.end_date:
            return False
        if window.is_recurring and window.recurring_days:
            # isoweekday: Monday=1 .. Sunday=7, windows use Sunday=0
            return day.isoweekday() % 7 in window.recurring_days
        return True

    @staticmethod
    def _window_overlaps(window: AvailabilityWindow, interval: Optional[Interval]) -> bool:
        if interval is None or window.start_time is None or window.end_time is None:
            return True
        day = interval.start.date()
        blocked = Interval(
            datetime.combine(day, window.start_time),
            datetime.combine(day, window.end_time),
        )
        return overlaps(blocked, interval)

    @staticmethod
    def _window_contains(window: AvailabilityWindow, interval: Optional[Interval]) -> bool:
        if interval is None or window.start_time is None or window.end_time is None:
            return True
        day = interval.start.date()
        return (
            datetime.combine(day, window.start_time) <= interval.start
            and interval.end <= datetime.combine(day, window.end_time)
        )

    @staticmethod
    def _member_name(roster: Dict[str, TeamMember], member_id: str) -> str:
        member = roster.get(member_id)
        return member.full_name if member else f"Team member {member_id}"

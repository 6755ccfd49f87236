"""
Scheduling domain records.

Installations, team members and assignments are plain snapshots handed to the
engine by the data store. Conflicts, resolutions and recommendations are
derived from a snapshot and never persisted as the system of record.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from .exceptions import InputValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _jsonable(value: Any) -> Any:
    """Convert enums, dates and nested records into JSON-friendly values."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if is_dataclass(value):
        return {f.name: _jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    return value


# =============================================================================
# Enumerations
# =============================================================================

class InstallationStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"


class AssignmentAction(str, Enum):
    CREATED = "created"
    ASSIGNED = "assigned"
    REASSIGNED = "reassigned"
    UNASSIGNED = "unassigned"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    CONFLICT_RESOLVED = "conflict_resolved"


class ConflictType(str, Enum):
    """Types of scheduling conflicts."""
    TIME_OVERLAP = "time_overlap"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    TRAVEL_DISTANCE = "travel_distance"
    UNAVAILABLE_TEAM = "unavailable_team"
    MISSING_SPECIALIZATION = "missing_specialization"
    DEADLINE_CONFLICT = "deadline_conflict"
    GEOGRAPHIC_MISMATCH = "geographic_mismatch"


class Severity(str, Enum):
    """Severity levels for conflicts."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ImpactLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResolutionType(str, Enum):
    RESCHEDULE = "reschedule"
    REASSIGN = "reassign"
    SPLIT = "split"
    CANCEL = "cancel"
    MODIFY = "modify"


class ChangeType(str, Enum):
    RESCHEDULE = "reschedule"
    REASSIGN = "reassign"
    MODIFY = "modify"


class ResolutionStatus(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    DISCARDED = "discarded"


class RecommendationType(str, Enum):
    BULK_RESOLUTION = "bulk_resolution"
    PREVENTIVE_MEASURE = "preventive_measure"
    OPTIMIZATION = "optimization"


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class WorkloadStatus(str, Enum):
    OVERLOADED = "overloaded"
    CRITICAL = "critical"
    OPTIMAL = "optimal"
    UNDERUTILIZED = "underutilized"


# =============================================================================
# Snapshot records
# =============================================================================

@dataclass
class DateRange:
    """Inclusive range of calendar dates."""
    start: date
    end: date

    def __post_init__(self):
        if not isinstance(self.start, date) or not isinstance(self.end, date):
            raise InputValidationError("Date range bounds must be dates")
        if isinstance(self.start, datetime) or isinstance(self.end, datetime):
            self.start = self.start.date() if isinstance(self.start, datetime) else self.start
            self.end = self.end.date() if isinstance(self.end, datetime) else self.end
        if self.start > self.end:
            raise InputValidationError(
                f"Date range start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "DateRange":
        """Build a range from ISO date strings (YYYY-MM-DD)."""
        try:
            start_day = date.fromisoformat(start)
            end_day = date.fromisoformat(end)
        except (TypeError, ValueError) as e:
            raise InputValidationError(f"Malformed date range {start!r}..{end!r}: {e}") from e
        return cls(start_day, end_day)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass
class Installation:
    """A schedulable unit of field work."""
    id: str
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[time] = None
    duration: Optional[int] = None  # minutes
    status: InstallationStatus = InstallationStatus.SCHEDULED
    priority: Priority = Priority.MEDIUM
    lead_id: Optional[str] = None
    assistant_id: Optional[str] = None
    customer_name: str = ""
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    address: Dict[str, Any] = field(default_factory=dict)
    notes: Optional[str] = None
    required_specializations: List[str] = field(default_factory=list)
    deadline: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable({f.name: getattr(self, f.name) for f in fields(self)})


@dataclass
class AvailabilityWindow:
    """A span in which a team member is (or explicitly is not) available."""
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_available: bool = True
    is_recurring: bool = False
    recurring_days: List[int] = field(default_factory=list)  # 0=Sunday .. 6=Saturday


@dataclass
class WorkPreferences:
    max_daily_jobs: Optional[int] = None
    max_weekly_hours: Optional[float] = None
    unavailable_dates: List[date] = field(default_factory=list)


@dataclass
class TeamMember:
    """A field worker."""
    id: str
    first_name: str = ""
    last_name: str = ""
    region: str = ""
    capacity: Optional[int] = None  # jobs per day
    daily_capacity_minutes: Optional[int] = None
    travel_radius: Optional[float] = None  # miles
    specializations: List[str] = field(default_factory=list)
    availability: List[AvailabilityWindow] = field(default_factory=list)
    work_preferences: Optional[WorkPreferences] = None

    @property
    def full_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.id

    @property
    def max_daily_jobs(self) -> Optional[int]:
        limits = [self.capacity]
        if self.work_preferences:
            limits.append(self.work_preferences.max_daily_jobs)
        limits = [limit for limit in limits if limit]
        return min(limits) if limits else None


@dataclass
class AssignmentHistoryEntry:
    """Append-only audit record of an assignment mutation."""
    assignment_id: str
    action: AssignmentAction
    performed_by: str
    previous_value: Any = None
    new_value: Any = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[str] = None
    performed_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable({f.name: getattr(self, f.name) for f in fields(self)})


@dataclass
class Assignment:
    """Binds an installation to a lead and an optional assistant."""
    id: str
    installation: Installation
    lead_id: Optional[str]
    assistant_id: Optional[str] = None
    status: AssignmentStatus = AssignmentStatus.ASSIGNED
    estimated_travel_time: Optional[float] = None  # minutes
    estimated_travel_distance: Optional[float] = None  # miles
    buffer_time: Optional[int] = None  # minutes
    workload_score: Optional[float] = None
    efficiency_score: Optional[float] = None
    history: List[AssignmentHistoryEntry] = field(default_factory=list)

    @property
    def installation_id(self) -> str:
        return self.installation.id

    @property
    def team_member_ids(self) -> List[str]:
        """Lead then assistant, without duplicates."""
        members = []
        for member_id in (self.lead_id, self.assistant_id):
            if member_id and member_id not in members:
                members.append(member_id)
        return members

    def role_of(self, member_id: str) -> Optional[str]:
        if member_id == self.lead_id:
            return "lead"
        if member_id == self.assistant_id:
            return "assistant"
        return None


# =============================================================================
# Derived records
# =============================================================================

@dataclass
class SchedulingConflict:
    """A detected scheduling problem."""
    id: str
    type: ConflictType
    severity: Severity
    description: str
    affected_jobs: List[str]
    affected_team_members: List[str]
    auto_resolvable: bool = True
    impact_score: float = 0.0
    scheduled_date: Optional[date] = None
    # Slot, role and assignment lookups for the affected jobs
    details: Dict[str, Any] = field(default_factory=dict)
    suggested_resolutions: List["ConflictResolution"] = field(default_factory=list)
    detected_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if not self.affected_jobs or not self.affected_team_members:
            raise ValueError(f"Conflict {self.id} must reference affected jobs and team members")

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable({f.name: getattr(self, f.name) for f in fields(self)})


@dataclass
class ResolutionImpact:
    affected_assignments: int
    customer_impact: ImpactLevel = ImpactLevel.NONE
    team_impact: ImpactLevel = ImpactLevel.NONE
    cost_impact: float = 0.0  # signed currency delta
    time_impact: int = 0  # signed minutes delta

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable({f.name: getattr(self, f.name) for f in fields(self)})


@dataclass
class ProposedChange:
    """Base of the proposed-change union; concrete variants set `type`."""
    type: ClassVar[ChangeType]

    installation_id: str
    reason: str
    assignment_id: Optional[str] = None
    current_label: Optional[str] = None
    proposed_label: Optional[str] = None

    @property
    def current_value(self) -> str:
        return self.current_label or ""

    @property
    def proposed_value(self) -> str:
        return self.proposed_label or ""

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type.value}
        data.update({
            f.name: _jsonable(getattr(self, f.name))
            for f in fields(self)
            if f.name not in ("current_label", "proposed_label")
        })
        data["current_value"] = self.current_value
        data["proposed_value"] = self.proposed_value
        return data


@dataclass
class RescheduleChange(ProposedChange):
    type: ClassVar[ChangeType] = ChangeType.RESCHEDULE

    current_date: Optional[date] = None
    current_time: Optional[time] = None
    proposed_date: Optional[date] = None
    proposed_time: Optional[time] = None

    @property
    def current_value(self) -> str:
        if self.current_date and self.current_time:
            return f"{self.current_date.isoformat()} {self.current_time.strftime('%H:%M')}"
        return self.current_label or "Current time slot"

    @property
    def proposed_value(self) -> str:
        if self.proposed_date and self.proposed_time:
            return f"{self.proposed_date.isoformat()} {self.proposed_time.strftime('%H:%M')}"
        return self.proposed_label or "Alternative time slot"


@dataclass
class ReassignChange(ProposedChange):
    type: ClassVar[ChangeType] = ChangeType.REASSIGN

    role: str = "lead"
    current_member_id: Optional[str] = None
    proposed_member_id: Optional[str] = None

    @property
    def current_value(self) -> str:
        return self.current_member_id or self.current_label or "Current team member"

    @property
    def proposed_value(self) -> str:
        return self.proposed_member_id or self.proposed_label or "Alternative team member"


@dataclass
class ModifyChange(ProposedChange):
    type: ClassVar[ChangeType] = ChangeType.MODIFY

    patch: Dict[str, Any] = field(default_factory=dict)

    @property
    def current_value(self) -> str:
        return self.current_label or "Conflicted"

    @property
    def proposed_value(self) -> str:
        if self.patch:
            return ", ".join(f"{k}={_jsonable(v)}" for k, v in self.patch.items())
        return self.proposed_label or "Resolved"


@dataclass
class ConflictResolution:
    """A candidate fix for one conflict; siblings for the same conflict are alternatives."""
    id: str
    conflict_id: str
    type: ResolutionType
    description: str
    confidence: int
    impact: ResolutionImpact
    proposed_changes: List[ProposedChange] = field(default_factory=list)
    requires_manual_review: bool = False
    status: ResolutionStatus = ResolutionStatus.PENDING

    def __post_init__(self):
        self.confidence = int(max(0, min(100, round(self.confidence))))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "conflict_id": self.conflict_id,
            "type": self.type.value,
            "description": self.description,
            "confidence": self.confidence,
            "impact": self.impact.to_dict(),
            "proposed_changes": [c.to_dict() for c in self.proposed_changes],
            "requires_manual_review": self.requires_manual_review,
            "status": self.status.value,
        }


@dataclass
class Recommendation:
    """A cross-conflict strategic suggestion."""
    id: str
    conflict_ids: List[str]
    type: RecommendationType
    title: str
    description: str
    confidence: int
    estimated_benefit: str
    complexity: Complexity
    suggested_actions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable({f.name: getattr(self, f.name) for f in fields(self)})


@dataclass
class ApplyFailure:
    resolution_id: str
    error: str


@dataclass
class ApplyResult:
    """Outcome of a best-effort batch apply."""
    applied: List[str] = field(default_factory=list)
    failed: List[ApplyFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.applied)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applied": list(self.applied),
            "failed": [_jsonable(f) for f in self.failed],
            "success_count": self.success_count,
            "failure_count": self.failure_count,
        }


@dataclass
class WorkloadData:
    """Assigned time for one team member on one date."""
    team_member_id: str
    date: date
    capacity_minutes: int
    assigned_minutes: int = 0
    travel_minutes: float = 0.0
    buffer_minutes: int = 0
    assignments: List[str] = field(default_factory=list)
    job_count: int = 0
    utilization_percentage: float = 0.0
    status: WorkloadStatus = WorkloadStatus.OPTIMAL
    overtime_minutes: int = 0

    @property
    def overtime_hours(self) -> float:
        return self.overtime_minutes / 60

    def to_dict(self) -> Dict[str, Any]:
        data = _jsonable({f.name: getattr(self, f.name) for f in fields(self)})
        data["overtime_hours"] = self.overtime_hours
        return data

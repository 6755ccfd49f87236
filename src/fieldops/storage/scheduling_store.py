"""
SQLAlchemy-backed DataStore for the scheduling engine.

Rows are mapped into engine records on read; engine patches are written
through SchedulingRepository. A unit of work opened by `transaction()` is
tracked in a ContextVar, so concurrent tasks never share a session.
"""

from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from datetime import date, time
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional
import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fieldops.scheduling.exceptions import DataAccessError
from fieldops.scheduling.models import (
    Assignment,
    AssignmentHistoryEntry,
    AssignmentStatus,
    AvailabilityWindow,
    DateRange,
    Installation,
    InstallationStatus,
    Priority,
    TeamMember,
    WorkPreferences,
    _jsonable,
)
from fieldops.scheduling.store import DataStore
from fieldops.storage.base import StorageAdapter
from fieldops.storage.models import (
    AssignmentHistoryModel,
    AssignmentModel,
    InstallationModel,
    TeamMemberModel,
)
from fieldops.storage.repositories.scheduling_repository import SchedulingRepository

logger = logging.getLogger(__name__)

_current_session: ContextVar[Optional[Session]] = ContextVar("fieldops_scheduling_session", default=None)


# --- Row -> record mapping ---

def _parse_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _parse_time(value: Any) -> Optional[time]:
    if value is None or isinstance(value, time):
        return value
    return time.fromisoformat(value)


def to_installation(row: InstallationModel) -> Installation:
    return Installation(
        id=row.id,
        scheduled_date=row.scheduled_date,
        scheduled_time=row.scheduled_time,
        duration=row.duration,
        status=InstallationStatus(row.status),
        priority=Priority(row.priority),
        lead_id=row.lead_id,
        assistant_id=row.assistant_id,
        customer_name=row.customer_name or "",
        customer_email=row.customer_email,
        customer_phone=row.customer_phone,
        address=dict(row.address or {}),
        notes=row.notes,
        required_specializations=list(row.required_specializations or []),
        deadline=row.deadline,
    )


def to_team_member(row: TeamMemberModel) -> TeamMember:
    windows = [
        AvailabilityWindow(
            start_date=_parse_date(w['start_date']),
            end_date=_parse_date(w['end_date']),
            start_time=_parse_time(w.get('start_time')),
            end_time=_parse_time(w.get('end_time')),
            is_available=w.get('is_available', True),
            is_recurring=w.get('is_recurring', False),
            recurring_days=list(w.get('recurring_days') or []),
        )
        for w in row.availability or []
    ]

    preferences = None
    if row.work_preferences:
        prefs = row.work_preferences
        preferences = WorkPreferences(
            max_daily_jobs=prefs.get('max_daily_jobs'),
            max_weekly_hours=prefs.get('max_weekly_hours'),
            unavailable_dates=[_parse_date(d) for d in prefs.get('unavailable_dates') or []],
        )

    return TeamMember(
        id=row.id,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        region=row.region or "",
        capacity=row.capacity,
        daily_capacity_minutes=row.daily_capacity_minutes,
        travel_radius=row.travel_radius,
        specializations=list(row.specializations or []),
        availability=windows,
        work_preferences=preferences,
    )


def to_assignment(row: AssignmentModel) -> Assignment:
    return Assignment(
        id=row.id,
        installation=to_installation(row.installation),
        lead_id=row.lead_id,
        assistant_id=row.assistant_id,
        status=AssignmentStatus(row.status),
        estimated_travel_time=row.estimated_travel_time,
        estimated_travel_distance=row.estimated_travel_distance,
        buffer_time=row.buffer_time,
        workload_score=row.workload_score,
        efficiency_score=row.efficiency_score,
    )


class SqlSchedulingStore(DataStore):
    """DataStore over a SQLAlchemy storage adapter."""

    def __init__(self, adapter: StorageAdapter, repository: Optional[SchedulingRepository] = None):
        self.adapter = adapter
        self.repository = repository or SchedulingRepository()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if _current_session.get() is not None:
            # Already inside a unit of work
            yield
            return

        try:
            with self.adapter.get_session() as session:
                token = _current_session.set(session)
                try:
                    yield
                finally:
                    _current_session.reset(token)
        except SQLAlchemyError as e:
            raise DataAccessError(f"Transaction failed: {e}", operation="transaction") from e

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = _current_session.get()
        if session is not None:
            yield session
            return
        with self.adapter.get_session() as session:
            yield session

    async def fetch_assignments(
        self,
        organization_id: str,
        project_id: str,
        date_range: DateRange,
    ) -> List[Assignment]:
        try:
            with self._session() as session:
                rows = self.repository.list_assignments(
                    session, organization_id, project_id, date_range.start, date_range.end
                )
                return [to_assignment(row) for row in rows]
        except (SQLAlchemyError, ValueError) as e:
            raise DataAccessError(f"Failed to fetch assignments: {e}", operation="fetch_assignments") from e

    async def fetch_team_members(self, organization_id: str, project_id: str) -> List[TeamMember]:
        try:
            with self._session() as session:
                rows = self.repository.list_team_members(session, organization_id, project_id)
                return [to_team_member(row) for row in rows]
        except (SQLAlchemyError, ValueError, KeyError) as e:
            raise DataAccessError(f"Failed to fetch team members: {e}", operation="fetch_team_members") from e

    async def update_installation(self, installation_id: str, patch: Dict[str, Any]) -> None:
        try:
            with self._session() as session:
                updated = self.repository.update_installation(session, installation_id, patch)
        except (SQLAlchemyError, ValueError) as e:
            raise DataAccessError(
                f"Failed to update installation {installation_id}: {e}", operation="update_installation"
            ) from e
        if updated is None:
            raise DataAccessError(f"Installation {installation_id} not found", operation="update_installation")

    async def update_assignment(self, assignment_id: str, patch: Dict[str, Any]) -> None:
        try:
            with self._session() as session:
                updated = self.repository.update(session, assignment_id, patch)
        except (SQLAlchemyError, ValueError) as e:
            raise DataAccessError(
                f"Failed to update assignment {assignment_id}: {e}", operation="update_assignment"
            ) from e
        if updated is None:
            raise DataAccessError(f"Assignment {assignment_id} not found", operation="update_assignment")

    async def append_history(self, assignment_id: str, entry: AssignmentHistoryEntry) -> None:
        row = AssignmentHistoryModel(
            id=entry.id or str(uuid.uuid4()),
            assignment_id=assignment_id,
            action=entry.action.value,
            performed_by=entry.performed_by,
            performed_at=entry.performed_at,
            previous_value=_jsonable(entry.previous_value),
            new_value=_jsonable(entry.new_value),
            reason=entry.reason,
            notes=entry.notes,
        )
        try:
            with self._session() as session:
                self.repository.add_history(session, row)
        except SQLAlchemyError as e:
            raise DataAccessError(
                f"Failed to record history for assignment {assignment_id}: {e}", operation="append_history"
            ) from e
        logger.debug(f"History recorded for assignment {assignment_id}: {entry.action.value}")

from datetime import date, time
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from fieldops.storage.models import (
    AssignmentHistoryModel,
    AssignmentModel,
    InstallationModel,
    TeamMemberModel,
)
from .base import BaseRepository

logger = logging.getLogger(__name__)

INSTALLATION_FIELDS = {
    'customer_name', 'customer_email', 'customer_phone', 'address',
    'scheduled_date', 'scheduled_time', 'duration', 'status', 'priority',
    'lead_id', 'assistant_id', 'notes', 'required_specializations', 'deadline',
}

ASSIGNMENT_FIELDS = {
    'lead_id', 'assistant_id', 'status', 'estimated_travel_time',
    'estimated_travel_distance', 'buffer_time', 'workload_score', 'efficiency_score',
}

_DATE_FIELDS = {'scheduled_date', 'deadline'}
_TIME_FIELDS = {'scheduled_time'}


def _column_value(field_name: str, value: Any) -> Any:
    """Coerce enum and ISO-string values into what the column stores."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str) and field_name in _DATE_FIELDS:
        return date.fromisoformat(value)
    if isinstance(value, str) and field_name in _TIME_FIELDS:
        return time.fromisoformat(value)
    return value


class SchedulingRepository(BaseRepository[AssignmentModel]):
    """Repository for installations, team members, assignments and their history."""

    # --- Installations ---

    def create_installation(self, session: Session, entity: InstallationModel) -> InstallationModel:
        session.add(entity)
        # Flush to check for immediate constraints, caller commits
        session.flush()
        return entity

    def get_installation(self, session: Session, installation_id: str) -> Optional[InstallationModel]:
        return session.get(InstallationModel, installation_id)

    def update_installation(
        self,
        session: Session,
        installation_id: str,
        updates: Dict[str, Any],
    ) -> Optional[InstallationModel]:
        installation = self.get_installation(session, installation_id)
        if not installation:
            return None

        unknown = set(updates) - INSTALLATION_FIELDS
        if unknown:
            raise ValueError(f"Unknown installation fields: {', '.join(sorted(unknown))}")

        for field_name, value in updates.items():
            setattr(installation, field_name, _column_value(field_name, value))

        installation.version += 1
        session.flush()
        return installation

    # --- Team Members ---

    def create_team_member(self, session: Session, entity: TeamMemberModel) -> TeamMemberModel:
        session.add(entity)
        session.flush()
        return entity

    def list_team_members(
        self,
        session: Session,
        organization_id: str,
        project_id: str,
    ) -> List[TeamMemberModel]:
        """Active members of the organization assigned to the project or to all projects."""
        stmt = (
            select(TeamMemberModel)
            .where(TeamMemberModel.organization_id == organization_id)
            .where(TeamMemberModel.is_active.is_(True))
            .where(or_(TeamMemberModel.project_id.is_(None), TeamMemberModel.project_id == project_id))
            .order_by(TeamMemberModel.id)
        )
        return list(session.scalars(stmt).all())

    # --- Assignments ---

    def create(self, session: Session, entity: AssignmentModel) -> AssignmentModel:
        session.add(entity)
        session.flush()
        return entity

    def get(self, session: Session, id: str) -> Optional[AssignmentModel]:
        return session.get(AssignmentModel, id)

    def update(self, session: Session, id: str, updates: Dict[str, Any]) -> Optional[AssignmentModel]:
        assignment = self.get(session, id)
        if not assignment:
            return None

        unknown = set(updates) - ASSIGNMENT_FIELDS
        if unknown:
            raise ValueError(f"Unknown assignment fields: {', '.join(sorted(unknown))}")

        for field_name, value in updates.items():
            setattr(assignment, field_name, _column_value(field_name, value))

        session.flush()
        return assignment

    def list(self, session: Session, limit: int = 100, offset: int = 0) -> List[AssignmentModel]:
        stmt = select(AssignmentModel).order_by(AssignmentModel.id).limit(limit).offset(offset)
        return list(session.scalars(stmt).all())

    def list_assignments(
        self,
        session: Session,
        organization_id: str,
        project_id: str,
        start: date,
        end: date,
    ) -> List[AssignmentModel]:
        """Assignments of a project whose installation is scheduled within [start, end]."""
        stmt = (
            select(AssignmentModel)
            .join(InstallationModel, AssignmentModel.installation_id == InstallationModel.id)
            .where(AssignmentModel.organization_id == organization_id)
            .where(AssignmentModel.project_id == project_id)
            .where(InstallationModel.scheduled_date >= start)
            .where(InstallationModel.scheduled_date <= end)
            .order_by(
                InstallationModel.scheduled_date,
                InstallationModel.scheduled_time,
                AssignmentModel.id,
            )
        )
        return list(session.scalars(stmt).unique().all())

    # --- History ---

    def add_history(self, session: Session, entry: AssignmentHistoryModel) -> AssignmentHistoryModel:
        session.add(entry)
        session.flush()
        return entry

    def list_history(self, session: Session, assignment_id: str) -> List[AssignmentHistoryModel]:
        stmt = (
            select(AssignmentHistoryModel)
            .where(AssignmentHistoryModel.assignment_id == assignment_id)
            .order_by(AssignmentHistoryModel.performed_at, AssignmentHistoryModel.id)
        )
        return list(session.scalars(stmt).all())

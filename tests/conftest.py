"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from contextlib import asynccontextmanager
from datetime import date, time
from typing import Any, Dict, List, Optional

import pytest

sys.path.append(os.path.join(os.getcwd(), "src"))

from fieldops.platform.config import Settings
from fieldops.scheduling.exceptions import DataAccessError
from fieldops.scheduling.models import (
    Assignment,
    AssignmentHistoryEntry,
    AssignmentStatus,
    DateRange,
    Installation,
    InstallationStatus,
    TeamMember,
)
from fieldops.scheduling.store import DataStore

# Monday
DAY = date(2024, 3, 4)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> None:
    """Set up test environment variables."""
    os.environ.setdefault("APP_ENV", "test")
    os.environ.setdefault("DEBUG", "true")


# =============================================================================
# Builders
# =============================================================================

def build_assignment(
    assignment_id: str,
    installation_id: str,
    lead_id: Optional[str] = "tm-1",
    start: Optional[str] = "09:00",
    duration: Optional[int] = 60,
    day: Optional[date] = DAY,
    assistant_id: Optional[str] = None,
    travel_distance: Optional[float] = None,
    travel_time: Optional[float] = None,
    **installation_fields: Any,
) -> Assignment:
    """Assignment plus its installation, with the lead mirrored on both."""
    installation = Installation(
        id=installation_id,
        scheduled_date=day,
        scheduled_time=time.fromisoformat(start) if start else None,
        duration=duration,
        lead_id=lead_id,
        assistant_id=assistant_id,
        customer_name=f"Customer {installation_id}",
        **installation_fields,
    )
    return Assignment(
        id=assignment_id,
        installation=installation,
        lead_id=lead_id,
        assistant_id=assistant_id,
        estimated_travel_distance=travel_distance,
        estimated_travel_time=travel_time,
    )


def build_member(member_id: str, first_name: str = "", last_name: str = "", **kwargs: Any) -> TeamMember:
    return TeamMember(id=member_id, first_name=first_name, last_name=last_name, **kwargs)


class InMemoryStore(DataStore):
    """DataStore over in-memory records; writes mutate the records and are logged."""

    def __init__(
        self,
        assignments: Optional[List[Assignment]] = None,
        team_members: Optional[List[TeamMember]] = None,
    ):
        self.assignments = list(assignments or [])
        self.team_members = list(team_members or [])
        self.installation_updates: List[tuple] = []
        self.assignment_updates: List[tuple] = []
        self.history: Dict[str, List[AssignmentHistoryEntry]] = {}
        self.transactions = 0
        self.fail_reads = False
        self.fail_installations: set = set()

    async def fetch_assignments(self, organization_id, project_id, date_range: DateRange):
        if self.fail_reads:
            raise RuntimeError("connection refused")
        return [
            a for a in self.assignments
            if a.installation.scheduled_date is None
            or date_range.contains(a.installation.scheduled_date)
        ]

    async def fetch_team_members(self, organization_id, project_id):
        if self.fail_reads:
            raise RuntimeError("connection refused")
        return list(self.team_members)

    async def update_installation(self, installation_id: str, patch: Dict[str, Any]) -> None:
        if installation_id in self.fail_installations:
            raise DataAccessError(f"Installation {installation_id} is locked", operation="update_installation")
        self.installation_updates.append((installation_id, dict(patch)))
        for assignment in self.assignments:
            if assignment.installation_id == installation_id:
                for key, value in patch.items():
                    if key == 'status':
                        value = InstallationStatus(value)
                    setattr(assignment.installation, key, value)

    async def update_assignment(self, assignment_id: str, patch: Dict[str, Any]) -> None:
        self.assignment_updates.append((assignment_id, dict(patch)))
        for assignment in self.assignments:
            if assignment.id == assignment_id:
                for key, value in patch.items():
                    if key == 'status':
                        value = AssignmentStatus(value)
                    setattr(assignment, key, value)

    async def append_history(self, assignment_id: str, entry: AssignmentHistoryEntry) -> None:
        self.history.setdefault(assignment_id, []).append(entry)

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def day() -> date:
    return DAY


@pytest.fixture
def date_range() -> DateRange:
    return DateRange(DAY, DAY)


@pytest.fixture
def make_assignment():
    return build_assignment


@pytest.fixture
def make_member():
    return build_member


@pytest.fixture
def make_store():
    return InMemoryStore


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with fast recommendation scoring."""
    return Settings(
        APP_ENV="test",
        RECOMMENDATION_TIMEOUT_SECONDS=5.0,
        RECOMMENDATION_SCORING_DELAY_SECONDS=0.0,
    )

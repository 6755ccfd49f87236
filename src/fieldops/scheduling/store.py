"""
Data-store contract consumed by the scheduling engine.

The engine never queries storage directly: the service fetches snapshots and
the applier writes changes through this interface. Implementations raise
DataAccessError for collaborator failures.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List

from .models import Assignment, AssignmentHistoryEntry, DateRange, TeamMember


class DataStore(ABC):
    """Tenant-scoped reads and field-level writes for scheduling data."""

    @abstractmethod
    async def fetch_assignments(
        self,
        organization_id: str,
        project_id: str,
        date_range: DateRange,
    ) -> List[Assignment]:
        """Assignments whose installation is scheduled inside the range."""
        pass

    @abstractmethod
    async def fetch_team_members(self, organization_id: str, project_id: str) -> List[TeamMember]:
        pass

    @abstractmethod
    async def update_installation(self, installation_id: str, patch: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def update_assignment(self, assignment_id: str, patch: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def append_history(self, assignment_id: str, entry: AssignmentHistoryEntry) -> None:
        pass

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Unit of work around one resolution's writes.

        The default does nothing; stores with real transactions override it so
        that a failed resolution leaves no partial writes behind.
        """
        yield

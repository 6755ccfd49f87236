"""FieldOps Storage Layer - Postgres adapter, SQLAlchemy models and repositories."""

from .base import StorageAdapter
from .postgres_adapter import PostgresAdapter, PostgresConfig
from .models import (
    AssignmentHistoryModel,
    AssignmentModel,
    Base,
    InstallationModel,
    TeamMemberModel,
)
from .scheduling_store import SqlSchedulingStore

__all__ = [
    "StorageAdapter",
    "PostgresAdapter",
    "PostgresConfig",
    "Base",
    "InstallationModel",
    "TeamMemberModel",
    "AssignmentModel",
    "AssignmentHistoryModel",
    "SqlSchedulingStore",
]

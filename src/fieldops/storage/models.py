from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    func,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass

# Helper to support both Postgres JSONB and generic JSON (for SQLite tests)
JSON_TYPE = JSON().with_variant(JSONB, 'postgresql')
TIMESTAMP_TYPE = DateTime(timezone=True).with_variant(TIMESTAMP(timezone=True), 'postgresql')

# --- Installations ---

class InstallationModel(Base):
    __tablename__ = "installations"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    organization_id: Mapped[str] = mapped_column(String, nullable=False)
    project_id: Mapped[str] = mapped_column(String, nullable=False)
    customer_name: Mapped[str] = mapped_column(String, server_default='')
    customer_email: Mapped[Optional[str]] = mapped_column(String)
    customer_phone: Mapped[Optional[str]] = mapped_column(String)
    address: Mapped[Dict[str, Any]] = mapped_column(JSON_TYPE, default=dict)
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date)
    scheduled_time: Mapped[Optional[time]] = mapped_column(Time)
    duration: Mapped[Optional[int]] = mapped_column(Integer)  # minutes
    status: Mapped[str] = mapped_column(String, server_default='pending', index=True)
    priority: Mapped[str] = mapped_column(String, server_default='medium')
    lead_id: Mapped[Optional[str]] = mapped_column(String, index=True)
    assistant_id: Mapped[Optional[str]] = mapped_column(String)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    required_specializations: Mapped[List[str]] = mapped_column(JSON_TYPE, default=list)
    deadline: Mapped[Optional[date]] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now(), onupdate=func.now())
    version: Mapped[int] = mapped_column(Integer, server_default='1')

    __table_args__ = (
        Index('ix_installations_tenant_date', 'organization_id', 'project_id', 'scheduled_date'),
    )

# --- Team Members ---

class TeamMemberModel(Base):
    __tablename__ = "team_members"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    organization_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # NULL means the member works across all projects of the organization
    project_id: Mapped[Optional[str]] = mapped_column(String, index=True)
    first_name: Mapped[str] = mapped_column(String, server_default='')
    last_name: Mapped[str] = mapped_column(String, server_default='')
    region: Mapped[str] = mapped_column(String, server_default='')
    capacity: Mapped[Optional[int]] = mapped_column(Integer)  # jobs per day
    daily_capacity_minutes: Mapped[Optional[int]] = mapped_column(Integer)
    travel_radius: Mapped[Optional[float]] = mapped_column(Float)  # miles
    specializations: Mapped[List[str]] = mapped_column(JSON_TYPE, default=list)
    availability: Mapped[List[Dict[str, Any]]] = mapped_column(JSON_TYPE, default=list)
    work_preferences: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON_TYPE, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=true())
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())

# --- Assignments ---

class AssignmentModel(Base):
    __tablename__ = "assignments"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    organization_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    project_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    installation_id: Mapped[str] = mapped_column(ForeignKey("installations.id"), nullable=False, index=True)
    lead_id: Mapped[Optional[str]] = mapped_column(String, index=True)
    assistant_id: Mapped[Optional[str]] = mapped_column(String)
    status: Mapped[str] = mapped_column(String, server_default='assigned')
    estimated_travel_time: Mapped[Optional[float]] = mapped_column(Float)  # minutes
    estimated_travel_distance: Mapped[Optional[float]] = mapped_column(Float)  # miles
    buffer_time: Mapped[Optional[int]] = mapped_column(Integer)
    workload_score: Mapped[Optional[float]] = mapped_column(Float)
    efficiency_score: Mapped[Optional[float]] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now(), onupdate=func.now())

    # Relationships
    installation: Mapped["InstallationModel"] = relationship(lazy="joined")
    history: Mapped[List["AssignmentHistoryModel"]] = relationship(
        back_populates="assignment",
        order_by="AssignmentHistoryModel.performed_at",
    )

# --- Assignment History (append-only) ---

class AssignmentHistoryModel(Base):
    __tablename__ = "assignment_history"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    assignment_id: Mapped[str] = mapped_column(ForeignKey("assignments.id"), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String, nullable=False)
    performed_by: Mapped[str] = mapped_column(String, nullable=False)
    performed_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())
    previous_value: Mapped[Any] = mapped_column(JSON_TYPE, nullable=True)
    new_value: Mapped[Any] = mapped_column(JSON_TYPE, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    assignment: Mapped["AssignmentModel"] = relationship(back_populates="history")

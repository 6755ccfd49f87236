import pytest
from datetime import date, time
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fieldops.scheduling.exceptions import DataAccessError, ResolutionApplyError
from fieldops.scheduling.models import (
    AssignmentAction,
    AssignmentHistoryEntry,
    AssignmentStatus,
    DateRange,
    InstallationStatus,
)
from fieldops.storage.models import AssignmentModel, Base, InstallationModel, TeamMemberModel
from fieldops.storage.postgres_adapter import PostgresAdapter, PostgresConfig
from fieldops.storage.repositories.scheduling_repository import SchedulingRepository
from fieldops.storage.scheduling_store import SqlSchedulingStore

WEEK = DateRange(date(2024, 3, 4), date(2024, 3, 8))

@pytest.fixture
def adapter():
    """PostgresAdapter wired to a shared in-memory SQLite engine."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    adapter = PostgresAdapter(PostgresConfig())
    adapter._engine = engine
    adapter._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    yield adapter
    adapter.close()

@pytest.fixture
def store(adapter):
    with adapter.get_session() as session:
        session.add_all([
            InstallationModel(
                id="inst-1", organization_id="org-1", project_id="proj-1",
                customer_name="Ada Park", scheduled_date=date(2024, 3, 4),
                scheduled_time=time(9, 0), duration=90, status="scheduled", priority="high",
                required_specializations=["solar"],
            ),
            InstallationModel(
                id="inst-2", organization_id="org-1", project_id="proj-1",
                scheduled_date=date(2024, 3, 20), scheduled_time=time(9, 0), duration=60,
                status="scheduled", priority="medium",
            ),
        ])
        session.flush()
        session.add_all([
            AssignmentModel(
                id="asg-1", organization_id="org-1", project_id="proj-1", installation_id="inst-1",
                lead_id="tm-1", status="accepted", estimated_travel_distance=12.5,
            ),
            AssignmentModel(
                id="asg-2", organization_id="org-1", project_id="proj-1", installation_id="inst-2",
                lead_id="tm-1", status="assigned",
            ),
            TeamMemberModel(
                id="tm-1", organization_id="org-1", project_id="proj-1",
                first_name="Dana", last_name="Reyes", capacity=4, travel_radius=30.0,
                specializations=["solar"],
                availability=[{
                    "start_date": "2024-03-01", "end_date": "2024-03-31",
                    "start_time": "08:00", "end_time": "17:00",
                    "is_available": True, "is_recurring": True, "recurring_days": [1, 2, 3, 4, 5],
                }],
                work_preferences={"max_daily_jobs": 3, "unavailable_dates": ["2024-03-07"]},
                is_active=True,
            ),
        ])
    return SqlSchedulingStore(adapter)

@pytest.mark.asyncio
async def test_fetch_assignments(store):
    assignments = await store.fetch_assignments("org-1", "proj-1", WEEK)

    assert [a.id for a in assignments] == ["asg-1"]
    assignment = assignments[0]
    assert assignment.status == AssignmentStatus.ACCEPTED
    assert assignment.estimated_travel_distance == 12.5
    installation = assignment.installation
    assert installation.id == "inst-1"
    assert installation.scheduled_time == time(9, 0)
    assert installation.status == InstallationStatus.SCHEDULED
    assert installation.required_specializations == ["solar"]

@pytest.mark.asyncio
async def test_fetch_team_members(store):
    members = await store.fetch_team_members("org-1", "proj-1")

    assert [m.id for m in members] == ["tm-1"]
    member = members[0]
    assert member.full_name == "Dana Reyes"
    assert member.max_daily_jobs == 3
    assert member.work_preferences.unavailable_dates == [date(2024, 3, 7)]
    window = member.availability[0]
    assert window.start_date == date(2024, 3, 1)
    assert window.start_time == time(8, 0)
    assert window.recurring_days == [1, 2, 3, 4, 5]

@pytest.mark.asyncio
async def test_updates_and_history(store, adapter):
    async with store.transaction():
        await store.update_installation("inst-1", {
            "scheduled_time": time(10, 30),
            "status": InstallationStatus.RESCHEDULED.value,
        })
        await store.update_assignment("asg-1", {"status": "assigned"})
        await store.append_history("asg-1", AssignmentHistoryEntry(
            assignment_id="asg-1",
            action=AssignmentAction.RESCHEDULED,
            performed_by="dispatcher",
            previous_value="2024-03-04 09:00",
            new_value="2024-03-04 10:30",
        ))

    assignment = (await store.fetch_assignments("org-1", "proj-1", WEEK))[0]
    assert assignment.installation.scheduled_time == time(10, 30)
    assert assignment.installation.status == InstallationStatus.RESCHEDULED
    assert assignment.status == AssignmentStatus.ASSIGNED

    with adapter.get_session() as session:
        history = SchedulingRepository().list_history(session, "asg-1")
        assert [h.action for h in history] == ["rescheduled"]
        assert history[0].new_value == "2024-03-04 10:30"
        assert history[0].performed_by == "dispatcher"
        assert history[0].id

@pytest.mark.asyncio
async def test_failed_transaction_rolls_back(store):
    with pytest.raises(ResolutionApplyError):
        async with store.transaction():
            await store.update_assignment("asg-1", {"lead_id": "tm-9"})
            raise ResolutionApplyError("No concrete slot proposed", resolution_id="r-1")

    assignment = (await store.fetch_assignments("org-1", "proj-1", WEEK))[0]
    assert assignment.lead_id == "tm-1"

@pytest.mark.asyncio
async def test_missing_rows(store):
    with pytest.raises(DataAccessError) as exc_info:
        await store.update_installation("inst-404", {"notes": "x"})
    assert exc_info.value.operation == "update_installation"

    with pytest.raises(DataAccessError):
        await store.update_assignment("asg-404", {"status": "assigned"})

@pytest.mark.asyncio
async def test_invalid_patch(store):
    with pytest.raises(DataAccessError) as exc_info:
        await store.update_assignment("asg-1", {"installation_id": "inst-2"})
    assert "Unknown assignment fields" in str(exc_info.value)

@pytest.mark.asyncio
async def test_unreadable_rows(store, adapter):
    with adapter.get_session() as session:
        session.get(AssignmentModel, "asg-1").status = "lost"

    with pytest.raises(DataAccessError) as exc_info:
        await store.fetch_assignments("org-1", "proj-1", WEEK)
    assert exc_info.value.operation == "fetch_assignments"

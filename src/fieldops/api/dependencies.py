from fieldops.api.database import get_postgres_adapter, close_postgres_adapter
from fieldops.platform.config import settings
from fieldops.platform.logging import get_logger
from fieldops.scheduling.service import SchedulingService
from fieldops.scheduling.store import DataStore
from fieldops.storage.scheduling_store import SqlSchedulingStore

logger = get_logger(__name__)

# Singletons
_scheduling_store: DataStore | None = None


def get_scheduling_store() -> DataStore:
    global _scheduling_store
    if not _scheduling_store:
        _scheduling_store = SqlSchedulingStore(get_postgres_adapter())
    return _scheduling_store


def get_scheduling_service() -> SchedulingService:
    return SchedulingService(get_scheduling_store(), settings=settings)


async def init_resources():
    """Initialize all singletons."""
    adapter = get_postgres_adapter()
    adapter.connect()
    if settings.DB_AUTO_CREATE_SCHEMA:
        adapter.create_schema()
    logger.info("Scheduling store ready")


async def close_resources():
    """Close all singletons."""
    global _scheduling_store
    _scheduling_store = None
    close_postgres_adapter()

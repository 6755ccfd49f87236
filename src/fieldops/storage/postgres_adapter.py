from contextlib import contextmanager
from typing import Generator
import logging

from pydantic import SecretStr
from pydantic_settings import BaseSettings
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from .base import StorageAdapter
from .models import Base

logger = logging.getLogger(__name__)


class PostgresConfig(BaseSettings):
    """Configuration for Postgres Storage."""
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "fieldops"
    POSTGRES_POOL_SIZE: int = 5
    POSTGRES_MAX_OVERFLOW: int = 10

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def connection_string(self) -> str:
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


class PostgresAdapter(StorageAdapter):
    """
    SQLAlchemy-based Postgres adapter.
    """

    def __init__(self, config: PostgresConfig):
        self.config = config
        self._engine = None
        self._session_factory = None

    @property
    def is_connected(self) -> bool:
        return self._session_factory is not None

    def connect(self) -> None:
        if self._engine:
            return

        try:
            logger.info(f"Connecting to Postgres at {self.config.POSTGRES_HOST}:{self.config.POSTGRES_PORT}")

            self._engine = create_engine(
                self.config.connection_string,
                pool_size=self.config.POSTGRES_POOL_SIZE,
                max_overflow=self.config.POSTGRES_MAX_OVERFLOW,
                pool_pre_ping=True
            )

            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
            logger.info("Postgres connection pool established.")

        except Exception as e:
            logger.error(f"Failed to connect to Postgres: {e}")
            raise

    def close(self) -> None:
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Postgres connection pool closed.")

    def health_check(self) -> bool:
        if not self._engine:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("postgres unhealthy")
            return False

    def create_schema(self) -> None:
        """Create scheduling tables that do not exist yet (local dev setup)."""
        if not self._engine:
            raise ConnectionError("Postgres is not connected. Call connect() first.")
        Base.metadata.create_all(self._engine)
        logger.info("Scheduling schema ensured.")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.
        """
        if not self._session_factory:
            raise ConnectionError("Postgres is not connected. Call connect() first.")

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

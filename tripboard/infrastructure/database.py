"""
Database engine and session management.

The engine (and its connection pool) is owned by a Database object that is
opened on application startup and closed on shutdown.
"""
import logging
from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(connection):
    connection.exec_driver_sql("BEGIN")


class Database:
    """
    Async SQLAlchemy engine plus session factory with an explicit lifecycle.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database has not been started")
        return self._engine

    async def start(self) -> None:
        """Create the engine and session factory."""
        if self._engine is not None:
            return

        engine_kwargs = {"echo": self.echo}
        if not self.url.startswith("sqlite"):
            engine_kwargs.update(pool_pre_ping=True, pool_size=5, max_overflow=10)

        self._engine = create_async_engine(self.url, **engine_kwargs)
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine.sync_engine, "connect", _configure_sqlite_connection)
            event.listen(self._engine.sync_engine, "begin", _begin_sqlite_transaction)

        self._sessionmaker = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"Database engine created for dialect '{self._engine.dialect.name}'")

    async def close(self) -> None:
        """Dispose the engine and every pooled connection."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database engine disposed")

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database has not been started")
        return self._sessionmaker()

    async def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        async with self.engine.connect() as connection:
            await connection.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        """Create every table (tests and local development; production uses Alembic)."""
        # Models must be imported so their tables are registered on Base.metadata
        from tripboard.auth import models as _auth_models  # noqa: F401
        from tripboard.infrastructure import models as _models  # noqa: F401

        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a session bound to the application's database."""
    database: Database = request.app.state.services.database
    async with database.session() as session:
        yield session

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import HTTPException, Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from homeledger.core.config import Settings

logger = logging.getLogger(__name__)


def _configure_sqlite(engine) -> None:
    # pysqlite/aiosqlite only BEGIN before DML by default; take over BEGIN so
    # DDL and multi-statement deletes are transactional too.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Store:
    """Handle on one ledger database.

    Owns the engine and the session factory. Reads go through ``session()``;
    every mutation goes through ``writer()``, which serializes writers on a
    single lock so only one write transaction is ever in flight.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.engine = create_async_engine(database_url, echo=echo)
        if self.engine.dialect.name == "sqlite":
            _configure_sqlite(self.engine)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )
        self._write_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Store":
        if not settings.DATABASE_URL:
            settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
        logger.info(f"Opening ledger store at: {settings.database_url}")
        return cls(settings.database_url, echo=settings.SQL_ECHO)

    @property
    def write_in_progress(self) -> bool:
        return self._write_lock.locked()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Read session. Sees committed state only."""
        async with self.session_factory() as db:
            yield db

    @asynccontextmanager
    async def writer(self) -> AsyncIterator[AsyncSession]:
        """The single write path. Anything not committed is rolled back on exit."""
        async with self._write_lock:
            async with self.session_factory() as db:
                try:
                    yield db
                except BaseException:
                    await db.rollback()
                    raise

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Ledger store closed.")


def store_from_request(request: Request) -> Store:
    store = getattr(request.app.state, "store", None)
    if store is None:
        logger.error("Store is not initialized. The ledger may have failed to open during startup.")
        raise HTTPException(
            status_code=503, # Service Unavailable
            detail="Ledger store is not available."
        )
    return store


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for read-only endpoints."""
    store = store_from_request(request)
    async with store.session() as db:
        yield db


async def get_write_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for mutating endpoints; holds the write lock for the request."""
    store = store_from_request(request)
    async with store.writer() as db:
        yield db

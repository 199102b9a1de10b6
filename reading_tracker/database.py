from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from dataclasses import dataclass
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Generic, Optional, TypeVar
import logging
import os

from reading_tracker import config

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    pass


class StorageError(Exception):
    """Any failure reported by the storage engine."""


class StorageUnavailable(StorageError):
    """The store was used before init() finished."""


@dataclass
class StoreResult(Generic[T]):
    """Outcome of a write: ok with an optional value, or the error that stopped it."""
    ok: bool
    value: Optional[T] = None
    error: Optional[StorageError] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "StoreResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: StorageError, on_error: Optional[Callable[[StorageError], None]] = None) -> "StoreResult[T]":
        if on_error is not None:
            on_error(error)
        return cls(ok=False, error=error)


def storage_failure(action: str, exc: Exception, on_error: Optional[Callable[[StorageError], None]] = None) -> StoreResult:
    """Log a failed write and turn it into a failed result instead of raising."""
    if isinstance(exc, StorageUnavailable):
        logger.warning(f"Skipping {action}: {exc}")
        error = exc
    else:
        logger.error(f"Error during {action}: {exc}")
        error = exc if isinstance(exc, StorageError) else StorageError(str(exc))
    return StoreResult.failure(error, on_error)


def normalize_database_url(database_url: str) -> str:
    # Convert sync sqlite URL to async
    if database_url.startswith("sqlite:///"):
        database_url = database_url.replace("sqlite:///", "sqlite+aiosqlite:///")
    return database_url


class Database:
    """Single storage handle shared by every tracker component.

    Nothing may query the store until ``init()`` has created the schema;
    ``is_ready`` reports that.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = normalize_database_url(database_url or config.DATABASE_URL)
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker] = None
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def init(self) -> None:
        if self._ready:
            return

        # Ensure database directory exists
        if self.database_url.startswith("sqlite+aiosqlite:///"):
            db_path = self.database_url.replace("sqlite+aiosqlite:///", "")
            db_dir = os.path.dirname(db_path)
            if db_dir and not os.path.exists(db_dir):
                os.makedirs(db_dir, exist_ok=True)

        self.engine = create_async_engine(
            self.database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        # Import models to register them with Base.metadata
        from reading_tracker import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self._ready = True
        logger.info(f"Database ready at {self.database_url}")

    async def dispose(self) -> None:
        self._ready = False
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.session_maker = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if not self._ready or self.session_maker is None:
            raise StorageUnavailable("Database not initialized")
        async with self.session_maker() as session:
            yield session

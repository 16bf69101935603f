# helpdesk/db/engine.py
"""
Async database access for the helpdesk.

`build_engine` is shared by the application and the test suite. SQLite
(aiosqlite) runs in WAL mode so webhook writes do not block ticket reads;
any other DATABASE_URL (e.g. postgresql+asyncpg) is passed through as is.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import settings


def _enable_wal(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.close()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    new_engine = create_async_engine(url, echo=False, **kwargs)
    if url.startswith("sqlite"):
        event.listen(new_engine.sync_engine, "connect", _enable_wal)
    return new_engine


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    # Services keep using their records after commit
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


async def create_all(bind: AsyncEngine) -> None:
    from .. import models  # noqa: F401  (registers every table)

    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


engine = build_engine(settings.resolved_database_url)
async_session_maker = build_session_maker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: `session: AsyncSession = Depends(get_session)`."""
    async with async_session_maker() as session:
        yield session


async def create_db_and_tables():
    await create_all(engine)

from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from core.config import settings

DATABASE_URL = settings.database_url


class Base(DeclarativeBase):
    pass


def _engine_kwargs(url: str) -> dict:
    kwargs = {"echo": settings.database_echo}
    if url.startswith("sqlite"):
        # SQLite connections are opened per session; pooled aiosqlite connections
        # must not outlive the event loop that created them.
        kwargs["poolclass"] = NullPool
    return kwargs


engine = create_async_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))

if DATABASE_URL.startswith("sqlite"):
    # Take the write lock at BEGIN so concurrent writers wait on the busy
    # timeout instead of failing when upgrading a read lock.
    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():
    # Import models so they are registered on Base.metadata
    from db import users  # noqa: F401
    from db.inventory import item, movement  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session

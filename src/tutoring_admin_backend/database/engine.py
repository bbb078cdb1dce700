'''
Database Engine file.
1- Database: owns the Engine (TCP pool) and the AsyncSession factory bound to it
2- The Database instance is created by the app's lifespan and kept on app.state
3- get_db_session: Dependency to create, yield and manage the life-cycle of a session.
'''
from typing import AsyncGenerator, Any

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from ..common.logger import log
from .models import Base


def _engine_options(url: str) -> dict[str, Any]:
    """
    Pool settings per backend. SQLite (local development and tests) gets a
    single shared connection; every other backend gets a sized pool.
    """
    if url.startswith("sqlite"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": -1,
        "pool_pre_ping": True,
    }


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    The persistence gateway: one engine and one session factory for the
    lifetime of the process.
    """
    def __init__(self, url: str, echo: bool = False):
        log.info("Creating database engine for URL...")
        try:
            # 1. Create the asynchronous engine
            self.engine: AsyncEngine = create_async_engine(url, echo=echo, **_engine_options(url))
            if url.startswith("sqlite"):
                event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

            # 2. Create the session factory
            self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            log.info("Async database engine and session factory created successfully.")
        except Exception as e:
            log.critical(f"Failed to create async database engine: {e}", exc_info=True)
            raise

    async def create_all(self) -> None:
        """Creates every table that does not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info("Database schema ensured.")

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        log.info("Database engine disposed.")


def get_database(request: Request) -> Database:
    database = getattr(request.app.state, "database", None)
    if database is None:
        log.error("Database is not initialized. App lifespan may not have run.")
        raise RuntimeError("Database session factory is not available.")
    return database


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    This pattern ensures:
    1. A session is created from the factory for each request.
    2. The session is yielded to the route.
    3. The session is committed if the request is successful.
    4. The session is rolled back if an exception occurs.
    5. The session is always closed after the request.
    """
    database = get_database(request)

    session = database.session_factory() # Create a new session
    try:
        yield session
        await session.commit()  # Commit on successful request
    except Exception as e:
        await session.rollback() # Rollback on error
        log.error(f"Database session rolled back due to error: {e}")
        raise # Re-raise the exception so FastAPI can handle it
    finally:
        await session.close() # Always close the session

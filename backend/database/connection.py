from typing import Optional
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text

from config import get_settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


class Base(DeclarativeBase):
    pass


def get_engine() -> AsyncEngine:
    """Create the async engine on first use from the configured URL."""
    global _engine
    if _engine is None:
        settings = get_settings()
        database_url = settings.get_database_url()

        engine_kwargs = {"echo": False, "pool_pre_ping": True}
        if database_url.startswith("postgresql"):
            engine_kwargs.update(pool_size=5, max_overflow=10)
            if settings.DATABASE_SSL:
                engine_kwargs["connect_args"] = {"ssl": "require"}

        _engine = create_async_engine(database_url, **engine_kwargs)
    return _engine


def get_session_factory() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )
    return _session_factory


async def get_db():
    """Dependency to get database session"""
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Verify the database connection and list the tables present"""
    try:
        async with get_engine().begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("Database connection successful")

            table_names = await conn.run_sync(
                lambda sync_conn: sync_conn.dialect.get_table_names(sync_conn)
            )
            logger.info(f"Available tables: {table_names}")

            return True
    except Exception as e:
        logger.error(f"Database initialization error: {e}")
        raise


async def create_tables(engine: Optional[AsyncEngine] = None):
    """Create all bank book and journal tables that do not exist yet."""
    # Models register themselves on Base when the package is imported
    import database.bank_book_models  # noqa: F401
    import database.journal_models  # noqa: F401

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine():
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None

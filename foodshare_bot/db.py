import logging

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy import create_engine
from sqlmodel import SQLModel

from foodshare_bot.config import settings

logger = logging.getLogger(__name__)

# Create an async engine
engine = create_async_engine(f"sqlite+aiosqlite:///{settings.DB_PATH}")

# Create a sync engine for Alembic migrations
sync_engine = create_engine(f"sqlite:///{settings.DB_PATH}")

# Create a session factory
SessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create tables that don't exist yet.

    Schema changes after the first release go through Alembic
    (``alembic upgrade head``); this only bootstraps a fresh database.
    """
    # Ensure all models are imported so SQLModel metadata includes them
    from foodshare_bot import models  # noqa: F401

    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database ready at %s", bind.url)

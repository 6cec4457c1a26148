"""
Database Connection Module
Handles PostgreSQL connection using SQLAlchemy async engine.
"""

import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from kitchen_voice.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Engine is lazy: no connection is opened until the first query
engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=5,
    max_overflow=10,
)

async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def init_db():
    """
    Create all tables in database.
    Called once at application startup in real-service modes.
    """
    # Register models on Base.metadata
    from kitchen_voice import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ Database tables created successfully!")

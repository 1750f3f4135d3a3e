"""
Database engine and request-scoped sessions.

One async engine serves both the study-session tables (ORM, below) and the
pgvector index table, which VectorIndexStore manages through SQLAlchemy Core.
"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import AsyncGenerator
import logging

from app.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    poolclass=NullPool,  # connections are not shared across event loops
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Declarative base for StudySession / WeakPoint
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session for one request.

    Committed when the route returns normally, rolled back when it raises.
    Routes that call hosted services after reading may commit early to hand
    the connection back before the slow part of the request.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error("Database session error: %s", e)
            raise


async def init_db() -> None:
    """
    Create the sessions and weak_points tables if missing.
    The index table is left to VectorIndexStore.ensure_index.
    """
    from app.models import database_models  # noqa: F401  (registers the models)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Session tables created/verified")
    except Exception as e:
        logger.error("Error initializing database: %s", e)
        raise


async def close_db() -> None:
    """Dispose of the engine on shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")

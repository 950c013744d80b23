import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from fintrack.config import get_settings
from fintrack.db.base import Base

logger = logging.getLogger(__name__)

settings = get_settings()

engine = create_async_engine(
    settings.DATABASE_URL,
    pool_size=settings.DATABASE_POOL_SIZE,
    max_overflow=settings.DATABASE_MAX_OVERFLOW,
    pool_pre_ping=True,  # Detect stale connections before using them
    echo=False,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Register models and optionally create tables.

    When CREATE_TABLES=False (default, production):
        - Only registers the models; schema migrations are run externally

    When CREATE_TABLES=True (development):
        - Uses create_all() for convenience (creates tables if they don't exist)
    """
    # Import all models to ensure they're registered with SQLAlchemy
    from fintrack.models import user, income, expense, card, category, investment_operation, asset  # noqa

    if not settings.CREATE_TABLES:
        logger.info("Database models registered (CREATE_TABLES=False).")
        return

    logger.info("Running create_all() for database initialization (CREATE_TABLES=True).")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session():
    """Get async database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

from typing import AsyncGenerator
import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from fintrack.db.base import Base
from fintrack.models import User, Category


# Use SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session_maker() as session:
        yield session


async def _make_user(session: AsyncSession, email: str, display_name: str) -> User:
    user = User(
        id=str(uuid.uuid4()),
        email=email,
        display_name=display_name,
        is_active=True,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(test_session: AsyncSession) -> User:
    """Create a test user."""
    return await _make_user(test_session, "test@example.com", "Test User")


@pytest_asyncio.fixture(scope="function")
async def other_user(test_session: AsyncSession) -> User:
    """Create a second user to check ownership rules."""
    return await _make_user(test_session, "other@example.com", "Other User")


@pytest_asyncio.fixture(scope="function")
async def test_categories(test_session: AsyncSession) -> list[Category]:
    """Seed a few global categories with icons."""
    categories = [
        Category(name="Alimentação", type="expense", icon="🍔"),
        Category(name="Transporte", type="expense", icon="🚗"),
        Category(name="Assinaturas", type="expense", icon="📺"),
        Category(name="Salário", type="income", icon="💼"),
        Category(name="Freelance", type="income", icon="💻"),
    ]
    test_session.add_all(categories)
    await test_session.commit()
    return categories

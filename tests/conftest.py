import os

# Must be set before any application module reads its settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TESTING"] = "True"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RECOMMENDATION_CACHE_BACKEND"] = "database"

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.api.interactions.repository import InteractionRepository
from src.api.interactions.service import TrackingService
from src.api.recommendations.analytics_service import RecommendationAnalyticsService
from src.api.recommendations.cache import RecommendationCache
from src.api.recommendations.content_repository import ContentRepository
from src.api.recommendations.engine import RecommendationEngine
from src.api.recommendations.service import RecommendationService
from src.database.base import Base
import src.database.models  # noqa: F401


@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
def seed(session_factory):
    """Insert ORM rows and commit them."""

    async def _seed(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()

    return _seed


class FailingSessionFactory:
    """Session factory whose sessions fail on entry, like an unreachable database."""

    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self

    async def __aenter__(self):
        raise OperationalError("SELECT 1", {}, Exception("database is unavailable"))

    async def __aexit__(self, exc_type, exc, tb):
        return False


@pytest.fixture
def failing_session_factory():
    return FailingSessionFactory()


@pytest.fixture
def interaction_repository(session_factory):
    return InteractionRepository(session_factory)


@pytest.fixture
def content_repository(session_factory):
    return ContentRepository(session_factory)


@pytest.fixture
def recommendation_engine(content_repository, interaction_repository):
    return RecommendationEngine(content_repository, interaction_repository)


@pytest.fixture
def recommendation_cache(session_factory):
    return RecommendationCache(backend="database", session_factory=session_factory)


@pytest.fixture
def recommendation_service(
    recommendation_engine, recommendation_cache, content_repository, interaction_repository
):
    return RecommendationService(
        engine=recommendation_engine,
        cache=recommendation_cache,
        content=content_repository,
        interactions=interaction_repository,
    )


@pytest.fixture
def tracking_service(interaction_repository):
    return TrackingService(interaction_repository)


@pytest.fixture
def analytics_service(session_factory):
    return RecommendationAnalyticsService(session_factory)

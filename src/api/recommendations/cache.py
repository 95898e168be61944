from datetime import datetime, timedelta
from typing import Callable, List, NamedTuple, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.recommendations.models import RecommendationItem
from src.config.cache_config import cache_config
from src.config.settings import settings
from src.database.connection import AsyncSessionLocal
from src.database.models.recommendation_cache import RecommendationCacheEntry
from src.shared.core_cache import CoreCacheClient, core_cache
from src.shared.utils import get_logger, utc_now

logger = get_logger(__name__)

DATABASE_BACKEND = "database"
MEMORY_BACKEND = "memory"

UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class CacheKey(NamedTuple):
    source_type: str
    source_id: str
    target_type: str
    algorithm: str


class RecommendationCache:
    """
    Cache-aside store for recommendation lists.

    Entries are keyed by (source_type, source_id, target_type, algorithm) and
    remember the list size they were computed for: a read asking for more items
    than stored is a miss, a read asking for fewer gets the leading items.

    Cache failures never reach the caller. A failed read is a miss, a failed
    write is logged and dropped.
    """

    def __init__(
        self,
        backend: str = settings.RECOMMENDATION_CACHE_BACKEND,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        clock: Callable[[], datetime] = utc_now,
        memory_store: Optional[CoreCacheClient] = None,
    ):
        if backend not in (DATABASE_BACKEND, MEMORY_BACKEND):
            raise ValueError(f"Unknown recommendation cache backend: {backend}")

        self.backend = backend
        self._session_factory = session_factory
        self._clock = clock
        self._memory = None
        if backend == MEMORY_BACKEND:
            self._memory = memory_store or core_cache

    @staticmethod
    def key(source_type, source_id: str, target_type, algorithm) -> CacheKey:
        return CacheKey(
            getattr(source_type, "value", source_type),
            str(source_id),
            getattr(target_type, "value", target_type),
            getattr(algorithm, "value", algorithm),
        )

    async def get(self, key: CacheKey, limit: int) -> Optional[List[RecommendationItem]]:
        """Cached items for ``key``, or None on a miss."""
        try:
            if self._memory is not None:
                entry = self._memory.get(key)
                if entry is None:
                    return None
                stored, item_limit = entry["recommendations"], entry["item_limit"]
            else:
                async with self._session_factory() as session:
                    result = await session.execute(
                        select(
                            RecommendationCacheEntry.recommendations,
                            RecommendationCacheEntry.item_limit,
                        ).where(
                            RecommendationCacheEntry.source_type == key.source_type,
                            RecommendationCacheEntry.source_id == key.source_id,
                            RecommendationCacheEntry.target_type == key.target_type,
                            RecommendationCacheEntry.algorithm == key.algorithm,
                            RecommendationCacheEntry.expires_at > self._clock(),
                        )
                    )
                    row = result.first()
                    if row is None:
                        return None
                    stored, item_limit = row[0], row[1]

            if limit > item_limit:
                return None

            return [RecommendationItem.model_validate(item) for item in stored[:limit]]
        except Exception as e:
            logger.error(f"Error reading recommendation cache for {key}: {e}", exc_info=True)
            return None

    async def set(
        self,
        key: CacheKey,
        items: List[RecommendationItem],
        limit: int,
        ttl_minutes: Optional[int] = None,
    ) -> bool:
        """Store ``items`` under ``key``, replacing any previous entry and its expiry."""
        ttl_minutes = ttl_minutes or cache_config.get_ttl_minutes(key.algorithm)
        recommendations = [item.model_dump(mode="json") for item in items]

        try:
            if self._memory is not None:
                return self._memory.set(
                    key,
                    {"recommendations": recommendations, "item_limit": limit},
                    ttl_seconds=ttl_minutes * 60,
                )

            await self._upsert(key, recommendations, limit, ttl_minutes)
            return True
        except Exception as e:
            logger.warning(f"Failed to write recommendation cache for {key}: {e}")
            return False

    async def _upsert(
        self, key: CacheKey, recommendations: list, limit: int, ttl_minutes: int
    ) -> None:
        now = self._clock()
        expires_at = now + timedelta(minutes=ttl_minutes)

        async with self._session_factory() as session:
            dialect = session.get_bind().dialect.name
            insert = UPSERT_INSERTS.get(dialect)
            if insert is None:
                raise ValueError(f"Recommendation cache upsert is not supported on {dialect}")

            statement = insert(RecommendationCacheEntry).values(
                source_type=key.source_type,
                source_id=key.source_id,
                target_type=key.target_type,
                algorithm=key.algorithm,
                recommendations=recommendations,
                item_limit=limit,
                expires_at=expires_at,
                created_at=now,
                updated_at=now,
            )
            # Last writer wins on the composite key
            statement = statement.on_conflict_do_update(
                index_elements=[
                    RecommendationCacheEntry.source_type,
                    RecommendationCacheEntry.source_id,
                    RecommendationCacheEntry.target_type,
                    RecommendationCacheEntry.algorithm,
                ],
                set_={
                    "recommendations": statement.excluded.recommendations,
                    "item_limit": statement.excluded.item_limit,
                    "expires_at": statement.excluded.expires_at,
                    "updated_at": statement.excluded.updated_at,
                },
            )
            await session.execute(statement)
            await session.commit()

    async def clear(
        self, source_type: Optional[str] = None, source_id: Optional[str] = None
    ) -> int:
        """
        Delete entries matching the given source filters.

        With neither filter every entry is removed.
        """
        if self._memory is not None:
            return self._memory.delete_where(
                lambda key: (source_type is None or key.source_type == source_type)
                and (source_id is None or key.source_id == source_id)
            )

        async with self._session_factory() as session:
            statement = delete(RecommendationCacheEntry)
            if source_type is not None:
                statement = statement.where(
                    RecommendationCacheEntry.source_type == source_type
                )
            if source_id is not None:
                statement = statement.where(RecommendationCacheEntry.source_id == source_id)

            result = await session.execute(statement)
            await session.commit()
            cleared = result.rowcount or 0

        logger.info(f"Cleared {cleared} recommendation cache entries")
        return cleared

    async def clear_expired(self) -> int:
        """Delete entries whose expiry has passed."""
        if self._memory is not None:
            return self._memory.clear_expired()

        async with self._session_factory() as session:
            result = await session.execute(
                delete(RecommendationCacheEntry).where(
                    RecommendationCacheEntry.expires_at <= self._clock()
                )
            )
            await session.commit()
            cleared = result.rowcount or 0

        logger.info(f"Cleared {cleared} expired recommendation cache entries")
        return cleared

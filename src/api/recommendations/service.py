from typing import List, Optional

from src.api.interactions.repository import InteractionRepository
from src.api.recommendations.cache import RecommendationCache
from src.api.recommendations.content_repository import ContentRepository
from src.api.recommendations.engine import RecommendationEngine
from src.api.recommendations.models import RecommendationItem, RecommendationResult
from src.config.cache_config import cache_config
from src.config.constants import (
    DEFAULT_TRENDING_DAYS,
    SEEN_INTERACTION_TYPES,
    SEEN_LOOKBACK_LIMIT,
    USER_FILTER_HEADROOM,
    ContentType,
    RecommendationAlgorithm,
)
from src.config.settings import settings
from src.shared.error_handler import ErrorHandler, fallback_on_error
from src.shared.utils import get_logger

DEFAULT_LIMIT = settings.RECOMMENDATION_DEFAULT_LIMIT
BOUGHT_TOGETHER_LIMIT = settings.RECOMMENDATION_BOUGHT_TOGETHER_LIMIT


def _value(item) -> str:
    return getattr(item, "value", item)


def _empty(source_type, source_id: str, algorithm) -> RecommendationResult:
    return RecommendationResult(
        items=[],
        algorithm=_value(algorithm),
        source_type=_value(source_type),
        source_id=str(source_id),
    )


class RecommendationService:
    """
    Entry point for recommendation lists.

    Each lookup runs cache check, engine fetch, optional per-user filtering and
    cache write, in that order. Any failure along the way is logged and turned
    into an empty result so the page embedding the widget keeps rendering.
    """

    def __init__(
        self,
        engine: Optional[RecommendationEngine] = None,
        cache: Optional[RecommendationCache] = None,
        content: Optional[ContentRepository] = None,
        interactions: Optional[InteractionRepository] = None,
    ):
        self._error_handler = ErrorHandler(__name__)
        self.logger = get_logger(__name__)
        self.content = content or ContentRepository()
        self.interactions = interactions or InteractionRepository()
        self.engine = engine or RecommendationEngine(self.content, self.interactions)
        self.cache = cache or RecommendationCache()

    # ------------------------------------------------------------------
    # Related content
    # ------------------------------------------------------------------

    @fallback_on_error(
        "get related posts",
        fallback=lambda self, post_id, *a, **k: _empty(
            ContentType.POST, post_id, RecommendationAlgorithm.RELATED
        ),
    )
    async def get_related_posts(
        self, post_id: str, user_id: Optional[str] = None, limit: int = DEFAULT_LIMIT
    ) -> RecommendationResult:
        """Posts related to ``post_id``, without posts the user has already viewed."""
        return await self._get_related(ContentType.POST, post_id, limit, user_id)

    @fallback_on_error(
        "get related pages",
        fallback=lambda self, page_id, *a, **k: _empty(
            ContentType.PAGE, page_id, RecommendationAlgorithm.RELATED
        ),
    )
    async def get_related_pages(
        self, page_id: str, limit: int = DEFAULT_LIMIT
    ) -> RecommendationResult:
        return await self._get_related(ContentType.PAGE, page_id, limit)

    @fallback_on_error(
        "get related products",
        fallback=lambda self, product_id, *a, **k: _empty(
            ContentType.PRODUCT, product_id, RecommendationAlgorithm.RELATED
        ),
    )
    async def get_related_products(
        self, product_id: str, user_id: Optional[str] = None, limit: int = DEFAULT_LIMIT
    ) -> RecommendationResult:
        """Products related to ``product_id``, without products the user viewed or bought."""
        return await self._get_related(ContentType.PRODUCT, product_id, limit, user_id)

    @fallback_on_error(
        "get related courses",
        fallback=lambda self, course_id, *a, **k: _empty(
            ContentType.COURSE, course_id, RecommendationAlgorithm.RELATED
        ),
    )
    async def get_related_courses(
        self, course_id: str, limit: int = DEFAULT_LIMIT
    ) -> RecommendationResult:
        return await self._get_related(ContentType.COURSE, course_id, limit)

    async def _get_related(
        self,
        content_type: ContentType,
        source_id: str,
        limit: int,
        user_id: Optional[str] = None,
    ) -> RecommendationResult:
        algorithm = RecommendationAlgorithm.RELATED
        key = self.cache.key(content_type, source_id, content_type, algorithm)

        # Per-user results must not end up in the shared entry
        if not user_id:
            cached = await self.cache.get(key, limit)
            if cached is not None:
                return self._result(cached, algorithm, content_type, source_id, cached=True)

        source = await self.content.get(content_type, source_id)
        if source is None:
            self.logger.debug(f"No {content_type.value} {source_id} to relate content to")
            return _empty(content_type, source_id, algorithm)

        if user_id:
            items = await self.engine.get_related(
                content_type, source, limit + USER_FILTER_HEADROOM
            )
            items = await self._filter_seen(user_id, content_type, items, limit)
        else:
            items = await self.engine.get_related(content_type, source, limit)
            await self.cache.set(key, items, limit)

        return self._result(items, algorithm, content_type, source_id)

    async def _filter_seen(
        self,
        user_id: str,
        content_type: ContentType,
        items: List[RecommendationItem],
        limit: int,
    ) -> List[RecommendationItem]:
        """Drop items in the user's recent interaction history, then truncate."""
        seen_ids = set(
            await self.interactions.user_content_ids(
                user_id,
                content_type.value,
                interaction_types=SEEN_INTERACTION_TYPES[content_type],
                limit=SEEN_LOOKBACK_LIMIT,
            )
        )
        return [item for item in items if item.id not in seen_ids][:limit]

    # ------------------------------------------------------------------
    # Global lists
    # ------------------------------------------------------------------

    @fallback_on_error(
        "get trending",
        fallback=lambda self, content_type, limit=DEFAULT_LIMIT, timeframe_days=(
            DEFAULT_TRENDING_DAYS
        ): _empty(
            cache_config.GLOBAL_SOURCE,
            f"trending_{timeframe_days}",
            RecommendationAlgorithm.TRENDING,
        ),
    )
    async def get_trending(
        self,
        content_type: ContentType,
        limit: int = DEFAULT_LIMIT,
        timeframe_days: int = DEFAULT_TRENDING_DAYS,
    ) -> RecommendationResult:
        source_id = f"trending_{timeframe_days}"
        return await self._cached_lookup(
            RecommendationAlgorithm.TRENDING,
            cache_config.GLOBAL_SOURCE,
            source_id,
            content_type,
            limit,
            lambda: self.engine.get_trending(content_type, limit, timeframe_days),
        )

    @fallback_on_error(
        "get popular",
        fallback=lambda self, *a, **k: _empty(
            cache_config.GLOBAL_SOURCE, "popular", RecommendationAlgorithm.POPULAR
        ),
    )
    async def get_popular(
        self, content_type: ContentType, limit: int = DEFAULT_LIMIT
    ) -> RecommendationResult:
        return await self._cached_lookup(
            RecommendationAlgorithm.POPULAR,
            cache_config.GLOBAL_SOURCE,
            "popular",
            content_type,
            limit,
            lambda: self.engine.get_popular(content_type, limit),
        )

    # ------------------------------------------------------------------
    # Per-user and co-occurrence lists
    # ------------------------------------------------------------------

    @fallback_on_error(
        "get personalized",
        fallback=lambda self, user_id, content_type, limit=DEFAULT_LIMIT, *a, **k: (
            self.get_popular(content_type, limit)
        ),
    )
    async def get_personalized(
        self, user_id: str, content_type: ContentType, limit: int = DEFAULT_LIMIT
    ) -> RecommendationResult:
        """
        Personalized content for a user. Never cached; falls back to the popular
        list if the computation fails.
        """
        items = await self.engine.get_personalized(user_id, content_type, limit)
        return self._result(
            items, RecommendationAlgorithm.PERSONALIZED, cache_config.USER_SOURCE, user_id
        )

    @fallback_on_error(
        "get collaborative recommendations",
        fallback=lambda self, content_type, content_id, *a, **k: _empty(
            content_type, content_id, RecommendationAlgorithm.COLLABORATIVE
        ),
    )
    async def get_collaborative(
        self, content_type: ContentType, content_id: str, limit: int = DEFAULT_LIMIT
    ) -> RecommendationResult:
        """Items that users who viewed ``content_id`` also viewed."""
        return await self._cached_lookup(
            RecommendationAlgorithm.COLLABORATIVE,
            content_type,
            content_id,
            content_type,
            limit,
            lambda: self.engine.get_collaborative(content_id, content_type, limit),
        )

    @fallback_on_error(
        "get frequently bought together",
        fallback=lambda self, product_id, *a, **k: _empty(
            ContentType.PRODUCT, product_id, RecommendationAlgorithm.BOUGHT_TOGETHER
        ),
    )
    async def get_frequently_bought_together(
        self, product_id: str, limit: int = BOUGHT_TOGETHER_LIMIT
    ) -> RecommendationResult:
        return await self._cached_lookup(
            RecommendationAlgorithm.BOUGHT_TOGETHER,
            ContentType.PRODUCT,
            product_id,
            ContentType.PRODUCT,
            limit,
            lambda: self.engine.get_frequently_bought_together(product_id, limit),
        )

    @fallback_on_error(
        "get similar users recommendations",
        fallback=lambda self, user_id, *a, **k: _empty(
            cache_config.USER_SOURCE, user_id, RecommendationAlgorithm.SIMILAR_USERS
        ),
    )
    async def get_similar_users(
        self, user_id: str, content_type: ContentType, limit: int = DEFAULT_LIMIT
    ) -> RecommendationResult:
        """Content liked by users with overlapping history, cached per user."""
        return await self._cached_lookup(
            RecommendationAlgorithm.SIMILAR_USERS,
            cache_config.USER_SOURCE,
            user_id,
            content_type,
            limit,
            lambda: self.engine.get_similar_users(user_id, content_type, limit),
        )

    async def _cached_lookup(
        self,
        algorithm: RecommendationAlgorithm,
        source_type,
        source_id: str,
        target_type,
        limit: int,
        compute,
    ) -> RecommendationResult:
        key = self.cache.key(source_type, source_id, target_type, algorithm)

        cached = await self.cache.get(key, limit)
        if cached is not None:
            return self._result(cached, algorithm, source_type, source_id, cached=True)

        items = await compute()
        if cache_config.is_cacheable(algorithm):
            await self.cache.set(key, items, limit)

        return self._result(items, algorithm, source_type, source_id)

    @staticmethod
    def _result(
        items: List[RecommendationItem],
        algorithm,
        source_type,
        source_id: str,
        cached: bool = False,
    ) -> RecommendationResult:
        return RecommendationResult(
            items=items,
            algorithm=_value(algorithm),
            source_type=_value(source_type),
            source_id=str(source_id),
            cached=cached,
        )

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    async def clear_cache(
        self, source_type: Optional[str] = None, source_id: Optional[str] = None
    ) -> int:
        """Delete cache entries for a source; with no filters the whole cache is cleared."""
        return await self.cache.clear(source_type, source_id)

    async def clear_expired_cache(self) -> int:
        return await self.cache.clear_expired()

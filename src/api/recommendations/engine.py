from collections import Counter
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from src.api.interactions.repository import InteractionRepository
from src.api.recommendations.content_repository import ContentRepository
from src.api.recommendations.models import RecommendationItem
from src.config.constants import (
    BOUGHT_TOGETHER_MAX_PURCHASES,
    BOUGHT_TOGETHER_WINDOW_MINUTES,
    COLLABORATIVE_MAX_USERS,
    COLLABORATIVE_SOURCE_TYPES,
    COLLABORATIVE_TARGET_TYPES,
    DEFAULT_TRENDING_DAYS,
    PERSONALIZED_HISTORY_LIMIT,
    RANK_DECAY_STEP,
    SIMILAR_USERS_HISTORY_LIMIT,
    SIMILAR_USERS_MAX_USERS,
    ContentType,
    InteractionType,
)
from src.database.models.course import Course
from src.database.models.page import Page
from src.database.models.post import Post
from src.database.models.product import Product
from src.shared.utils import get_logger, utc_now


def rank_decay_score(index: int) -> float:
    """Position-based score for lists without a numeric relevance signal."""
    return max(0.0, round(1 - index * RANK_DECAY_STEP, 4))


class RecommendationEngine:
    """
    Stateless recommendation algorithms.

    Every public method returns at most ``limit`` RecommendationItems sorted by
    score descending. Sparse data never fails an algorithm: each one falls back
    to a simpler strategy (recent, popular or same-category content).
    """

    def __init__(
        self,
        content: Optional[ContentRepository] = None,
        interactions: Optional[InteractionRepository] = None,
    ):
        self.logger = get_logger(__name__)
        self.content = content or ContentRepository()
        self.interactions = interactions or InteractionRepository()

    # ------------------------------------------------------------------
    # Related content
    # ------------------------------------------------------------------

    @staticmethod
    def _related_conditions(content_type: ContentType, source: Any) -> List[Any]:
        """Conditions defining the primary candidate set; any one of them matches."""
        conditions: List[Any] = []
        if content_type == ContentType.POST and source.author_id:
            conditions.append(Post.author_id == source.author_id)
        elif content_type == ContentType.PAGE and source.template:
            conditions.append(Page.template == source.template)
        elif content_type == ContentType.PRODUCT and source.category_id:
            conditions.append(Product.category_id == source.category_id)
        elif content_type == ContentType.COURSE:
            # OR rather than AND to widen the pool
            if source.category:
                conditions.append(Course.category == source.category)
            if source.level:
                conditions.append(Course.level == source.level)
        return conditions

    async def get_related(
        self, content_type: ContentType, source: Any, limit: int
    ) -> List[RecommendationItem]:
        """
        Related content for a source item.

        Primary candidates share the author (posts), template (pages), category
        (products) or category/level (courses). The list is backfilled with the
        most recent items of the same type when the primary set is short.
        """
        content_type = ContentType(content_type)
        conditions = self._related_conditions(content_type, source)

        rows: List[Any] = []
        if conditions:
            rows = await self.content.find_recent(
                content_type, limit, exclude_ids=[source.id], any_of=conditions
            )

        if len(rows) < limit:
            rows.extend(
                await self.content.find_recent(
                    content_type,
                    limit - len(rows),
                    exclude_ids=[source.id, *(row.id for row in rows)],
                )
            )

        return self._rank_decayed(content_type, rows)

    async def get_recent(
        self,
        content_type: ContentType,
        limit: int,
        exclude_ids: Sequence[str] = (),
    ) -> List[RecommendationItem]:
        rows = await self.content.find_recent(content_type, limit, exclude_ids=exclude_ids)
        return self._rank_decayed(content_type, rows)

    # ------------------------------------------------------------------
    # Interaction counts
    # ------------------------------------------------------------------

    async def get_trending(
        self,
        content_type: ContentType,
        limit: int,
        timeframe_days: int = DEFAULT_TRENDING_DAYS,
        exclude_ids: Sequence[str] = (),
    ) -> List[RecommendationItem]:
        """Most interacted-with content in the last ``timeframe_days``."""
        since = utc_now() - timedelta(days=timeframe_days)
        counts = await self.interactions.count_grouped_by_content(
            ContentType(content_type).value,
            limit,
            since=since,
            exclude_content_ids=exclude_ids,
        )
        if not counts:
            return await self.get_recent(content_type, limit, exclude_ids=exclude_ids)

        return await self._hydrate_counted(content_type, counts, limit)

    async def get_popular(
        self,
        content_type: ContentType,
        limit: int,
        exclude_ids: Sequence[str] = (),
    ) -> List[RecommendationItem]:
        """Most interacted-with content of all time."""
        counts = await self.interactions.count_grouped_by_content(
            ContentType(content_type).value, limit, exclude_content_ids=exclude_ids
        )
        if not counts:
            return await self.get_recent(content_type, limit, exclude_ids=exclude_ids)

        return await self._hydrate_counted(content_type, counts, limit)

    async def get_personalized(
        self, user_id: str, content_type: ContentType, limit: int
    ) -> List[RecommendationItem]:
        """
        Recent content the user has not interacted with.

        Users without history get the last week's trending content.
        """
        seen_ids = await self.interactions.user_content_ids(
            user_id, ContentType(content_type).value, limit=PERSONALIZED_HISTORY_LIMIT
        )
        if not seen_ids:
            return await self.get_trending(content_type, limit, DEFAULT_TRENDING_DAYS)

        return await self.get_recent(content_type, limit, exclude_ids=seen_ids)

    # ------------------------------------------------------------------
    # Co-occurrence
    # ------------------------------------------------------------------

    async def get_collaborative(
        self, content_id: str, content_type: ContentType, limit: int
    ) -> List[RecommendationItem]:
        """Users who viewed this item also viewed..."""
        type_value = ContentType(content_type).value

        user_ids = await self.interactions.distinct_users_for_content(
            type_value, content_id, COLLABORATIVE_SOURCE_TYPES, COLLABORATIVE_MAX_USERS
        )
        if not user_ids:
            return await self.get_popular(content_type, limit, exclude_ids=[content_id])

        counts = await self.interactions.count_grouped_by_content(
            type_value,
            limit * 2,
            user_ids=user_ids,
            exclude_content_ids=[content_id],
            interaction_types=COLLABORATIVE_TARGET_TYPES,
        )
        if not counts:
            return await self.get_popular(content_type, limit, exclude_ids=[content_id])

        return await self._hydrate_counted(content_type, counts, limit)

    async def get_frequently_bought_together(
        self, product_id: str, limit: int
    ) -> List[RecommendationItem]:
        """
        Products purchased by the same user or session within the co-occurrence
        window around each purchase of ``product_id``.
        """
        product_type = ContentType.PRODUCT.value
        purchase_type = InteractionType.PURCHASE.value

        purchases = await self.interactions.purchases_of(
            product_type, product_id, purchase_type, BOUGHT_TOGETHER_MAX_PURCHASES
        )
        if not purchases:
            return await self._same_category_products(product_id, limit)

        window = timedelta(minutes=BOUGHT_TOGETHER_WINDOW_MINUTES)
        windows = [
            (user_id, session_id, purchased_at - window, purchased_at + window)
            for user_id, session_id, purchased_at in purchases
        ]
        co_purchased = await self.interactions.co_purchased_ids(
            product_type, product_id, purchase_type, windows
        )
        if not co_purchased:
            return await self._same_category_products(product_id, limit)

        counts = Counter(co_purchased).most_common()
        return await self._hydrate_counted(
            ContentType.PRODUCT,
            counts[:limit],
            limit,
            max_count=counts[0][1],
            extra_metadata={"algorithm": "frequently_bought_together"},
        )

    async def _same_category_products(
        self, product_id: str, limit: int
    ) -> List[RecommendationItem]:
        product = await self.content.get(ContentType.PRODUCT, product_id)
        conditions = []
        if product is not None and product.category_id:
            conditions.append(Product.category_id == product.category_id)

        rows = await self.content.find_recent(
            ContentType.PRODUCT, limit, exclude_ids=[product_id], any_of=conditions
        )
        return self._rank_decayed(ContentType.PRODUCT, rows)

    async def get_similar_users(
        self, user_id: str, content_type: ContentType, limit: int
    ) -> List[RecommendationItem]:
        """Content touched by users who share interactions with ``user_id``."""
        type_value = ContentType(content_type).value

        history = await self.interactions.user_content_ids(
            user_id, type_value, limit=SIMILAR_USERS_HISTORY_LIMIT
        )
        if not history:
            return await self.get_popular(content_type, limit)

        seen_ids = list(dict.fromkeys(history))
        similar_users = await self.interactions.count_grouped_by_user(
            type_value, seen_ids, user_id, SIMILAR_USERS_MAX_USERS
        )
        if not similar_users:
            return await self.get_popular(content_type, limit)

        counts = await self.interactions.count_grouped_by_content(
            type_value,
            limit * 2,
            user_ids=[similar_user for similar_user, _ in similar_users],
            exclude_content_ids=seen_ids,
        )
        if not counts:
            return await self.get_popular(content_type, limit, exclude_ids=seen_ids)

        return await self._hydrate_counted(
            content_type,
            counts,
            limit,
            extra_metadata={"algorithm": "similar_users"},
        )

    # ------------------------------------------------------------------
    # Scoring helpers
    # ------------------------------------------------------------------

    def _rank_decayed(
        self, content_type: ContentType, rows: Sequence[Any]
    ) -> List[RecommendationItem]:
        return [
            self.content.to_item(content_type, row, rank_decay_score(index))
            for index, row in enumerate(rows)
        ]

    async def _hydrate_counted(
        self,
        content_type: ContentType,
        counts: Sequence[Tuple[str, int]],
        limit: int,
        max_count: Optional[int] = None,
        extra_metadata: Optional[Dict[str, Any]] = None,
    ) -> List[RecommendationItem]:
        """
        Load content for (content_id, count) pairs and score them count / max_count.

        Keeps the order of ``counts``; ids without visible content are dropped.
        """
        rows = await self.content.find_by_ids(
            content_type, [content_id for content_id, _ in counts]
        )
        max_count = max_count or max((count for _, count in counts), default=1) or 1

        items: List[RecommendationItem] = []
        for content_id, count in counts:
            row = rows.get(content_id)
            if row is None:
                continue
            item = self.content.to_item(content_type, row, count / max_count)
            if extra_metadata:
                item.metadata = {**item.metadata, **extra_metadata}
            items.append(item)
            if len(items) >= limit:
                break
        return items

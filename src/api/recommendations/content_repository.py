"""
Read access to the content store (posts, pages, products, courses).

Each content type is described once by a ``ContentSource``: its model, the status
that makes it visible, the column that defines "most recent", and how a row maps
onto a RecommendationItem.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy import desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.recommendations.models import RecommendationItem
from src.config.constants import EXCERPT_LENGTH, ContentStatus, ContentType
from src.database.connection import AsyncSessionLocal
from src.database.models.course import Course
from src.database.models.page import Page
from src.database.models.post import Post
from src.database.models.product import Product


def _truncate(text: Optional[str]) -> Optional[str]:
    return text[:EXCERPT_LENGTH] if text else None


def _price(value) -> Optional[float]:
    return float(value) if value is not None else None


def _post_item(post: Post, score: float) -> RecommendationItem:
    return RecommendationItem(
        id=post.id,
        type=ContentType.POST.value,
        title=post.title,
        slug=post.slug,
        excerpt=post.excerpt or None,
        image=post.featured_image or None,
        score=score,
        metadata={"author": post.author_name},
    )


def _page_item(page: Page, score: float) -> RecommendationItem:
    return RecommendationItem(
        id=page.id,
        type=ContentType.PAGE.value,
        title=page.title,
        slug=page.slug,
        image=page.featured_image or None,
        score=score,
    )


def _product_item(product: Product, score: float) -> RecommendationItem:
    images = product.images if isinstance(product.images, list) else []
    return RecommendationItem(
        id=product.id,
        type=ContentType.PRODUCT.value,
        title=product.name,
        slug=product.slug,
        excerpt=_truncate(product.description),
        image=str(images[0]) if images else None,
        score=score,
        metadata={
            "price": _price(product.price),
            "salePrice": _price(product.sale_price),
            "category": product.category_name,
        },
    )


def _course_item(course: Course, score: float) -> RecommendationItem:
    return RecommendationItem(
        id=course.id,
        type=ContentType.COURSE.value,
        title=course.title,
        slug=course.slug,
        excerpt=_truncate(course.description),
        image=course.featured_image or None,
        score=score,
        metadata={
            "price": _price(course.price_amount),
            "category": course.category,
            "level": course.level,
            "instructor": course.instructor_name,
        },
    )


@dataclass(frozen=True)
class ContentSource:
    model: Any
    visible_status: ContentStatus
    recency_column: Any
    to_item: Callable[[Any, float], RecommendationItem]


CONTENT_SOURCES: Dict[ContentType, ContentSource] = {
    ContentType.POST: ContentSource(
        Post, ContentStatus.PUBLISHED, Post.published_at, _post_item
    ),
    ContentType.PAGE: ContentSource(
        Page, ContentStatus.PUBLISHED, Page.updated_at, _page_item
    ),
    ContentType.PRODUCT: ContentSource(
        Product, ContentStatus.ACTIVE, Product.created_at, _product_item
    ),
    ContentType.COURSE: ContentSource(
        Course, ContentStatus.PUBLISHED, Course.created_at, _course_item
    ),
}


class ContentRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self._session_factory = session_factory

    @staticmethod
    def source_for(content_type: ContentType) -> ContentSource:
        return CONTENT_SOURCES[ContentType(content_type)]

    def to_item(self, content_type: ContentType, row: Any, score: float) -> RecommendationItem:
        return self.source_for(content_type).to_item(row, score)

    async def get(self, content_type: ContentType, content_id: str) -> Optional[Any]:
        """Fetch a single content row regardless of status."""
        source = self.source_for(content_type)
        async with self._session_factory() as session:
            return await session.get(source.model, content_id)

    async def find_recent(
        self,
        content_type: ContentType,
        limit: int,
        exclude_ids: Sequence[str] = (),
        any_of: Sequence[Any] = (),
    ) -> List[Any]:
        """
        Visible content, most recent first.

        Args:
            content_type: Content type to query
            limit: Maximum number of rows
            exclude_ids: Ids never returned
            any_of: Optional conditions; a row matches if any one of them holds
        """
        if limit <= 0:
            return []

        source = self.source_for(content_type)
        model = source.model
        async with self._session_factory() as session:
            query = select(model).where(model.status == source.visible_status.value)
            if exclude_ids:
                query = query.where(model.id.not_in(list(exclude_ids)))
            if any_of:
                query = query.where(or_(*any_of))
            query = query.order_by(
                desc(source.recency_column).nulls_last(), desc(model.id)
            ).limit(limit)

            result = await session.execute(query)
            return list(result.scalars().all())

    async def find_by_ids(
        self, content_type: ContentType, content_ids: Sequence[str]
    ) -> Dict[str, Any]:
        """Visible content rows keyed by id; missing or hidden ids are absent."""
        if not content_ids:
            return {}

        source = self.source_for(content_type)
        model = source.model
        async with self._session_factory() as session:
            result = await session.execute(
                select(model).where(
                    model.id.in_(list(content_ids)),
                    model.status == source.visible_status.value,
                )
            )
            return {row.id: row for row in result.scalars().all()}

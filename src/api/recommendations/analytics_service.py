from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.recommendations.content_repository import ContentRepository
from src.api.recommendations.models import (
    ClickThroughRatesSchema,
    ConversionMetricsSchema,
    DailyCountSchema,
    DailyStatsSchema,
    RecommendationAnalyticsSchema,
    TopPerformingItemSchema,
    TopPerformingSchema,
)
from src.config.constants import (
    ANALYTICS_PERIOD_DAYS,
    AnalyticsPeriod,
    ContentType,
    InteractionType,
)
from src.database.connection import AsyncSessionLocal
from src.database.models.recommendation_click import RecommendationClick
from src.database.models.user_interaction import UserInteraction
from src.shared.utils import get_logger, utc_now


def _percentage(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


def _daily_counts(timestamps: Iterable[datetime]) -> List[DailyCountSchema]:
    """Count timestamps per UTC calendar date, oldest date first."""
    counts: Counter = Counter()
    for timestamp in timestamps:
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(timezone.utc)
        counts[timestamp.date().isoformat()] += 1
    return [DailyCountSchema(date=day, count=counts[day]) for day in sorted(counts)]


class RecommendationAnalyticsService:
    """Click and interaction reporting over a trailing period."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        content: Optional[ContentRepository] = None,
    ):
        self.logger = get_logger(__name__)
        self._session_factory = session_factory
        self.content = content or ContentRepository(session_factory)

    @staticmethod
    def get_start_date(period: AnalyticsPeriod, now: Optional[datetime] = None) -> datetime:
        days = ANALYTICS_PERIOD_DAYS[AnalyticsPeriod(period)]
        return (now or utc_now()) - timedelta(days=days)

    @staticmethod
    async def _grouped_counts(session: AsyncSession, column, *conditions) -> Dict[str, int]:
        result = await session.execute(
            select(column, func.count()).where(*conditions).group_by(column)
        )
        return {row[0]: row[1] for row in result.fetchall()}

    @staticmethod
    async def _count(session: AsyncSession, model, *conditions) -> int:
        result = await session.execute(
            select(func.count(model.id)).where(*conditions)
        )
        return result.scalar() or 0

    async def get_analytics(
        self,
        period: AnalyticsPeriod = AnalyticsPeriod.WEEK,
        content_type: Optional[ContentType] = None,
    ) -> RecommendationAnalyticsSchema:
        """Click and interaction totals for the period, optionally for one content type."""
        start_date = self.get_start_date(period)

        click_conditions = [RecommendationClick.created_at >= start_date]
        interaction_conditions = [UserInteraction.created_at >= start_date]
        if content_type:
            click_conditions.append(RecommendationClick.clicked_type == content_type.value)
            interaction_conditions.append(
                UserInteraction.content_type == content_type.value
            )

        async with self._session_factory() as session:
            total_clicks = await self._count(session, RecommendationClick, *click_conditions)
            clicks_by_type = await self._grouped_counts(
                session, RecommendationClick.recommendation_type, *click_conditions
            )
            clicks_by_content = await self._grouped_counts(
                session, RecommendationClick.clicked_type, *click_conditions
            )
            total_interactions = await self._count(
                session, UserInteraction, *interaction_conditions
            )
            interactions_by_type = await self._grouped_counts(
                session, UserInteraction.interaction_type, *interaction_conditions
            )

        return RecommendationAnalyticsSchema(
            period=AnalyticsPeriod(period).value,
            start_date=start_date,
            total_clicks=total_clicks,
            total_interactions=total_interactions,
            clicks_by_recommendation_type=clicks_by_type,
            clicks_by_content_type=clicks_by_content,
            interactions_by_type=interactions_by_type,
        )

    async def get_click_through_rates(
        self, period: AnalyticsPeriod = AnalyticsPeriod.WEEK
    ) -> ClickThroughRatesSchema:
        """
        Overall CTR as recommendation clicks per tracked view, in percent.

        Impressions are not tracked per recommendation type, so the per-type
        breakdown reports raw click counts.
        """
        start_date = self.get_start_date(period)

        async with self._session_factory() as session:
            impressions = await self._count(
                session,
                UserInteraction,
                UserInteraction.created_at >= start_date,
                UserInteraction.interaction_type == InteractionType.VIEW.value,
            )
            clicks = await self._count(
                session, RecommendationClick, RecommendationClick.created_at >= start_date
            )
            clicks_by_type = await self._grouped_counts(
                session,
                RecommendationClick.recommendation_type,
                RecommendationClick.created_at >= start_date,
            )

        return ClickThroughRatesSchema(
            period=AnalyticsPeriod(period).value,
            total_impressions=impressions,
            total_clicks=clicks,
            overall_ctr=_percentage(clicks, impressions),
            clicks_by_type=clicks_by_type,
        )

    async def get_top_performing(
        self, period: AnalyticsPeriod = AnalyticsPeriod.WEEK, limit: int = 10
    ) -> TopPerformingSchema:
        """Most clicked recommended items, with their title and slug when still present."""
        start_date = self.get_start_date(period)

        async with self._session_factory() as session:
            click_count = func.count(RecommendationClick.id).label("clicks")
            result = await session.execute(
                select(
                    RecommendationClick.clicked_type,
                    RecommendationClick.clicked_id,
                    click_count,
                )
                .where(RecommendationClick.created_at >= start_date)
                .group_by(RecommendationClick.clicked_type, RecommendationClick.clicked_id)
                .order_by(desc(click_count))
                .limit(limit)
            )
            top_clicked = result.fetchall()

        top_performing = []
        for clicked_type, clicked_id, clicks in top_clicked:
            item = TopPerformingItemSchema(
                content_type=clicked_type, content_id=clicked_id, clicks=clicks
            )
            try:
                content_type = ContentType(clicked_type)
            except ValueError:
                self.logger.warning(f"Unknown clicked content type: {clicked_type}")
                content_type = None

            if content_type is not None:
                row = await self.content.get(content_type, clicked_id)
                if row is not None:
                    details = self.content.to_item(content_type, row, 0.0)
                    item.title = details.title
                    item.slug = details.slug

            top_performing.append(item)

        return TopPerformingSchema(
            period=AnalyticsPeriod(period).value, top_performing=top_performing
        )

    async def get_daily_stats(
        self,
        period: AnalyticsPeriod = AnalyticsPeriod.WEEK,
        content_type: Optional[ContentType] = None,
    ) -> DailyStatsSchema:
        """Clicks and interactions per UTC date."""
        start_date = self.get_start_date(period)

        click_query = select(RecommendationClick.created_at).where(
            RecommendationClick.created_at >= start_date
        )
        interaction_query = select(UserInteraction.created_at).where(
            UserInteraction.created_at >= start_date
        )
        if content_type:
            click_query = click_query.where(
                RecommendationClick.clicked_type == content_type.value
            )
            interaction_query = interaction_query.where(
                UserInteraction.content_type == content_type.value
            )

        async with self._session_factory() as session:
            click_times = (await session.execute(click_query)).scalars().all()
            interaction_times = (await session.execute(interaction_query)).scalars().all()

        return DailyStatsSchema(
            period=AnalyticsPeriod(period).value,
            start_date=start_date,
            click_stats=_daily_counts(click_times),
            interaction_stats=_daily_counts(interaction_times),
        )

    async def get_conversion_metrics(
        self, period: AnalyticsPeriod = AnalyticsPeriod.WEEK
    ) -> ConversionMetricsSchema:
        """
        Purchases attributed to recommendations.

        A purchase counts as attributed when its metadata carries
        ``fromRecommendation: true``.
        """
        start_date = self.get_start_date(period)
        purchase_conditions = [
            UserInteraction.created_at >= start_date,
            UserInteraction.interaction_type == InteractionType.PURCHASE.value,
        ]

        async with self._session_factory() as session:
            recommendation_purchases = await self._count(
                session,
                UserInteraction,
                *purchase_conditions,
                UserInteraction.extra_data["fromRecommendation"].as_boolean(),
            )
            total_purchases = await self._count(
                session, UserInteraction, *purchase_conditions
            )
            recommendation_clicks = await self._count(
                session, RecommendationClick, RecommendationClick.created_at >= start_date
            )

        return ConversionMetricsSchema(
            period=AnalyticsPeriod(period).value,
            recommendation_purchases=recommendation_purchases,
            total_purchases=total_purchases,
            recommendation_clicks=recommendation_clicks,
            conversion_rate=_percentage(recommendation_purchases, recommendation_clicks),
            recommendation_contribution=_percentage(
                recommendation_purchases, total_purchases
            ),
        )

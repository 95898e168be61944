from datetime import datetime, timezone

import pytest

from src.api.recommendations.analytics_service import RecommendationAnalyticsService
from src.config.constants import AnalyticsPeriod, ContentType
from tests.factories import make_click, make_interaction, make_post, make_product

DAY = 60 * 24


def test_start_date_per_period():
    now = datetime(2026, 6, 30, tzinfo=timezone.utc)

    assert RecommendationAnalyticsService.get_start_date(AnalyticsPeriod.DAY, now).day == 29
    assert RecommendationAnalyticsService.get_start_date("month", now) == datetime(
        2026, 5, 31, tzinfo=timezone.utc
    )
    assert RecommendationAnalyticsService.get_start_date(AnalyticsPeriod.YEAR, now).year == 2025


@pytest.mark.asyncio
class TestRecommendationAnalytics:
    async def test_totals_and_breakdowns(self, seed, analytics_service):
        await seed(
            make_click("p1", recommendation_type="related"),
            make_click("p2", recommendation_type="related"),
            make_click("x1", clicked_type="product", recommendation_type="trending"),
            make_click("p3", age_minutes=DAY * 10),
            make_interaction("p1"),
            make_interaction("p1", interaction_type="click"),
            make_interaction("x1", content_type="product", interaction_type="purchase"),
        )

        analytics = await analytics_service.get_analytics(AnalyticsPeriod.WEEK)
        posts_only = await analytics_service.get_analytics(AnalyticsPeriod.WEEK, ContentType.POST)

        assert analytics.total_clicks == 3
        assert analytics.clicks_by_recommendation_type == {"related": 2, "trending": 1}
        assert analytics.clicks_by_content_type == {"post": 2, "product": 1}
        assert analytics.total_interactions == 3
        assert analytics.interactions_by_type == {"view": 1, "click": 1, "purchase": 1}
        assert posts_only.total_clicks == 2
        assert posts_only.total_interactions == 2

    async def test_click_through_rate(self, seed, analytics_service):
        await seed(
            *[make_interaction(f"p{index}") for index in range(4)],
            make_click("p1"),
        )

        rates = await analytics_service.get_click_through_rates(AnalyticsPeriod.WEEK)

        assert rates.total_impressions == 4
        assert rates.total_clicks == 1
        assert rates.overall_ctr == 25.0
        assert rates.clicks_by_type == {"related": 1}

    async def test_click_through_rate_without_impressions(self, analytics_service):
        rates = await analytics_service.get_click_through_rates(AnalyticsPeriod.DAY)

        assert rates.overall_ctr == 0.0

    async def test_top_performing_enriched_with_content(self, seed, analytics_service):
        await seed(
            make_post("p1"),
            make_product("x1"),
            make_click("p1"),
            make_click("p1"),
            make_click("x1", clicked_type="product"),
            make_click("gone"),
        )

        top = await analytics_service.get_top_performing(AnalyticsPeriod.WEEK, limit=2)

        assert top.top_performing[0].content_id == "p1"
        assert top.top_performing[0].clicks == 2
        assert top.top_performing[0].title == "Post p1"
        assert top.top_performing[0].slug == "post-p1"
        assert len(top.top_performing) == 2

    async def test_daily_stats_grouped_by_date(self, seed, analytics_service):
        await seed(
            make_click("p1", age_minutes=DAY * 2 + 5),
            make_click("p1"),
            make_interaction("p1"),
            make_interaction("p1", age_minutes=5),
        )

        stats = await analytics_service.get_daily_stats(AnalyticsPeriod.WEEK)

        assert sum(entry.count for entry in stats.click_stats) == 2
        assert len(stats.click_stats) == 2
        assert stats.click_stats[0].date < stats.click_stats[1].date
        assert sum(entry.count for entry in stats.interaction_stats) == 2

    async def test_conversion_metrics(self, seed, analytics_service):
        await seed(
            make_interaction(
                "x1", content_type="product", interaction_type="purchase",
                metadata={"fromRecommendation": True},
            ),
            make_interaction("x2", content_type="product", interaction_type="purchase"),
            make_interaction(
                "x3", content_type="product", interaction_type="purchase",
                metadata={"fromRecommendation": False},
            ),
            make_interaction("x4", content_type="product", interaction_type="purchase"),
            make_click("x1", clicked_type="product"),
            make_click("x2", clicked_type="product"),
        )

        metrics = await analytics_service.get_conversion_metrics(AnalyticsPeriod.WEEK)

        assert metrics.recommendation_purchases == 1
        assert metrics.total_purchases == 4
        assert metrics.recommendation_clicks == 2
        assert metrics.conversion_rate == 50.0
        assert metrics.recommendation_contribution == 25.0

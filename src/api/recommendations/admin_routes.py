from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.api.interactions.service import TrackingService
from src.api.recommendations.analytics_service import RecommendationAnalyticsService
from src.api.recommendations.models import (
    CacheClearResultSchema,
    ClickThroughRatesSchema,
    ConversionMetricsSchema,
    DailyStatsSchema,
    RecommendationAnalyticsSchema,
    RetentionCleanupResultSchema,
    TopPerformingSchema,
)
from src.api.recommendations.service import RecommendationService
from src.config.constants import AnalyticsPeriod, ContentType, UserRole
from src.config.settings import settings
from src.dependencies.auth import RoleChecker
from src.shared.utils import get_logger

logger = get_logger(__name__)

recommendations_admin_router = APIRouter(
    prefix="/admin/recommendations",
    tags=["Recommendations Admin"],
    dependencies=[Depends(RoleChecker([UserRole.ADMIN]))],
)
analytics_service = RecommendationAnalyticsService()
recommendation_service = RecommendationService()
tracking_service = TrackingService()

PERIOD_QUERY = Query(AnalyticsPeriod.WEEK, description="Reporting period")


# ---------- Analytics ----------


@recommendations_admin_router.get(
    "/analytics",
    summary="Get recommendation click and interaction totals",
    response_model=RecommendationAnalyticsSchema,
)
async def get_analytics(
    period: AnalyticsPeriod = PERIOD_QUERY,
    content_type: Optional[ContentType] = Query(None, alias="contentType"),
):
    return await analytics_service.get_analytics(period, content_type)


@recommendations_admin_router.get(
    "/analytics/ctr",
    summary="Get recommendation click-through rates",
    response_model=ClickThroughRatesSchema,
)
async def get_click_through_rates(period: AnalyticsPeriod = PERIOD_QUERY):
    return await analytics_service.get_click_through_rates(period)


@recommendations_admin_router.get(
    "/analytics/top",
    summary="Get the most clicked recommendations",
    response_model=TopPerformingSchema,
)
async def get_top_performing(
    period: AnalyticsPeriod = PERIOD_QUERY,
    limit: int = Query(10, ge=1, le=100),
):
    return await analytics_service.get_top_performing(period, limit)


@recommendations_admin_router.get(
    "/analytics/daily",
    summary="Get clicks and interactions per day",
    response_model=DailyStatsSchema,
)
async def get_daily_stats(
    period: AnalyticsPeriod = PERIOD_QUERY,
    content_type: Optional[ContentType] = Query(None, alias="contentType"),
):
    return await analytics_service.get_daily_stats(period, content_type)


@recommendations_admin_router.get(
    "/analytics/conversions",
    summary="Get purchases attributed to recommendations",
    response_model=ConversionMetricsSchema,
)
async def get_conversion_metrics(period: AnalyticsPeriod = PERIOD_QUERY):
    return await analytics_service.get_conversion_metrics(period)


# ---------- Cache ----------


@recommendations_admin_router.post(
    "/cache/clear",
    summary="Clear cached recommendations",
    description="Without filters every cached entry is removed.",
    response_model=CacheClearResultSchema,
)
async def clear_cache(
    source_type: Optional[str] = Query(None, alias="sourceType"),
    source_id: Optional[str] = Query(None, alias="sourceId"),
):
    cleared = await recommendation_service.clear_cache(source_type, source_id)
    return CacheClearResultSchema(success=True, cleared=cleared)


@recommendations_admin_router.post(
    "/cache/cleanup",
    summary="Remove expired cache entries",
    response_model=CacheClearResultSchema,
)
async def clear_expired_cache():
    cleared = await recommendation_service.clear_expired_cache()
    return CacheClearResultSchema(success=True, cleared=cleared)


# ---------- Maintenance ----------


@recommendations_admin_router.post(
    "/maintenance/cleanup",
    summary="Delete old interactions and recommendation clicks",
    description="Purchases and enrollments are kept regardless of age.",
    response_model=RetentionCleanupResultSchema,
)
async def cleanup_old_data(
    interaction_days: int = Query(
        settings.INTERACTION_RETENTION_DAYS, ge=1, alias="interactionDays"
    ),
    click_days: int = Query(settings.CLICK_RETENTION_DAYS, ge=1, alias="clickDays"),
):
    interactions_removed = await tracking_service.cleanup_old_interactions(
        interaction_days
    )
    clicks_removed = await tracking_service.cleanup_old_clicks(click_days)
    logger.info(
        f"Retention cleanup removed {interactions_removed} interactions and {clicks_removed} clicks"
    )
    return RetentionCleanupResultSchema(
        success=True,
        interactions_removed=interactions_removed,
        clicks_removed=clicks_removed,
    )

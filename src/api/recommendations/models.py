from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from src.shared.schemas import CamelModel


class RecommendationItem(CamelModel):
    """A scored candidate in a recommendation list."""

    id: str = Field(..., examples=["post_456"])
    type: str = Field(..., examples=["post"])
    title: str = Field(..., examples=["Ten tips for better sourdough"])
    slug: str = Field(..., examples=["ten-tips-for-better-sourdough"])
    excerpt: Optional[str] = None
    image: Optional[str] = None
    score: float = Field(..., examples=[0.9])
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RecommendationResult(CamelModel):
    items: List[RecommendationItem] = Field(default_factory=list)
    algorithm: str = Field(..., examples=["related"])
    source_type: str = Field(..., examples=["post"])
    source_id: str = Field(..., examples=["post_123"])
    cached: bool = False


class CacheClearResultSchema(CamelModel):
    success: bool
    cleared: int


class RetentionCleanupResultSchema(CamelModel):
    success: bool
    interactions_removed: int
    clicks_removed: int


# ---------- Analytics ----------


class RecommendationAnalyticsSchema(CamelModel):
    period: str
    start_date: datetime
    total_clicks: int
    total_interactions: int
    clicks_by_recommendation_type: Dict[str, int]
    clicks_by_content_type: Dict[str, int]
    interactions_by_type: Dict[str, int]


class ClickThroughRatesSchema(CamelModel):
    period: str
    total_impressions: int
    total_clicks: int
    overall_ctr: float
    clicks_by_type: Dict[str, int]


class TopPerformingItemSchema(CamelModel):
    content_type: str
    content_id: str
    clicks: int
    title: Optional[str] = None
    slug: Optional[str] = None


class TopPerformingSchema(CamelModel):
    period: str
    top_performing: List[TopPerformingItemSchema]


class DailyCountSchema(CamelModel):
    date: str
    count: int


class DailyStatsSchema(CamelModel):
    period: str
    start_date: datetime
    click_stats: List[DailyCountSchema]
    interaction_stats: List[DailyCountSchema]


class ConversionMetricsSchema(CamelModel):
    period: str
    recommendation_purchases: int
    total_purchases: int
    recommendation_clicks: int
    conversion_rate: float
    recommendation_contribution: float

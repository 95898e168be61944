from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from src.config.constants import ContentType, InteractionType, RecommendationAlgorithm
from src.shared.schemas import CamelModel


class TrackInteractionSchema(CamelModel):
    """Body of POST /recommendations/track"""

    content_type: ContentType = Field(..., examples=["post"])
    content_id: str = Field(..., min_length=1, max_length=255, examples=["post_123"])
    interaction_type: InteractionType = Field(..., examples=["view"])
    user_id: Optional[str] = Field(None, max_length=255)
    session_id: Optional[str] = Field(None, max_length=255)
    metadata: Optional[Dict[str, Any]] = Field(
        None, examples=[{"referrer": "homepage"}]
    )


class TrackRecommendationClickSchema(CamelModel):
    """Body of POST /recommendations/track-click"""

    source_type: str = Field(..., min_length=1, max_length=50, examples=["post"])
    source_id: str = Field(..., min_length=1, max_length=255, examples=["post_123"])
    recommendation_type: RecommendationAlgorithm = Field(..., examples=["related"])
    clicked_type: ContentType = Field(..., examples=["post"])
    clicked_id: str = Field(..., min_length=1, max_length=255, examples=["post_456"])
    position: Optional[int] = Field(None, ge=0, examples=[2])
    user_id: Optional[str] = Field(None, max_length=255)
    session_id: Optional[str] = Field(None, max_length=255)


class TrackResultSchema(CamelModel):
    success: bool


class InteractionSchema(CamelModel):
    id: int
    content_type: str
    content_id: str
    interaction_type: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias="extra_data", serialization_alias="metadata"
    )
    created_at: datetime

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Path, Query

from src.api.auth.models import DecodedToken
from src.api.interactions.models import (
    TrackInteractionSchema,
    TrackRecommendationClickSchema,
    TrackResultSchema,
)
from src.api.interactions.service import TrackingService
from src.api.recommendations.models import RecommendationResult
from src.api.recommendations.service import RecommendationService
from src.config.constants import DEFAULT_TRENDING_DAYS, ContentType
from src.config.settings import settings
from src.dependencies.auth import get_optional_user

recommendations_router = APIRouter(prefix="/recommendations", tags=["Recommendations"])
recommendation_service = RecommendationService()
tracking_service = TrackingService()

OptionalUser = Annotated[Optional[DecodedToken], Depends(get_optional_user)]


def limit_query(default: int = settings.RECOMMENDATION_DEFAULT_LIMIT):
    return Query(
        default,
        ge=1,
        le=settings.RECOMMENDATION_MAX_LIMIT,
        description="Maximum number of recommendations to return",
    )


def _caller_id(user: Optional[DecodedToken]) -> Optional[str]:
    return user.uid if user else None


# ---------- Related content ----------


@recommendations_router.get(
    "/posts/{post_id}",
    summary="Get posts related to a post",
    response_model=RecommendationResult,
)
async def get_related_posts(
    user: OptionalUser,
    post_id: str = Path(..., min_length=1),
    limit: int = limit_query(),
):
    return await recommendation_service.get_related_posts(
        post_id, user_id=_caller_id(user), limit=limit
    )


@recommendations_router.get(
    "/pages/{page_id}",
    summary="Get pages related to a page",
    response_model=RecommendationResult,
)
async def get_related_pages(
    page_id: str = Path(..., min_length=1),
    limit: int = limit_query(),
):
    return await recommendation_service.get_related_pages(page_id, limit=limit)


@recommendations_router.get(
    "/products/{product_id}",
    summary="Get products related to a product",
    response_model=RecommendationResult,
)
async def get_related_products(
    user: OptionalUser,
    product_id: str = Path(..., min_length=1),
    limit: int = limit_query(),
):
    return await recommendation_service.get_related_products(
        product_id, user_id=_caller_id(user), limit=limit
    )


@recommendations_router.get(
    "/courses/{course_id}",
    summary="Get courses related to a course",
    response_model=RecommendationResult,
)
async def get_related_courses(
    course_id: str = Path(..., min_length=1),
    limit: int = limit_query(),
):
    return await recommendation_service.get_related_courses(course_id, limit=limit)


# ---------- Global and per-user lists ----------


@recommendations_router.get(
    "/trending/{content_type}",
    summary="Get trending content",
    response_model=RecommendationResult,
)
async def get_trending(
    content_type: ContentType,
    limit: int = limit_query(),
    days: int = Query(
        DEFAULT_TRENDING_DAYS, ge=1, le=365, description="Trending window in days"
    ),
):
    return await recommendation_service.get_trending(
        content_type, limit=limit, timeframe_days=days
    )


@recommendations_router.get(
    "/popular/{content_type}",
    summary="Get all-time popular content",
    response_model=RecommendationResult,
)
async def get_popular(content_type: ContentType, limit: int = limit_query()):
    return await recommendation_service.get_popular(content_type, limit=limit)


@recommendations_router.get(
    "/personalized/{content_type}",
    summary="Get personalized content for the caller",
    description="Anonymous callers receive the popular list.",
    response_model=RecommendationResult,
)
async def get_personalized(
    user: OptionalUser,
    content_type: ContentType,
    limit: int = limit_query(),
):
    if not user:
        return await recommendation_service.get_popular(content_type, limit=limit)
    return await recommendation_service.get_personalized(
        user.uid, content_type, limit=limit
    )


@recommendations_router.get(
    "/also-viewed/{content_type}/{content_id}",
    summary="Get content that viewers of an item also viewed",
    response_model=RecommendationResult,
)
async def get_also_viewed(
    content_type: ContentType,
    content_id: str = Path(..., min_length=1),
    limit: int = limit_query(),
):
    return await recommendation_service.get_collaborative(
        content_type, content_id, limit=limit
    )


@recommendations_router.get(
    "/bought-together/{product_id}",
    summary="Get products frequently bought together with a product",
    response_model=RecommendationResult,
)
async def get_bought_together(
    product_id: str = Path(..., min_length=1),
    limit: int = limit_query(settings.RECOMMENDATION_BOUGHT_TOGETHER_LIMIT),
):
    return await recommendation_service.get_frequently_bought_together(
        product_id, limit=limit
    )


@recommendations_router.get(
    "/similar-users/{content_type}",
    summary="Get content liked by users similar to the caller",
    description="Anonymous callers receive the popular list.",
    response_model=RecommendationResult,
)
async def get_similar_users(
    user: OptionalUser,
    content_type: ContentType,
    limit: int = limit_query(),
):
    if not user:
        return await recommendation_service.get_popular(content_type, limit=limit)
    return await recommendation_service.get_similar_users(
        user.uid, content_type, limit=limit
    )


# ---------- Tracking ----------


@recommendations_router.post(
    "/track",
    summary="Track a content interaction",
    response_model=TrackResultSchema,
)
async def track_interaction(
    payload: TrackInteractionSchema,
    user: OptionalUser,
    x_session_id: Optional[str] = Header(None),
):
    interaction = payload.model_copy(
        update={
            "user_id": _caller_id(user) or payload.user_id,
            "session_id": payload.session_id or x_session_id,
        }
    )
    return await tracking_service.track_interaction(interaction)


@recommendations_router.post(
    "/track-click",
    summary="Track a click on a recommendation",
    response_model=TrackResultSchema,
)
async def track_recommendation_click(
    payload: TrackRecommendationClickSchema,
    user: OptionalUser,
    x_session_id: Optional[str] = Header(None),
):
    click = payload.model_copy(
        update={
            "user_id": _caller_id(user) or payload.user_id,
            "session_id": payload.session_id or x_session_id,
        }
    )
    return await tracking_service.track_recommendation_click(click)

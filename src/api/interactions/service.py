from datetime import timedelta
from typing import Dict, List, Optional

from src.api.interactions.models import (
    InteractionSchema,
    TrackInteractionSchema,
    TrackRecommendationClickSchema,
    TrackResultSchema,
)
from src.api.interactions.repository import InteractionRepository
from src.config.constants import RETAINED_INTERACTION_TYPES, InteractionType
from src.config.settings import settings
from src.database.models.recommendation_click import RecommendationClick
from src.database.models.user_interaction import UserInteraction
from src.shared.error_handler import ErrorHandler, fallback_on_error
from src.shared.utils import get_logger, utc_now


def _failed(*args, **kwargs) -> TrackResultSchema:
    return TrackResultSchema(success=False)


class TrackingService:
    """
    Service for recording user interactions and recommendation clicks.

    Handles:
    - Best-effort interaction writes (a failure is logged and reported, never raised)
    - Recommendation click tracking, mirrored into the interaction log
    - Interaction counts and per-type breakdowns for analytics displays
    - Retention sweeps for old interactions and clicks
    """

    def __init__(self, repository: Optional[InteractionRepository] = None):
        self._error_handler = ErrorHandler(__name__)
        self.logger = get_logger(__name__)
        self.repository = repository or InteractionRepository()

    @fallback_on_error("track interaction", fallback=_failed)
    async def track_interaction(
        self, interaction: TrackInteractionSchema
    ) -> TrackResultSchema:
        """
        Track a user interaction with a content item.

        Args:
            interaction: Content, interaction type and optional user/session attribution

        Returns:
            success=True if the row was written
        """
        await self.repository.add_interaction(
            UserInteraction(
                content_type=interaction.content_type.value,
                content_id=interaction.content_id,
                interaction_type=interaction.interaction_type.value,
                user_id=interaction.user_id,
                session_id=interaction.session_id,
                extra_data=interaction.metadata or {},
                created_at=utc_now(),
            )
        )
        self.logger.debug(
            f"Tracked {interaction.interaction_type.value} interaction: "
            f"{interaction.content_type.value}={interaction.content_id}, user={interaction.user_id}"
        )
        return TrackResultSchema(success=True)

    @fallback_on_error("track recommendation click", fallback=_failed)
    async def track_recommendation_click(
        self, click: TrackRecommendationClickSchema
    ) -> TrackResultSchema:
        """
        Track a click on a displayed recommendation.

        The click is also written to the interaction log as a
        ``recommendation_click`` so it shows up in the general aggregates.
        """
        await self.repository.add_click(
            RecommendationClick(
                source_type=click.source_type,
                source_id=click.source_id,
                recommendation_type=click.recommendation_type.value,
                clicked_type=click.clicked_type.value,
                clicked_id=click.clicked_id,
                position=click.position,
                user_id=click.user_id,
                session_id=click.session_id,
                created_at=utc_now(),
            )
        )

        mirrored = await self.track_interaction(
            TrackInteractionSchema(
                content_type=click.clicked_type,
                content_id=click.clicked_id,
                interaction_type=InteractionType.RECOMMENDATION_CLICK,
                user_id=click.user_id,
                session_id=click.session_id,
                metadata={
                    "sourceType": click.source_type,
                    "sourceId": click.source_id,
                    "recommendationType": click.recommendation_type.value,
                    "position": click.position,
                },
            )
        )
        if not mirrored.success:
            self.logger.warning(
                f"Recommendation click on {click.clicked_type.value}={click.clicked_id} "
                "was stored but not mirrored into the interaction log"
            )

        return TrackResultSchema(success=True)

    @fallback_on_error("get user interactions", fallback=lambda *a, **k: [])
    async def get_user_interactions(
        self, user_id: str, content_type: Optional[str] = None, limit: int = 50
    ) -> List[InteractionSchema]:
        """Most recent interactions of a user, newest first."""
        rows = await self.repository.list_user_interactions(user_id, content_type, limit)
        return [InteractionSchema.model_validate(row) for row in rows]

    @fallback_on_error("get interaction count", fallback=lambda *a, **k: 0)
    async def get_interaction_count(self, content_type: str, content_id: str) -> int:
        return await self.repository.count_for_content(content_type, content_id)

    @fallback_on_error("get interaction breakdown", fallback=lambda *a, **k: {})
    async def get_interaction_breakdown(
        self, content_type: str, content_id: str
    ) -> Dict[str, int]:
        """Interaction counts for one content item keyed by interaction type."""
        return await self.repository.breakdown_for_content(content_type, content_id)

    async def cleanup_old_interactions(
        self, days_to_keep: int = settings.INTERACTION_RETENTION_DAYS
    ) -> int:
        """
        Delete interactions older than the cutoff.

        Purchases and enrollments are kept regardless of age.

        Returns:
            Number of rows removed
        """
        cutoff = utc_now() - timedelta(days=days_to_keep)
        removed = await self.repository.delete_interactions_before(
            cutoff, keep_types=RETAINED_INTERACTION_TYPES
        )
        self.logger.info(f"Cleaned up {removed} old interactions")
        return removed

    async def cleanup_old_clicks(
        self, days_to_keep: int = settings.CLICK_RETENTION_DAYS
    ) -> int:
        """Delete recommendation clicks older than the cutoff."""
        cutoff = utc_now() - timedelta(days=days_to_keep)
        removed = await self.repository.delete_clicks_before(cutoff)
        self.logger.info(f"Cleaned up {removed} old recommendation clicks")
        return removed


from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from src.api.interactions.models import TrackInteractionSchema, TrackRecommendationClickSchema
from src.api.interactions.repository import InteractionRepository
from src.api.interactions.service import TrackingService
from src.config.constants import ContentType, InteractionType, RecommendationAlgorithm
from src.database.models import RecommendationClick, UserInteraction
from tests.factories import make_click, make_interaction


@pytest.mark.asyncio
class TestTracking:
    async def test_track_interaction_writes_row(self, tracking_service, session_factory):
        result = await tracking_service.track_interaction(
            TrackInteractionSchema(
                content_type=ContentType.POST,
                content_id="post_1",
                interaction_type=InteractionType.VIEW,
                user_id="u1",
                metadata={"referrer": "home"},
            )
        )

        assert result.success is True
        async with session_factory() as session:
            rows = (await session.execute(select(UserInteraction))).scalars().all()
        assert len(rows) == 1
        assert rows[0].content_id == "post_1"
        assert rows[0].extra_data == {"referrer": "home"}

    async def test_anonymous_interaction_is_valid(self, tracking_service):
        result = await tracking_service.track_interaction(
            TrackInteractionSchema(
                content_type="product", content_id="x", interaction_type="view"
            )
        )

        assert result.success is True

    async def test_failing_storage_reports_failure(self, failing_session_factory):
        service = TrackingService(InteractionRepository(failing_session_factory))

        result = await service.track_interaction(
            TrackInteractionSchema(
                content_type=ContentType.POST,
                content_id="post_1",
                interaction_type=InteractionType.VIEW,
            )
        )

        assert result.success is False

    async def test_click_is_mirrored_into_interaction_log(self, tracking_service, session_factory):
        result = await tracking_service.track_recommendation_click(
            TrackRecommendationClickSchema(
                source_type="post",
                source_id="post_1",
                recommendation_type=RecommendationAlgorithm.RELATED,
                clicked_type=ContentType.POST,
                clicked_id="post_2",
                position=1,
                session_id="s1",
            )
        )

        assert result.success is True
        async with session_factory() as session:
            clicks = (await session.execute(select(RecommendationClick))).scalars().all()
            interactions = (await session.execute(select(UserInteraction))).scalars().all()

        assert [(click.clicked_id, click.position) for click in clicks] == [("post_2", 1)]
        assert len(interactions) == 1
        assert interactions[0].interaction_type == "recommendation_click"
        assert interactions[0].session_id == "s1"
        assert interactions[0].extra_data == {
            "sourceType": "post",
            "sourceId": "post_1",
            "recommendationType": "related",
            "position": 1,
        }

    async def test_failing_click_storage_reports_failure(self, failing_session_factory):
        service = TrackingService(InteractionRepository(failing_session_factory))

        result = await service.track_recommendation_click(
            TrackRecommendationClickSchema(
                source_type="post",
                source_id="p1",
                recommendation_type="trending",
                clicked_type="post",
                clicked_id="p2",
            )
        )

        assert result.success is False


@pytest.mark.asyncio
class TestInteractionReads:
    async def test_user_interactions_newest_first(self, seed, tracking_service):
        await seed(
            make_interaction("old", user_id="u1", age_minutes=30),
            make_interaction("new", user_id="u1", age_minutes=1),
            make_interaction("product", content_type="product", user_id="u1", age_minutes=5),
            make_interaction("someone_else", user_id="u2"),
        )

        interactions = await tracking_service.get_user_interactions("u1")
        posts = await tracking_service.get_user_interactions("u1", content_type="post", limit=1)

        assert [i.content_id for i in interactions] == ["new", "product", "old"]
        assert [i.content_id for i in posts] == ["new"]

    async def test_count_and_breakdown(self, seed, tracking_service):
        await seed(
            make_interaction("p1"),
            make_interaction("p1"),
            make_interaction("p1", interaction_type="click"),
            make_interaction("p2"),
        )

        assert await tracking_service.get_interaction_count("post", "p1") == 3
        assert await tracking_service.get_interaction_breakdown("post", "p1") == {
            "view": 2,
            "click": 1,
        }

    async def test_reads_degrade_on_storage_failure(self, failing_session_factory):
        service = TrackingService(InteractionRepository(failing_session_factory))

        assert await service.get_user_interactions("u1") == []
        assert await service.get_interaction_count("post", "p1") == 0
        assert await service.get_interaction_breakdown("post", "p1") == {}


@pytest.mark.asyncio
class TestRetention:
    async def test_cleanup_keeps_purchases_and_enrollments(self, seed, tracking_service, session_factory):
        old = 60 * 24 * 100
        await seed(
            make_interaction("viewed", age_minutes=old),
            make_interaction("bought", content_type="product", interaction_type="purchase", age_minutes=old),
            make_interaction("enrolled", content_type="course", interaction_type="enroll", age_minutes=old),
            make_interaction("recent", age_minutes=60),
        )

        removed = await tracking_service.cleanup_old_interactions(90)

        assert removed == 1
        async with session_factory() as session:
            remaining = (await session.execute(select(UserInteraction.content_id))).scalars().all()
        assert sorted(remaining) == ["bought", "enrolled", "recent"]

    async def test_cleanup_old_clicks(self, seed, tracking_service):
        await seed(
            make_click("old", age_minutes=int(timedelta(days=31).total_seconds() // 60)),
            make_click("recent", age_minutes=5),
        )

        assert await tracking_service.cleanup_old_clicks(30) == 1

    async def test_cleanup_propagates_storage_errors(self, failing_session_factory):
        service = TrackingService(InteractionRepository(failing_session_factory))

        with pytest.raises(OperationalError):
            await service.cleanup_old_interactions(90)

from unittest import mock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from main import app
from src.api.recommendations import admin_routes, routes
from src.config.constants import UserRole
from src.database.models import UserInteraction
from tests.constants import ADMIN_UID, BASE_URL, CUSTOMER_UID
from tests.factories import make_interaction, make_post, make_product


@pytest.fixture(autouse=True)
def wire_services(monkeypatch, recommendation_service, tracking_service, analytics_service):
    """Point the routers at services backed by the per-test database."""
    monkeypatch.setattr(routes, "recommendation_service", recommendation_service)
    monkeypatch.setattr(routes, "tracking_service", tracking_service)
    monkeypatch.setattr(admin_routes, "recommendation_service", recommendation_service)
    monkeypatch.setattr(admin_routes, "tracking_service", tracking_service)
    monkeypatch.setattr(admin_routes, "analytics_service", analytics_service)


@pytest.fixture
def mock_auth():
    with mock.patch("src.dependencies.auth.auth") as patched:
        yield patched


def as_user(mock_auth, uid, role=UserRole.CUSTOMER):
    mock_auth.verify_id_token.return_value = {"uid": uid, "role": role}
    return {"Authorization": "Bearer test-token"}


@pytest_asyncio.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client:
        yield client


@pytest.mark.asyncio
class TestRecommendationsAPI:
    async def test_related_posts_shape(self, seed, client: AsyncClient):
        await seed(make_post("1", author_id="A"), make_post("2", author_id="A"))

        response = await client.get("/recommendations/posts/1", params={"limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"items", "algorithm", "sourceType", "sourceId", "cached"}
        assert data["sourceId"] == "1"
        assert data["items"][0]["id"] == "2"
        assert data["items"][0]["score"] == 1.0

    async def test_limit_is_validated(self, client: AsyncClient):
        response = await client.get("/recommendations/posts/1", params={"limit": 0})
        assert response.status_code == 422

        response = await client.get("/recommendations/trending/post", params={"limit": 500})
        assert response.status_code == 422

    async def test_unknown_content_type_is_rejected(self, client: AsyncClient):
        response = await client.get("/recommendations/popular/video")
        assert response.status_code == 422

    async def test_trending_with_days(self, seed, client: AsyncClient):
        await seed(
            make_product("X", age_hours=100),
            make_product("Z", age_hours=1),
            *[make_interaction("X", content_type="product") for _ in range(5)],
        )

        response = await client.get(
            "/recommendations/trending/product", params={"limit": 1, "days": 7}
        )

        data = response.json()
        assert [item["id"] for item in data["items"]] == ["X"]
        assert data["sourceId"] == "trending_7"

    async def test_personalized_anonymous_gets_popular(self, seed, client: AsyncClient):
        await seed(make_post("a"))

        response = await client.get("/recommendations/personalized/post")

        assert response.json()["algorithm"] == "popular"

    async def test_personalized_for_signed_in_user(self, seed, client: AsyncClient, mock_auth):
        await seed(make_post("a"), make_post("b"), make_interaction("a", user_id=CUSTOMER_UID))

        response = await client.get(
            "/recommendations/personalized/post", headers=as_user(mock_auth, CUSTOMER_UID)
        )

        data = response.json()
        assert data["algorithm"] == "personalized"
        assert data["sourceId"] == CUSTOMER_UID
        assert [item["id"] for item in data["items"]] == ["b"]

    async def test_invalid_token_is_treated_as_anonymous(self, seed, client: AsyncClient, mock_auth):
        await seed(make_post("a"))
        mock_auth.verify_id_token.side_effect = ValueError("bad token")

        response = await client.get(
            "/recommendations/similar-users/post",
            headers={"Authorization": "Bearer broken"},
        )

        assert response.status_code == 200
        assert response.json()["algorithm"] == "popular"

    async def test_bought_together_default_limit(self, seed, client: AsyncClient):
        await seed(*[make_product(f"p{index}", category_id="c") for index in range(7)])

        response = await client.get("/recommendations/bought-together/p0")

        data = response.json()
        assert data["algorithm"] == "bought_together"
        assert len(data["items"]) == 4

    async def test_also_viewed(self, seed, client: AsyncClient):
        await seed(
            make_post("A"),
            make_post("B"),
            make_interaction("A", user_id="u1"),
            make_interaction("B", user_id="u1"),
        )

        response = await client.get("/recommendations/also-viewed/post/A")

        data = response.json()
        assert data["algorithm"] == "collaborative"
        assert [item["id"] for item in data["items"]] == ["B"]


@pytest.mark.asyncio
class TestTrackingAPI:
    async def test_track_uses_session_header(self, client: AsyncClient, session_factory):
        response = await client.post(
            "/recommendations/track",
            json={"contentType": "post", "contentId": "p1", "interactionType": "view"},
            headers={"X-Session-ID": "header-session"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        async with session_factory() as session:
            rows = (await session.execute(select(UserInteraction))).scalars().all()
        assert [(row.user_id, row.session_id) for row in rows] == [(None, "header-session")]

    async def test_signed_in_user_overrides_body_user(
        self, client: AsyncClient, mock_auth, tracking_service
    ):
        response = await client.post(
            "/recommendations/track",
            json={
                "contentType": "post",
                "contentId": "p1",
                "interactionType": "view",
                "userId": "spoofed",
                "sessionId": "body-session",
            },
            headers={**as_user(mock_auth, CUSTOMER_UID), "X-Session-ID": "header-session"},
        )

        assert response.json() == {"success": True}
        interactions = await tracking_service.get_user_interactions(CUSTOMER_UID)
        assert len(interactions) == 1
        assert interactions[0].session_id == "body-session"
        assert await tracking_service.get_user_interactions("spoofed") == []

    async def test_track_rejects_unknown_interaction_type(self, client: AsyncClient):
        response = await client.post(
            "/recommendations/track",
            json={"contentType": "post", "contentId": "p1", "interactionType": "like"},
        )

        assert response.status_code == 422

    async def test_track_click(self, client: AsyncClient, analytics_service):
        response = await client.post(
            "/recommendations/track-click",
            json={
                "sourceType": "post",
                "sourceId": "p1",
                "recommendationType": "related",
                "clickedType": "post",
                "clickedId": "p2",
                "position": 0,
            },
        )

        assert response.json() == {"success": True}
        analytics = await analytics_service.get_analytics()
        assert analytics.total_clicks == 1
        assert analytics.interactions_by_type == {"recommendation_click": 1}


@pytest.mark.asyncio
class TestAdminAPI:
    async def test_requires_token(self, client: AsyncClient):
        response = await client.get("/admin/recommendations/analytics")

        assert response.status_code == 401
        assert "error" in response.json()

    async def test_requires_admin_role(self, client: AsyncClient, mock_auth):
        response = await client.get(
            "/admin/recommendations/analytics", headers=as_user(mock_auth, CUSTOMER_UID)
        )

        assert response.status_code == 403

    async def test_analytics_for_admin(self, seed, client: AsyncClient, mock_auth):
        await seed(make_interaction("p1"))

        response = await client.get(
            "/admin/recommendations/analytics",
            params={"period": "month"},
            headers=as_user(mock_auth, ADMIN_UID, UserRole.ADMIN),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["period"] == "month"
        assert data["totalInteractions"] == 1

    async def test_cache_clear(self, seed, client: AsyncClient, mock_auth):
        headers = as_user(mock_auth, ADMIN_UID, UserRole.ADMIN)
        await seed(make_post("a"))
        await client.get("/recommendations/popular/post")

        response = await client.post(
            "/admin/recommendations/cache/clear",
            params={"sourceType": "global"},
            headers=headers,
        )

        assert response.json() == {"success": True, "cleared": 1}
        cleanup = await client.post("/admin/recommendations/cache/cleanup", headers=headers)
        assert cleanup.json() == {"success": True, "cleared": 0}

    async def test_maintenance_cleanup(self, seed, client: AsyncClient, mock_auth):
        await seed(
            make_interaction("old", age_minutes=60 * 24 * 10),
            make_interaction("bought", interaction_type="purchase", age_minutes=60 * 24 * 10),
        )

        response = await client.post(
            "/admin/recommendations/maintenance/cleanup",
            params={"interactionDays": 7, "clickDays": 7},
            headers=as_user(mock_auth, ADMIN_UID, UserRole.ADMIN),
        )

        assert response.json() == {
            "success": True,
            "interactionsRemoved": 1,
            "clicksRemoved": 0,
        }

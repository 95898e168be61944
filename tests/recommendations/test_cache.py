import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from src.api.recommendations.cache import RecommendationCache
from src.api.recommendations.models import RecommendationItem
from src.config.cache_config import cache_config
from src.config.constants import RecommendationAlgorithm
from src.shared.core_cache import CoreCacheClient


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_items(count):
    return [
        RecommendationItem(
            id=f"post_{index}",
            type="post",
            title=f"Post {index}",
            slug=f"post-{index}",
            score=round(1 - index * 0.1, 4),
            metadata={"author": "Ada"},
        )
        for index in range(count)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=["database", "memory"])
def cache(request, session_factory, clock):
    return RecommendationCache(
        backend=request.param,
        session_factory=session_factory,
        clock=clock,
        memory_store=CoreCacheClient(clock=clock),
    )


def test_ttl_per_algorithm():
    assert cache_config.get_ttl_minutes(RecommendationAlgorithm.RELATED) == 30
    assert cache_config.get_ttl_minutes("trending") == 60
    assert cache_config.get_ttl_minutes(RecommendationAlgorithm.POPULAR) == 120
    assert cache_config.get_ttl_minutes(RecommendationAlgorithm.COLLABORATIVE) == 30
    assert cache_config.get_ttl_minutes(RecommendationAlgorithm.BOUGHT_TOGETHER) == 60
    assert cache_config.get_ttl_minutes(RecommendationAlgorithm.SIMILAR_USERS) == 15
    assert not cache_config.is_cacheable(RecommendationAlgorithm.PERSONALIZED)


def test_unknown_backend_is_rejected():
    with pytest.raises(ValueError):
        RecommendationCache(backend="redis")


@pytest.mark.asyncio
class TestRecommendationCache:
    async def test_round_trip_before_expiry(self, cache, clock):
        key = cache.key("post", "p1", "post", RecommendationAlgorithm.RELATED)
        items = make_items(3)

        assert await cache.set(key, items, limit=3)
        clock.advance(minutes=29)

        assert await cache.get(key, 3) == items

    async def test_expired_entry_is_a_miss(self, cache, clock):
        key = cache.key("post", "p1", "post", RecommendationAlgorithm.RELATED)
        await cache.set(key, make_items(3), limit=3)

        clock.advance(minutes=30)

        assert await cache.get(key, 3) is None

    async def test_write_replaces_entry_and_expiry(self, cache, clock):
        key = cache.key("global", "popular", "post", RecommendationAlgorithm.POPULAR)
        await cache.set(key, make_items(1), limit=1)
        clock.advance(minutes=100)

        await cache.set(key, make_items(2), limit=2)
        clock.advance(minutes=100)

        assert [item.id for item in await cache.get(key, 2)] == ["post_0", "post_1"]

    async def test_concurrent_writes_keep_the_last_payload(self, cache):
        key = cache.key("global", "popular", "post", RecommendationAlgorithm.POPULAR)
        first, second = make_items(2)

        results = await asyncio.gather(
            cache.set(key, [first], limit=1),
            cache.set(key, [second], limit=1),
        )

        assert results == [True, True]
        assert [item.id for item in await cache.get(key, 1)] == [second.id]

    async def test_write_over_existing_row_reports_success(self, cache, clock):
        key = cache.key("post", "p1", "post", RecommendationAlgorithm.RELATED)
        await cache.set(key, make_items(3), limit=3, ttl_minutes=1)

        assert await cache.set(key, make_items(1), limit=1, ttl_minutes=60)
        clock.advance(minutes=30)

        cached = await cache.get(key, 1)
        assert [item.id for item in cached] == ["post_0"]
        assert await cache.get(key, 3) is None

    async def test_smaller_limit_reads_leading_items(self, cache):
        key = cache.key("post", "p1", "post", RecommendationAlgorithm.RELATED)
        await cache.set(key, make_items(6), limit=6)

        cached = await cache.get(key, 2)

        assert [item.id for item in cached] == ["post_0", "post_1"]

    async def test_larger_limit_is_a_miss(self, cache):
        key = cache.key("post", "p1", "post", RecommendationAlgorithm.RELATED)
        await cache.set(key, make_items(2), limit=2)

        assert await cache.get(key, 6) is None

    async def test_empty_list_is_cached(self, cache):
        key = cache.key("product", "x", "product", RecommendationAlgorithm.BOUGHT_TOGETHER)
        await cache.set(key, [], limit=4)

        assert await cache.get(key, 4) == []

    async def test_clear_by_source(self, cache):
        first = cache.key("post", "p1", "post", RecommendationAlgorithm.RELATED)
        second = cache.key("post", "p2", "post", RecommendationAlgorithm.RELATED)
        other = cache.key("global", "popular", "post", RecommendationAlgorithm.POPULAR)
        for key in (first, second, other):
            await cache.set(key, make_items(1), limit=1)

        assert await cache.clear("post", "p1") == 1
        assert await cache.get(first, 1) is None
        assert await cache.get(second, 1) is not None

        assert await cache.clear("post") == 1
        assert await cache.clear() == 1
        assert await cache.get(other, 1) is None

    async def test_clear_expired_keeps_live_entries(self, cache, clock):
        short = cache.key("user", "u1", "post", RecommendationAlgorithm.SIMILAR_USERS)
        long = cache.key("global", "popular", "post", RecommendationAlgorithm.POPULAR)
        await cache.set(short, make_items(1), limit=1)
        await cache.set(long, make_items(1), limit=1)

        clock.advance(minutes=20)

        assert await cache.clear_expired() == 1
        assert await cache.get(long, 1) is not None


@pytest.mark.asyncio
class TestCacheFailures:
    async def test_read_failure_is_a_miss(self, failing_session_factory):
        cache = RecommendationCache(backend="database", session_factory=failing_session_factory)
        key = cache.key("post", "p1", "post", RecommendationAlgorithm.RELATED)

        assert await cache.get(key, 3) is None
        assert failing_session_factory.calls == 1

    async def test_write_failure_is_swallowed(self, failing_session_factory):
        cache = RecommendationCache(backend="database", session_factory=failing_session_factory)
        key = cache.key("post", "p1", "post", RecommendationAlgorithm.RELATED)

        assert await cache.set(key, make_items(2), limit=2) is False

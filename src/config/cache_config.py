"""
Recommendation cache configuration
Per-algorithm TTL values, reflecting how quickly each kind of result goes stale
"""

import os

from src.config.constants import RecommendationAlgorithm


class CacheConfig:
    """Cache configuration with environment variable overrides"""

    # Default TTL in minutes, also used for related-content lookups
    DEFAULT_TTL_MINUTES = int(os.getenv("CACHE_DEFAULT_TTL_MINUTES", "30"))

    RELATED_TTL_MINUTES = int(
        os.getenv("CACHE_TTL_RELATED_MINUTES", str(DEFAULT_TTL_MINUTES))
    )
    TRENDING_TTL_MINUTES = int(os.getenv("CACHE_TTL_TRENDING_MINUTES", "60"))  # 1 hour
    POPULAR_TTL_MINUTES = int(os.getenv("CACHE_TTL_POPULAR_MINUTES", "120"))  # 2 hours
    COLLABORATIVE_TTL_MINUTES = int(
        os.getenv("CACHE_TTL_COLLABORATIVE_MINUTES", "30")
    )
    BOUGHT_TOGETHER_TTL_MINUTES = int(
        os.getenv("CACHE_TTL_BOUGHT_TOGETHER_MINUTES", "60")
    )
    # Semi-personalized, changes more frequently
    SIMILAR_USERS_TTL_MINUTES = int(
        os.getenv("CACHE_TTL_SIMILAR_USERS_MINUTES", "15")
    )

    # Source type used for cache entries not tied to a content item
    GLOBAL_SOURCE = "global"
    USER_SOURCE = "user"

    @classmethod
    def get_ttl_minutes(cls, algorithm: RecommendationAlgorithm) -> int:
        """Get TTL for a recommendation algorithm"""
        ttl_mapping = {
            RecommendationAlgorithm.RELATED: cls.RELATED_TTL_MINUTES,
            RecommendationAlgorithm.TRENDING: cls.TRENDING_TTL_MINUTES,
            RecommendationAlgorithm.POPULAR: cls.POPULAR_TTL_MINUTES,
            RecommendationAlgorithm.COLLABORATIVE: cls.COLLABORATIVE_TTL_MINUTES,
            RecommendationAlgorithm.BOUGHT_TOGETHER: cls.BOUGHT_TOGETHER_TTL_MINUTES,
            RecommendationAlgorithm.SIMILAR_USERS: cls.SIMILAR_USERS_TTL_MINUTES,
        }
        return ttl_mapping.get(RecommendationAlgorithm(algorithm), cls.DEFAULT_TTL_MINUTES)

    @classmethod
    def is_cacheable(cls, algorithm: RecommendationAlgorithm) -> bool:
        """Personalized results are always computed fresh"""
        return RecommendationAlgorithm(algorithm) != RecommendationAlgorithm.PERSONALIZED


cache_config = CacheConfig()

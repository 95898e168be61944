#!/usr/bin/env python3
"""
Retention sweep for recommendation data.

Deletes old interactions (purchases and enrollments are kept), old
recommendation clicks, and expired recommendation cache entries. Designed to
run from cron or another external scheduler.

Usage:
    python scripts/db/cleanup_recommendations.py [--interaction-days 90] [--click-days 30]
"""

import argparse
import asyncio
import os
import sys

# Add the project root to the Python path
sys.path.append(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
)

from src.api.interactions.service import TrackingService
from src.api.recommendations.cache import RecommendationCache
from src.config.settings import settings
from src.database.connection import engine


async def main(interaction_days: int, click_days: int, skip_cache: bool = False):
    print("=" * 80)
    print("RECOMMENDATION DATA CLEANUP")
    print("=" * 80)

    tracking_service = TrackingService()

    try:
        interactions_removed = await tracking_service.cleanup_old_interactions(
            interaction_days
        )
        print(f"Interactions removed (older than {interaction_days} days): {interactions_removed}")

        clicks_removed = await tracking_service.cleanup_old_clicks(click_days)
        print(f"Recommendation clicks removed (older than {click_days} days): {clicks_removed}")

        if not skip_cache:
            cache_removed = await RecommendationCache().clear_expired()
            print(f"Expired cache entries removed: {cache_removed}")
    finally:
        await engine.dispose()

    print("Cleanup complete.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Delete old recommendation data.")
    parser.add_argument(
        "--interaction-days",
        type=int,
        default=settings.INTERACTION_RETENTION_DAYS,
        help="Keep interactions newer than this many days.",
    )
    parser.add_argument(
        "--click-days",
        type=int,
        default=settings.CLICK_RETENTION_DAYS,
        help="Keep recommendation clicks newer than this many days.",
    )
    parser.add_argument(
        "--skip-cache",
        action="store_true",
        help="Do not remove expired cache entries.",
    )
    args = parser.parse_args()

    asyncio.run(main(args.interaction_days, args.click_days, args.skip_cache))

"""
Queries against the interaction log and the recommendation click table.

Grouping queries order by count descending and break ties by the most recent
interaction, so callers can rely on a stable, recency-aware ranking.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.database.connection import AsyncSessionLocal
from src.database.models.recommendation_click import RecommendationClick
from src.database.models.user_interaction import UserInteraction


def _values(items: Iterable) -> List[str]:
    return [getattr(item, "value", item) for item in items]


class InteractionRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self._session_factory = session_factory

    # ---------- Writes ----------

    async def add_interaction(self, interaction: UserInteraction) -> UserInteraction:
        async with self._session_factory() as session:
            session.add(interaction)
            await session.commit()
            return interaction

    async def add_click(self, click: RecommendationClick) -> RecommendationClick:
        async with self._session_factory() as session:
            session.add(click)
            await session.commit()
            return click

    async def delete_interactions_before(
        self, cutoff: datetime, keep_types: Sequence = ()
    ) -> int:
        async with self._session_factory() as session:
            statement = delete(UserInteraction).where(UserInteraction.created_at < cutoff)
            if keep_types:
                statement = statement.where(
                    UserInteraction.interaction_type.not_in(_values(keep_types))
                )
            result = await session.execute(statement)
            await session.commit()
            return result.rowcount or 0

    async def delete_clicks_before(self, cutoff: datetime) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(RecommendationClick).where(RecommendationClick.created_at < cutoff)
            )
            await session.commit()
            return result.rowcount or 0

    # ---------- Per-user reads ----------

    async def list_user_interactions(
        self, user_id: str, content_type: Optional[str] = None, limit: int = 50
    ) -> List[UserInteraction]:
        async with self._session_factory() as session:
            query = select(UserInteraction).where(UserInteraction.user_id == user_id)
            if content_type:
                query = query.where(UserInteraction.content_type == content_type)
            query = query.order_by(
                desc(UserInteraction.created_at), desc(UserInteraction.id)
            ).limit(limit)

            result = await session.execute(query)
            return list(result.scalars().all())

    async def user_content_ids(
        self,
        user_id: str,
        content_type: str,
        interaction_types: Optional[Sequence] = None,
        limit: int = 100,
    ) -> List[str]:
        """Content ids from the user's most recent interactions, newest first."""
        async with self._session_factory() as session:
            query = select(UserInteraction.content_id).where(
                UserInteraction.user_id == user_id,
                UserInteraction.content_type == content_type,
            )
            if interaction_types:
                query = query.where(
                    UserInteraction.interaction_type.in_(_values(interaction_types))
                )
            query = query.order_by(
                desc(UserInteraction.created_at), desc(UserInteraction.id)
            ).limit(limit)

            result = await session.execute(query)
            return [row[0] for row in result.fetchall()]

    # ---------- Aggregates ----------

    async def count_for_content(self, content_type: str, content_id: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(UserInteraction.id)).where(
                    UserInteraction.content_type == content_type,
                    UserInteraction.content_id == content_id,
                )
            )
            return result.scalar() or 0

    async def breakdown_for_content(
        self, content_type: str, content_id: str
    ) -> Dict[str, int]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserInteraction.interaction_type, func.count(UserInteraction.id))
                .where(
                    UserInteraction.content_type == content_type,
                    UserInteraction.content_id == content_id,
                )
                .group_by(UserInteraction.interaction_type)
            )
            return {row[0]: row[1] for row in result.fetchall()}

    async def count_grouped_by_content(
        self,
        content_type: str,
        limit: int,
        since: Optional[datetime] = None,
        user_ids: Optional[Sequence[str]] = None,
        exclude_content_ids: Optional[Sequence[str]] = None,
        interaction_types: Optional[Sequence] = None,
    ) -> List[Tuple[str, int]]:
        """(content_id, count) pairs, highest count first."""
        async with self._session_factory() as session:
            count_column = func.count(UserInteraction.id).label("interaction_count")
            query = select(UserInteraction.content_id, count_column).where(
                UserInteraction.content_type == content_type
            )
            if since is not None:
                query = query.where(UserInteraction.created_at >= since)
            if user_ids is not None:
                query = query.where(UserInteraction.user_id.in_(list(user_ids)))
            if exclude_content_ids:
                query = query.where(
                    UserInteraction.content_id.not_in(list(exclude_content_ids))
                )
            if interaction_types:
                query = query.where(
                    UserInteraction.interaction_type.in_(_values(interaction_types))
                )
            query = (
                query.group_by(UserInteraction.content_id)
                .order_by(desc(count_column), desc(func.max(UserInteraction.created_at)))
                .limit(limit)
            )

            result = await session.execute(query)
            return [(row[0], row[1]) for row in result.fetchall()]

    async def count_grouped_by_user(
        self,
        content_type: str,
        content_ids: Sequence[str],
        exclude_user_id: str,
        limit: int,
    ) -> List[Tuple[str, int]]:
        """(user_id, shared interaction count) for users who touched any of content_ids."""
        async with self._session_factory() as session:
            count_column = func.count(UserInteraction.id).label("interaction_count")
            result = await session.execute(
                select(UserInteraction.user_id, count_column)
                .where(
                    UserInteraction.content_type == content_type,
                    UserInteraction.content_id.in_(list(content_ids)),
                    UserInteraction.user_id.is_not(None),
                    UserInteraction.user_id != exclude_user_id,
                )
                .group_by(UserInteraction.user_id)
                .order_by(desc(count_column), desc(func.max(UserInteraction.created_at)))
                .limit(limit)
            )
            return [(row[0], row[1]) for row in result.fetchall()]

    async def distinct_users_for_content(
        self,
        content_type: str,
        content_id: str,
        interaction_types: Sequence,
        limit: int,
    ) -> List[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserInteraction.user_id)
                .where(
                    UserInteraction.content_type == content_type,
                    UserInteraction.content_id == content_id,
                    UserInteraction.interaction_type.in_(_values(interaction_types)),
                    UserInteraction.user_id.is_not(None),
                )
                .distinct()
                .limit(limit)
            )
            return [row[0] for row in result.fetchall()]

    # ---------- Purchase co-occurrence ----------

    async def purchases_of(
        self, content_type: str, content_id: str, purchase_type: str, limit: int
    ) -> List[Tuple[Optional[str], Optional[str], datetime]]:
        """(user_id, session_id, created_at) of attributable purchases of one item."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(
                    UserInteraction.user_id,
                    UserInteraction.session_id,
                    UserInteraction.created_at,
                )
                .where(
                    UserInteraction.content_type == content_type,
                    UserInteraction.content_id == content_id,
                    UserInteraction.interaction_type == purchase_type,
                    or_(
                        UserInteraction.user_id.is_not(None),
                        UserInteraction.session_id.is_not(None),
                    ),
                )
                .order_by(desc(UserInteraction.created_at))
                .limit(limit)
            )
            return [(row[0], row[1], row[2]) for row in result.fetchall()]

    async def co_purchased_ids(
        self,
        content_type: str,
        exclude_content_id: str,
        purchase_type: str,
        windows: Sequence[Tuple[Optional[str], Optional[str], datetime, datetime]],
    ) -> List[str]:
        """
        Content ids purchased by the same user or session inside each
        (user_id, session_id, start, end) window. One entry per matching row,
        accumulated across all windows.
        """
        co_purchases: List[str] = []
        async with self._session_factory() as session:
            for user_id, session_id, start, end in windows:
                owners = []
                if user_id:
                    owners.append(UserInteraction.user_id == user_id)
                if session_id:
                    owners.append(UserInteraction.session_id == session_id)
                if not owners:
                    continue

                result = await session.execute(
                    select(UserInteraction.content_id).where(
                        or_(*owners),
                        UserInteraction.content_type == content_type,
                        UserInteraction.content_id != exclude_content_id,
                        UserInteraction.interaction_type == purchase_type,
                        UserInteraction.created_at >= start,
                        UserInteraction.created_at <= end,
                    )
                )
                co_purchases.extend(row[0] for row in result.fetchall())
        return co_purchases

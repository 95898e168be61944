from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, JSONType
from src.shared.utils import utc_now


class RecommendationCacheEntry(Base):
    """
    Previously computed recommendation list keyed by
    (source_type, source_id, target_type, algorithm).

    An entry is valid while now < expires_at. Expired entries stay in the table
    until overwritten by the next write or removed by an explicit sweep.
    """

    __tablename__ = "recommendation_cache"
    __table_args__ = (
        UniqueConstraint(
            "source_type",
            "source_id",
            "target_type",
            "algorithm",
            name="uq_recommendation_cache_key",
        ),
        Index("idx_recommendation_cache_expires_at", "expires_at"),
        Index("idx_recommendation_cache_source", "source_type", "source_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    source_type: Mapped[str] = mapped_column(String(50), nullable=False)
    source_id: Mapped[str] = mapped_column(String(255), nullable=False)
    target_type: Mapped[str] = mapped_column(String(50), nullable=False)
    algorithm: Mapped[str] = mapped_column(String(50), nullable=False)

    # Serialized RecommendationItem list
    recommendations: Mapped[list] = mapped_column(JSONType, nullable=False)

    # List size the entry was computed for
    item_limit: Mapped[int] = mapped_column(Integer, nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

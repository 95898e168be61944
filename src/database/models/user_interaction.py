from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, JSONType
from src.shared.utils import utc_now


class UserInteraction(Base):
    """
    Log of user/session actions against content items (views, clicks, purchases,
    enrollments, recommendation clicks).

    Rows are never mutated. Anonymous rows without user or session are valid.
    """

    __tablename__ = "user_interactions"
    __table_args__ = (
        Index("idx_user_interactions_user_id", "user_id"),
        Index("idx_user_interactions_session_id", "session_id"),
        Index("idx_user_interactions_content", "content_type", "content_id"),
        Index("idx_user_interactions_type", "interaction_type"),
        Index("idx_user_interactions_created_at", "created_at"),
        Index("idx_user_interactions_user_content_type", "user_id", "content_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # post, page, product, course
    content_type: Mapped[str] = mapped_column(String(50), nullable=False)
    content_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # view, click, purchase, enroll, recommendation_click
    interaction_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # "metadata" is reserved on declarative classes
    extra_data: Mapped[Optional[dict]] = mapped_column(
        "metadata", JSONType, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

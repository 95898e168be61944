from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base
from src.shared.utils import utc_now


class RecommendationClick(Base):
    """A click on a displayed recommendation, used for click-through analytics."""

    __tablename__ = "recommendation_clicks"
    __table_args__ = (
        Index("idx_recommendation_clicks_source", "source_type", "source_id"),
        Index("idx_recommendation_clicks_type", "recommendation_type"),
        Index("idx_recommendation_clicks_clicked", "clicked_type", "clicked_id"),
        Index("idx_recommendation_clicks_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Content that displayed the recommendation
    source_type: Mapped[str] = mapped_column(String(50), nullable=False)
    source_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # Algorithm that produced the clicked item
    recommendation_type: Mapped[str] = mapped_column(String(50), nullable=False)

    clicked_type: Mapped[str] = mapped_column(String(50), nullable=False)
    clicked_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # Rank in the displayed list
    position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

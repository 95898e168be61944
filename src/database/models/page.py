from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base
from src.shared.utils import utc_now


class Page(Base):
    """Read model of static pages owned by the content store."""

    __tablename__ = "pages"
    __table_args__ = (
        Index("idx_pages_template_status", "template", "status"),
        Index("idx_pages_updated_at", "updated_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    featured_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    template: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="DRAFT")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

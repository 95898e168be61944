from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DECIMAL, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, JSONType
from src.shared.utils import utc_now


class Product(Base):
    """Read model of shop products owned by the content store."""

    __tablename__ = "products"
    __table_args__ = (
        Index("idx_products_category_status", "category_id", "status"),
        Index("idx_products_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # List of image URLs
    images: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    price: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    sale_price: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    category_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    category_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="DRAFT")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

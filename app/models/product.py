"""ORM model for catalog products."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func

from app.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Product(Base):
    """
    Sellable catalog item belonging to one category.

    stock is decremented by purchases and never goes negative.
    """

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(12, 2), nullable=False)
    img_url = Column(String(2048), nullable=True)
    sku = Column(String(64), nullable=False, default="")
    stock = Column(Integer, nullable=False, default=0)
    category_id = Column(
        Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

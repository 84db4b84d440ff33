"""Price model (append-only capture history)"""
import uuid

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shelfprice.core.database import Base

PRICE_STATUS_ACTIVE = "active"
PRICE_STATUS_FLAGGED = "flagged"
PRICE_STATUSES = (PRICE_STATUS_ACTIVE, PRICE_STATUS_FLAGGED)


class Price(Base):
    """
    A single price observed for a product at a store.

    Rows are never deleted. Status is set once at ingestion (active or
    auto-flagged) and afterwards only changed through moderation.
    """
    __tablename__ = "prices"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)

    price_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    captured_at = Column(DateTime(timezone=True), nullable=False)

    # Device identifier, not a foreign key: devices are registered after insert
    submitted_by = Column(String(64), index=True)
    photo_url = Column(String)

    status = Column(String(10), nullable=False, default=PRICE_STATUS_ACTIVE)
    confidence_score = Column(Float, nullable=False, default=1.0)

    # Unique when present; NULLs do not collide
    idempotency_key = Column(String(128), unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    product = relationship("Product", lazy="raise")
    store = relationship("Store", lazy="raise")

    __table_args__ = (
        Index("ix_prices_product_status", "product_id", "status"),
    )

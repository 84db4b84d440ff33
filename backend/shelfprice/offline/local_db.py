"""Local SQLite database for the offline client"""
from typing import Optional

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Text, Index
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from shelfprice.core.database import resolve_async_url
from shelfprice.offline.config import client_settings

LocalBase = declarative_base()


class PendingSubmission(LocalBase):
    """A price capture not yet confirmed by the server."""
    __tablename__ = "pending_price_submissions"

    idempotency_key = Column(String(128), primary_key=True)
    product_id = Column(String(36), nullable=False)
    store_id = Column(String(36), nullable=False)
    price_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    captured_at = Column(String(40), nullable=False)  # ISO 8601 as captured
    photo_url = Column(String)
    submitted_by = Column(String(64))
    created_at = Column(DateTime(timezone=True), nullable=False)
    retry_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text)

    __table_args__ = (
        Index("idx_pending_price_created_at", "created_at"),
    )


class CachedStore(LocalBase):
    __tablename__ = "stores"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class CachedPrice(LocalBase):
    """Server prices mirrored locally, plus optimistic rows for queued captures."""
    __tablename__ = "prices"

    id = Column(String(160), primary_key=True)
    product_id = Column(String(36), nullable=False, index=True)
    store_id = Column(String(36), nullable=False, index=True)
    price_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    captured_at = Column(String(40), nullable=False)
    status = Column(String(10), nullable=False, default="active")
    confidence_score = Column(Float, nullable=False, default=1.0)
    idempotency_key = Column(String(128), index=True)
    # True for rows written before the server confirmed the capture
    is_pending = Column(Boolean, nullable=False, default=False)


class AppIdentity(LocalBase):
    __tablename__ = "app_identity"

    key = Column(String(64), primary_key=True)
    value = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class LocalDatabase:
    """Engine and session factory for the client's local file."""

    def __init__(self, url: Optional[str] = None):
        async_url = resolve_async_url(url or client_settings.LOCAL_DATABASE_URL)
        engine_kwargs = {}
        if ":memory:" in async_url:
            # One shared connection, otherwise every session sees an empty database
            engine_kwargs = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }

        self.engine = create_async_engine(async_url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init(self):
        """Create local tables"""
        async with self.engine.begin() as conn:
            await conn.run_sync(LocalBase.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()

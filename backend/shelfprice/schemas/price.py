"""Price submission, aggregation and moderation schemas"""
from datetime import datetime, timezone
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import AnyHttpUrl, Field, field_validator

from shelfprice.schemas.base import CamelModel

PriceStatus = Literal['active', 'flagged']


class PriceCreateRequest(CamelModel):
    """A price capture as submitted by a device (possibly a retry)."""
    product_id: UUID
    store_id: UUID
    price_cents: int = Field(..., gt=0, description="Price in minor currency units")
    currency: str = Field(..., description="ISO 4217 code, normalized to upper case")
    captured_at: Optional[datetime] = Field(None, description="Defaults to server time")
    submitted_by: Optional[str] = Field(None, min_length=1, max_length=64, description="Device identifier")
    photo_url: Optional[AnyHttpUrl] = None
    idempotency_key: Optional[str] = Field(None, min_length=1, max_length=128)
    status: PriceStatus = 'active'

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        value = value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            raise ValueError("currency must be a 3-letter code")
        return value

    @field_validator('captured_at')
    @classmethod
    def normalize_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Clients without an offset are taken to report UTC. Aware values are
        # converted so every stored capture time is on the same clock.
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator('submitted_by', 'idempotency_key', mode='before')
    @classmethod
    def strip_optional_text(cls, value):
        if isinstance(value, str):
            value = value.strip()
        return value


class ModerationRequest(CamelModel):
    status: PriceStatus


class ProductSummary(CamelModel):
    id: str
    barcode: str
    name: str
    brand: Optional[str] = None


class StoreSummary(CamelModel):
    id: str
    name: str
    address: Optional[str] = None


class PriceResponse(CamelModel):
    id: str
    product_id: str
    store_id: str
    price_cents: int
    currency: str
    captured_at: datetime
    submitted_by: Optional[str] = None
    photo_url: Optional[str] = None
    status: PriceStatus
    confidence_score: float = Field(..., ge=0, le=1)
    idempotency_key: Optional[str] = None
    product: Optional[ProductSummary] = None
    store: Optional[StoreSummary] = None


class PriceSubmissionResponse(CamelModel):
    created_price: PriceResponse
    # None only when the product has no active price at all, e.g. the first
    # capture was submitted as flagged
    best_price: Optional[PriceResponse] = None


class StoreBestPriceResponse(CamelModel):
    store: StoreSummary
    best_price: PriceResponse


class PriceAggregationResponse(CamelModel):
    best_overall: PriceResponse
    grouped_by_store: List[StoreBestPriceResponse]
    price_history: List[PriceResponse]

"""Price endpoints - submission, best-price view and moderation"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address

from shelfprice.core.database import get_db
from shelfprice.core.config import settings
from shelfprice.schemas.price import (
    ModerationRequest,
    PriceAggregationResponse,
    PriceCreateRequest,
    PriceResponse,
    PriceStatus,
    PriceSubmissionResponse,
)
from shelfprice.services.aggregation_service import AggregationService
from shelfprice.services.ingestion_service import IngestionService
from shelfprice.services.moderation_service import ModerationService

router = APIRouter()
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


@router.post("", response_model=PriceSubmissionResponse)
@limiter.limit(f"{settings.RATE_LIMIT_PER_MINUTE}/minute")
async def submit_price(
    request: Request,
    data: PriceCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Submit a price capture.

    Safe to retry: a repeated idempotency key returns the price stored by
    the first submission together with the current best price.
    """
    result = await IngestionService(db).ingest(data)

    return PriceSubmissionResponse(
        created_price=PriceResponse.model_validate(result.created_price),
        best_price=PriceResponse.model_validate(result.best_price) if result.best_price else None,
    )


@router.get("/best/{product_id}", response_model=PriceAggregationResponse)
async def get_best_price(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Best price overall, best price per store and active history."""
    aggregation = await AggregationService(db).summarize(str(product_id))
    return PriceAggregationResponse.model_validate(aggregation)


@router.get("/history/{product_id}", response_model=List[PriceResponse])
async def get_price_history(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    history = await AggregationService(db).price_history(str(product_id))
    return [PriceResponse.model_validate(p) for p in history]


@router.get("/moderation", response_model=List[PriceResponse])
async def list_moderation_queue(
    status: Optional[PriceStatus] = Query(None, description="Filter by status"),
    limit: int = Query(settings.MODERATION_LIST_DEFAULT_LIMIT, ge=1, le=settings.MODERATION_LIST_MAX_LIMIT),
    db: AsyncSession = Depends(get_db),
):
    """List prices for moderation, most recent capture first."""
    prices = await ModerationService(db).list_queue(status=status, limit=limit)
    return [PriceResponse.model_validate(p) for p in prices]


@router.patch("/{price_id}/moderation", response_model=PriceResponse)
async def moderate_price(
    price_id: UUID,
    data: ModerationRequest,
    db: AsyncSession = Depends(get_db),
):
    """Approve (active) or flag a price."""
    price = await ModerationService(db).set_status(str(price_id), data.status)
    return PriceResponse.model_validate(price)

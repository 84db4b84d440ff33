"""Analytics endpoints"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shelfprice.core.config import settings
from shelfprice.core.database import get_db
from shelfprice.schemas.analytics import (
    AnalyticsSummaryResponse,
    AnalyticsTotals,
    ProductActivityResponse,
    StoreActivityResponse,
)
from shelfprice.services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("/summary", response_model=AnalyticsSummaryResponse)
async def get_summary(
    limit: int = Query(
        settings.ANALYTICS_TOP_DEFAULT_LIMIT,
        ge=1,
        le=settings.ANALYTICS_TOP_MAX_LIMIT,
        description="Entries per ranking",
    ),
    db: AsyncSession = Depends(get_db),
):
    """Totals plus the most active stores and most scanned products."""
    summary = await AnalyticsService(db).summary(limit=limit)

    return AnalyticsSummaryResponse(
        totals=AnalyticsTotals(products=summary.total_products, prices=summary.total_prices),
        most_active_stores=[StoreActivityResponse.model_validate(s) for s in summary.most_active_stores],
        most_scanned_products=[ProductActivityResponse.model_validate(p) for p in summary.most_scanned_products],
        generated_at=summary.generated_at,
    )

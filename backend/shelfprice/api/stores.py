"""Store endpoints (read-only)"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from shelfprice.core.database import get_db
from shelfprice.models.store import Store
from shelfprice.schemas.price import StoreSummary
from shelfprice.schemas.store import StoreListResponse

router = APIRouter()


@router.get("", response_model=StoreListResponse)
async def list_stores(
    limit: int = Query(500, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    """List stores by name, for client-side store pickers."""
    result = await db.execute(select(Store).order_by(Store.name.asc()).limit(limit))
    stores = result.scalars().all()

    return StoreListResponse(
        stores=[StoreSummary.model_validate(s) for s in stores],
        count=len(stores),
    )

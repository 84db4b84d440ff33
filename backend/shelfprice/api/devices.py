"""Device endpoints"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shelfprice.core.database import get_db
from shelfprice.schemas.device import DeviceListResponse, DeviceUsageResponse
from shelfprice.services.device_service import DeviceService

router = APIRouter()


@router.get("", response_model=DeviceListResponse)
async def list_devices(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Registered devices with submission counts and last capture time."""
    devices = await DeviceService(db).list_devices(limit=limit)

    return DeviceListResponse(
        devices=[DeviceUsageResponse.model_validate(d) for d in devices],
        count=len(devices),
    )

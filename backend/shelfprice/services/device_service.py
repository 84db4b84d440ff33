"""Device Service - submitter registry with usage statistics"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from shelfprice.models.device import Device
from shelfprice.models.price import Price


@dataclass
class DeviceUsage:
    id: str
    created_at: Optional[datetime]
    submissions_count: int = 0
    last_used_at: Optional[datetime] = None


class DeviceService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_devices(self, limit: int = 100) -> List[DeviceUsage]:
        """Newest devices first, each with its price count and latest capture."""
        devices = (
            await self.db.execute(
                select(Device).order_by(Device.created_at.desc(), Device.id.asc()).limit(limit)
            )
        ).scalars().all()

        usage_rows = await self.db.execute(
            select(
                Price.submitted_by,
                func.count(Price.id),
                func.max(Price.captured_at),
            )
            .where(Price.submitted_by.is_not(None))
            .group_by(Price.submitted_by)
        )
        usage = {row[0]: (row[1], row[2]) for row in usage_rows.all()}

        return [
            DeviceUsage(
                id=device.id,
                created_at=device.created_at,
                submissions_count=usage.get(device.id, (0, None))[0],
                last_used_at=usage.get(device.id, (0, None))[1],
            )
            for device in devices
        ]

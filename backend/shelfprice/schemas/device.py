"""Device registry schemas"""
from datetime import datetime
from typing import List, Optional

from shelfprice.schemas.base import CamelModel


class DeviceUsageResponse(CamelModel):
    id: str
    created_at: Optional[datetime] = None
    submissions_count: int = 0
    last_used_at: Optional[datetime] = None


class DeviceListResponse(CamelModel):
    devices: List[DeviceUsageResponse]
    count: int

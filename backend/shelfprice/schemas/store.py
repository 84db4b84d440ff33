"""Store listing schemas"""
from typing import List

from shelfprice.schemas.base import CamelModel
from shelfprice.schemas.price import StoreSummary


class StoreListResponse(CamelModel):
    stores: List[StoreSummary]
    count: int

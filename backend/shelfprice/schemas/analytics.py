"""Analytics summary schemas"""
from datetime import datetime
from typing import List

from pydantic import Field

from shelfprice.schemas.base import CamelModel


class AnalyticsTotals(CamelModel):
    products: int
    prices: int


class StoreActivityResponse(CamelModel):
    store_id: str
    name: str
    submissions_count: int


class ProductActivityResponse(CamelModel):
    product_id: str
    name: str
    barcode: str
    scans_count: int


class AnalyticsSummaryResponse(CamelModel):
    totals: AnalyticsTotals
    most_active_stores: List[StoreActivityResponse] = Field(default_factory=list)
    most_scanned_products: List[ProductActivityResponse] = Field(default_factory=list)
    generated_at: datetime

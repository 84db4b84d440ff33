"""Analytics Service - submission totals and activity rankings"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from shelfprice.models.price import Price
from shelfprice.models.product import Product
from shelfprice.models.store import Store

UNKNOWN_STORE_NAME = "Unknown store"
UNKNOWN_PRODUCT_NAME = "Unknown product"
UNKNOWN_BARCODE = "N/A"


@dataclass
class StoreActivity:
    store_id: str
    name: str
    submissions_count: int


@dataclass
class ProductActivity:
    product_id: str
    name: str
    barcode: str
    scans_count: int


@dataclass
class AnalyticsSummary:
    total_products: int
    total_prices: int
    most_active_stores: List[StoreActivity] = field(default_factory=list)
    most_scanned_products: List[ProductActivity] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AnalyticsService:
    """Dashboard counts over every submitted price, whatever its status."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def summary(self, limit: int = 5) -> AnalyticsSummary:
        total_products = (
            await self.db.execute(select(func.count()).select_from(Product))
        ).scalar_one()
        total_prices = (
            await self.db.execute(select(func.count()).select_from(Price))
        ).scalar_one()

        return AnalyticsSummary(
            total_products=total_products,
            total_prices=total_prices,
            most_active_stores=await self._most_active_stores(limit),
            most_scanned_products=await self._most_scanned_products(limit),
        )

    async def _most_active_stores(self, limit: int) -> List[StoreActivity]:
        submissions = func.count(Price.id).label("submissions")
        rows = await self.db.execute(
            select(Price.store_id, Store.name, submissions)
            .outerjoin(Store, Store.id == Price.store_id)
            .group_by(Price.store_id, Store.name)
            .order_by(submissions.desc(), Price.store_id.asc())
            .limit(limit)
        )
        return [
            StoreActivity(store_id=store_id, name=name or UNKNOWN_STORE_NAME, submissions_count=count)
            for store_id, name, count in rows.all()
        ]

    async def _most_scanned_products(self, limit: int) -> List[ProductActivity]:
        scans = func.count(Price.id).label("scans")
        rows = await self.db.execute(
            select(Price.product_id, Product.name, Product.barcode, scans)
            .outerjoin(Product, Product.id == Price.product_id)
            .group_by(Price.product_id, Product.name, Product.barcode)
            .order_by(scans.desc(), Price.product_id.asc())
            .limit(limit)
        )
        return [
            ProductActivity(
                product_id=product_id,
                name=name or UNKNOWN_PRODUCT_NAME,
                barcode=barcode or UNKNOWN_BARCODE,
                scans_count=count,
            )
            for product_id, name, barcode, count in rows.all()
        ]

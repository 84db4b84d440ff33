"""Aggregation Service - best-price projections over persisted prices"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shelfprice.core.errors import NotFoundError
from shelfprice.models.price import Price, PRICE_STATUS_ACTIVE
from shelfprice.models.store import Store


@dataclass
class StoreBestPrice:
    store: Store
    best_price: Price


@dataclass
class PriceAggregation:
    best_overall: Price
    grouped_by_store: List[StoreBestPrice] = field(default_factory=list)
    price_history: List[Price] = field(default_factory=list)


def price_with_relations():
    """Base query for prices with product and store eagerly loaded."""
    return (
        select(Price)
        .options(selectinload(Price.product), selectinload(Price.store))
        # Reload column values too, so instances already in the session
        # reflect what the database stored
        .execution_options(populate_existing=True)
    )


def ranks_before(candidate: Price, current: Price) -> bool:
    """
    Best-price ordering: lower price wins, a tie goes to the more recent
    capture. Identical price and capture time fall back to id so the
    result does not depend on row order.
    """
    if candidate.price_cents != current.price_cents:
        return candidate.price_cents < current.price_cents
    if candidate.captured_at != current.captured_at:
        return candidate.captured_at > current.captured_at
    return candidate.id < current.id


def pick_best(prices: List[Price]) -> Optional[Price]:
    best = None
    for price in prices:
        if best is None or ranks_before(price, best):
            best = price
    return best


class AggregationService:
    """
    Read-side projections for a product's prices.

    Only active prices take part. Nothing is cached: every call reads the
    current rows, so a result may be superseded right after it is returned.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def price_history(self, product_id: str) -> List[Price]:
        """All active prices for the product, most recent capture first."""
        result = await self.db.execute(
            price_with_relations()
            .where(
                Price.product_id == product_id,
                Price.status == PRICE_STATUS_ACTIVE,
            )
            .order_by(Price.captured_at.desc(), Price.id.asc())
        )
        return list(result.scalars().all())

    async def find_best_overall(self, product_id: str) -> Optional[Price]:
        """Best active price, or None when the product has none."""
        result = await self.db.execute(
            price_with_relations()
            .where(
                Price.product_id == product_id,
                Price.status == PRICE_STATUS_ACTIVE,
            )
            .order_by(Price.price_cents.asc(), Price.captured_at.desc(), Price.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def best_overall(self, product_id: str) -> Price:
        best = await self.find_best_overall(product_id)
        if best is None:
            raise NotFoundError(
                f"No active prices for product: {product_id}",
                details={"product_id": product_id},
            )
        return best

    async def grouped_by_store(self, product_id: str) -> List[StoreBestPrice]:
        history = await self.price_history(product_id)
        return self._group_by_store(history)

    async def summarize(self, product_id: str) -> PriceAggregation:
        """Best overall, best per store and history from a single read."""
        history = await self.price_history(product_id)
        if not history:
            raise NotFoundError(
                f"No active prices for product: {product_id}",
                details={"product_id": product_id},
            )

        return PriceAggregation(
            best_overall=pick_best(history),
            grouped_by_store=self._group_by_store(history),
            price_history=history,
        )

    def _group_by_store(self, prices: List[Price]) -> List[StoreBestPrice]:
        best_by_store: Dict[str, Price] = {}
        for price in prices:
            current = best_by_store.get(price.store_id)
            if current is None or ranks_before(price, current):
                best_by_store[price.store_id] = price

        ranked = sorted(
            best_by_store.values(),
            key=lambda p: (p.price_cents, p.store_id),
        )
        return [StoreBestPrice(store=p.store, best_price=p) for p in ranked]

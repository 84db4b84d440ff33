"""Local price and store cache reconciled from server responses"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union

from sqlalchemy import select, delete

from shelfprice.offline.local_db import CachedPrice, CachedStore
from shelfprice.schemas.price import PriceResponse, StoreSummary

UNKNOWN_STORE_NAME = "Unknown store"
PENDING_ID_PREFIX = "pending:"


@dataclass
class LocalPriceView:
    id: str
    product_id: str
    store_id: str
    store_name: str
    price_cents: int
    currency: str
    captured_at: str
    is_pending: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def pending_price_id(idempotency_key: str) -> str:
    return f"{PENDING_ID_PREFIX}{idempotency_key}"


def utc_isoformat(value: Union[str, datetime]) -> str:
    """
    Canonical text form of a capture time: UTC, microsecond precision.

    Cached rows are ordered by this string, so every writer goes through it.
    Naive values are taken as UTC. Raises ValueError for unparseable text.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class LocalPriceCache:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def upsert_from_api_price(self, price: PriceResponse) -> None:
        """
        Mirror a canonical server price locally.

        Replaces the optimistic row written for the same idempotency key and
        creates a placeholder store when the store is not cached yet.
        """
        async with self.session_factory() as db:
            store = await db.get(CachedStore, price.store_id)
            if store is None:
                db.add(CachedStore(
                    id=price.store_id,
                    name=price.store.name if price.store else UNKNOWN_STORE_NAME,
                    updated_at=_utcnow(),
                ))

            if price.idempotency_key:
                await db.execute(
                    delete(CachedPrice).where(CachedPrice.id == pending_price_id(price.idempotency_key))
                )

            cached = await db.get(CachedPrice, price.id)
            if cached is None:
                cached = CachedPrice(id=price.id)
                db.add(cached)

            cached.product_id = price.product_id
            cached.store_id = price.store_id
            cached.price_cents = price.price_cents
            cached.currency = price.currency
            cached.captured_at = utc_isoformat(price.captured_at)
            cached.status = price.status
            cached.confidence_score = price.confidence_score
            cached.idempotency_key = price.idempotency_key
            cached.is_pending = False

            await db.commit()

    async def add_local_price(
        self,
        idempotency_key: str,
        product_id: str,
        store_id: str,
        price_cents: int,
        currency: str,
        captured_at: str,
    ) -> None:
        """Optimistic row shown while the capture waits in the queue."""
        async with self.session_factory() as db:
            row_id = pending_price_id(idempotency_key)
            cached = await db.get(CachedPrice, row_id)
            if cached is None:
                cached = CachedPrice(id=row_id)
                db.add(cached)

            cached.product_id = product_id
            cached.store_id = store_id
            cached.price_cents = price_cents
            cached.currency = currency
            cached.captured_at = utc_isoformat(captured_at)
            cached.status = "active"
            cached.confidence_score = 1.0
            cached.idempotency_key = idempotency_key
            cached.is_pending = True

            await db.commit()

    async def discard_local_price(self, idempotency_key: str) -> None:
        async with self.session_factory() as db:
            await db.execute(delete(CachedPrice).where(CachedPrice.id == pending_price_id(idempotency_key)))
            await db.commit()

    async def upsert_stores(self, stores: Iterable[StoreSummary]) -> int:
        count = 0
        async with self.session_factory() as db:
            for store in stores:
                cached = await db.get(CachedStore, store.id)
                if cached is None:
                    cached = CachedStore(id=store.id)
                    db.add(cached)
                cached.name = store.name
                cached.updated_at = _utcnow()
                count += 1
            await db.commit()
        return count

    async def list_stores(self) -> List[CachedStore]:
        async with self.session_factory() as db:
            result = await db.execute(select(CachedStore).order_by(CachedStore.name.asc()))
            return list(result.scalars().all())

    async def get_price(self, price_id: str) -> Optional[CachedPrice]:
        async with self.session_factory() as db:
            return await db.get(CachedPrice, price_id)

    async def list_latest_by_product(self, product_id: str) -> List[LocalPriceView]:
        """Most recent active price per store, newest first."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(CachedPrice, CachedStore.name)
                .join(CachedStore, CachedStore.id == CachedPrice.store_id, isouter=True)
                .where(
                    CachedPrice.product_id == product_id,
                    CachedPrice.status == "active",
                )
                .order_by(CachedPrice.captured_at.desc())
            )
            latest: Dict[str, LocalPriceView] = {}
            for price, store_name in result.all():
                if price.store_id in latest:
                    continue
                latest[price.store_id] = LocalPriceView(
                    id=price.id,
                    product_id=price.product_id,
                    store_id=price.store_id,
                    store_name=store_name or UNKNOWN_STORE_NAME,
                    price_cents=price.price_cents,
                    currency=price.currency,
                    captured_at=price.captured_at,
                    is_pending=price.is_pending,
                )
            return list(latest.values())

"""Ingestion Service - idempotent price capture with outlier flagging"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shelfprice.core.config import settings
from shelfprice.core.errors import ConflictError, NotFoundError
from shelfprice.core.logging import get_logger
from shelfprice.models.device import Device
from shelfprice.models.price import Price, PRICE_STATUS_ACTIVE, PRICE_STATUS_FLAGGED
from shelfprice.models.product import Product
from shelfprice.models.store import Store
from shelfprice.schemas.price import PriceCreateRequest
from shelfprice.services.aggregation_service import AggregationService, price_with_relations

logger = get_logger("shelfprice.ingestion")

CONFIDENCE_PRECISION = Decimal("0.001")

# Dialects whose insert() supports on_conflict_do_nothing
ON_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass
class DeviationAssessment:
    """How far a submitted price sits from the product's active mean."""
    mean_cents: Optional[float]
    deviation_ratio: float
    auto_flagged: bool
    confidence_score: float


@dataclass
class IngestionResult:
    created_price: Price
    best_price: Optional[Price]
    # True when an earlier submission with the same key was returned
    replayed: bool = False


def assess_deviation(
    price_cents: int,
    mean_cents: Optional[float],
    threshold: float = 0.5,
) -> DeviationAssessment:
    """
    Score a submitted price against the mean of the active prices.

    Without a mean (no active prices, or a zero mean) the deviation is 0, so
    the price is neither flagged nor penalized. The flag needs the deviation
    to be strictly greater than the threshold.
    """
    if mean_cents is not None and mean_cents > 0:
        deviation_ratio = abs(price_cents - mean_cents) / mean_cents
    else:
        deviation_ratio = 0.0

    auto_flagged = mean_cents is not None and deviation_ratio > threshold

    raw_score = max(0.0, 1.0 - min(1.0, deviation_ratio))
    confidence_score = float(
        Decimal(str(raw_score)).quantize(CONFIDENCE_PRECISION, rounding=ROUND_HALF_UP)
    )

    return DeviationAssessment(
        mean_cents=mean_cents,
        deviation_ratio=deviation_ratio,
        auto_flagged=auto_flagged,
        confidence_score=confidence_score,
    )


class IngestionService:
    """
    Accepts price submissions under at-least-once delivery.

    A submission carrying an idempotency key is applied at most once: a
    known key returns the stored price, and a concurrent insert of the same
    key loses on the unique constraint and re-reads the winner instead of
    failing. Outlier detection compares the new price with the mean of all
    currently active prices of the product.
    """

    def __init__(self, db: AsyncSession, flag_threshold: Optional[float] = None):
        self.db = db
        self.flag_threshold = (
            settings.AUTO_FLAG_DEVIATION_THRESHOLD if flag_threshold is None else flag_threshold
        )
        self.aggregation = AggregationService(db)

    async def ingest(self, submission: PriceCreateRequest) -> IngestionResult:
        key = submission.idempotency_key
        product_id = str(submission.product_id)
        store_id = str(submission.store_id)

        if key:
            existing = await self._find_by_idempotency_key(key)
            if existing is not None:
                logger.info("Idempotent replay for key %s (price %s)", key, existing.id)
                return await self._replay(existing)

        await self._require(Product, product_id, "Product")
        await self._require(Store, store_id, "Store")

        mean_cents = await self._active_mean(product_id)
        assessment = assess_deviation(submission.price_cents, mean_cents, self.flag_threshold)
        status = PRICE_STATUS_FLAGGED if assessment.auto_flagged else submission.status

        price = Price(
            product_id=product_id,
            store_id=store_id,
            price_cents=submission.price_cents,
            currency=submission.currency,
            captured_at=submission.captured_at or datetime.now(timezone.utc),
            submitted_by=submission.submitted_by,
            photo_url=str(submission.photo_url) if submission.photo_url else None,
            status=status,
            confidence_score=assessment.confidence_score,
            idempotency_key=key,
        )
        self.db.add(price)

        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            if not key:
                raise
            return await self._resolve_conflict(key, exc)

        await self._register_device(submission.submitted_by)
        await self.db.commit()

        if assessment.auto_flagged:
            logger.warning(
                "Auto-flagged price %s for product %s: %d cents vs mean %.2f (deviation %.3f)",
                price.id,
                product_id,
                submission.price_cents,
                mean_cents,
                assessment.deviation_ratio,
            )
        else:
            logger.info(
                "Ingested price %s for product %s at store %s (status=%s, confidence=%.3f)",
                price.id,
                product_id,
                store_id,
                status,
                assessment.confidence_score,
            )

        created = await self._get_price(price.id)
        best = await self.aggregation.find_best_overall(product_id)
        return IngestionResult(created_price=created, best_price=best)

    async def _resolve_conflict(self, key: str, exc: IntegrityError) -> IngestionResult:
        """Lost an insert race on the idempotency key: return the winner."""
        existing = await self._find_by_idempotency_key(key)
        if existing is None:
            raise ConflictError(
                f"Could not store price for idempotency key: {key}",
                details={"idempotency_key": key},
            ) from exc

        logger.info("Concurrent duplicate for key %s resolved to price %s", key, existing.id)
        return await self._replay(existing)

    async def _replay(self, existing: Price) -> IngestionResult:
        best = await self.aggregation.find_best_overall(existing.product_id)
        return IngestionResult(created_price=existing, best_price=best, replayed=True)

    async def _find_by_idempotency_key(self, key: str) -> Optional[Price]:
        result = await self.db.execute(
            price_with_relations().where(Price.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def _get_price(self, price_id: str) -> Price:
        result = await self.db.execute(
            price_with_relations().where(Price.id == price_id)
        )
        return result.scalar_one()

    async def _require(self, model, entity_id: str, label: str) -> None:
        result = await self.db.execute(select(model.id).where(model.id == entity_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError(
                f"{label} not found: {entity_id}",
                details={f"{label.lower()}_id": entity_id},
            )

    async def _active_mean(self, product_id: str) -> Optional[float]:
        # Every active price counts, however old. A windowed or weighted mean
        # would stop a single early capture from anchoring the outlier check.
        result = await self.db.execute(
            select(func.avg(Price.price_cents)).where(
                Price.product_id == product_id,
                Price.status == PRICE_STATUS_ACTIVE,
            )
        )
        mean = result.scalar_one_or_none()
        return float(mean) if mean is not None else None

    async def _register_device(self, device_id: Optional[str]) -> None:
        """Create the device row on first sight; concurrent inserts are no-ops."""
        if not device_id:
            return

        insert = ON_CONFLICT_INSERTS.get(self._dialect_name())
        if insert is None:
            # No ON CONFLICT support known for this backend
            if await self.db.get(Device, device_id) is None:
                self.db.add(Device(id=device_id))
                await self.db.flush()
            return

        await self.db.execute(
            insert(Device)
            .values(id=device_id)
            .on_conflict_do_nothing(index_elements=[Device.id])
        )

    def _dialect_name(self) -> str:
        return self.db.get_bind().dialect.name

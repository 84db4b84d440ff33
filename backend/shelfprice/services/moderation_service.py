"""Moderation Service - human-driven price status changes"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shelfprice.core.config import settings
from shelfprice.core.errors import NotFoundError, ValidationError
from shelfprice.core.logging import get_logger
from shelfprice.models.price import Price, PRICE_STATUSES
from shelfprice.services.aggregation_service import price_with_relations

logger = get_logger("shelfprice.moderation")


class ModerationService:
    """
    Status transitions between active and flagged.

    Only a moderator moves a price between the two states; an auto-flag is
    never reversed on its own. Neither state is terminal, and concurrent
    moderation of one price keeps whichever write lands last.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def set_status(self, price_id: str, status: str) -> Price:
        if status not in PRICE_STATUSES:
            raise ValidationError(
                f"Unsupported price status: {status}",
                details={"status": status, "allowed": list(PRICE_STATUSES)},
            )

        result = await self.db.execute(select(Price).where(Price.id == price_id))
        price = result.scalar_one_or_none()
        if price is None:
            raise NotFoundError(f"Price not found: {price_id}", details={"price_id": price_id})

        previous = price.status
        price.status = status
        await self.db.commit()

        logger.info("Price %s moderated: %s -> %s", price_id, previous, status)

        refreshed = await self.db.execute(price_with_relations().where(Price.id == price_id))
        return refreshed.scalar_one()

    async def list_queue(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Price]:
        """Prices for review, most recent capture first, optionally by status."""
        limit = settings.MODERATION_LIST_DEFAULT_LIMIT if limit is None else limit
        if limit < 1 or limit > settings.MODERATION_LIST_MAX_LIMIT:
            raise ValidationError(
                f"limit must be between 1 and {settings.MODERATION_LIST_MAX_LIMIT}",
                details={"limit": limit},
            )

        query = price_with_relations()
        if status:
            query = query.where(Price.status == status)
        query = query.order_by(Price.captured_at.desc(), Price.id.asc()).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

"""Pending Submission Store - local durable queue of unconfirmed captures"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import select, delete, update, func

from shelfprice.offline.config import client_settings
from shelfprice.offline.local_db import PendingSubmission


@dataclass
class SubmissionDraft:
    """A capture as the UI hands it over, before any sync attempt."""
    idempotency_key: str
    product_id: str
    store_id: str
    price_cents: int
    currency: str
    captured_at: str
    photo_url: Optional[str] = None
    submitted_by: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingSubmissionStore:
    """
    Queue of captures awaiting server confirmation, keyed by idempotency key.

    Every operation is local; none waits on the network. Retry history
    (retry_count, last_error) is only changed by mark_failed.
    """

    def __init__(
        self,
        session_factory,
        clock: Callable[[], datetime] = _utcnow,
        max_error_length: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.max_error_length = (
            client_settings.LAST_ERROR_MAX_LENGTH if max_error_length is None else max_error_length
        )

    async def enqueue(self, draft: SubmissionDraft) -> PendingSubmission:
        """Insert or replace by key, keeping retry history of an existing entry."""
        async with self.session_factory() as db:
            entry = await db.get(PendingSubmission, draft.idempotency_key)
            if entry is None:
                entry = PendingSubmission(
                    idempotency_key=draft.idempotency_key,
                    retry_count=0,
                    last_error=None,
                )
                db.add(entry)

            entry.product_id = draft.product_id
            entry.store_id = draft.store_id
            entry.price_cents = draft.price_cents
            entry.currency = draft.currency
            entry.captured_at = draft.captured_at
            entry.photo_url = draft.photo_url
            entry.submitted_by = draft.submitted_by
            # A replaced entry moves to the back of the queue
            entry.created_at = self.clock()

            await db.commit()
            return entry

    async def list_pending(self, limit: Optional[int] = None) -> List[PendingSubmission]:
        """Oldest first."""
        limit = client_settings.PENDING_BATCH_LIMIT if limit is None else limit
        async with self.session_factory() as db:
            result = await db.execute(
                select(PendingSubmission)
                .order_by(PendingSubmission.created_at.asc(), PendingSubmission.idempotency_key.asc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get(self, idempotency_key: str) -> Optional[PendingSubmission]:
        async with self.session_factory() as db:
            return await db.get(PendingSubmission, idempotency_key)

    async def count(self) -> int:
        async with self.session_factory() as db:
            result = await db.execute(select(func.count()).select_from(PendingSubmission))
            return result.scalar_one()

    async def remove(self, idempotency_key: str) -> None:
        async with self.session_factory() as db:
            await db.execute(
                delete(PendingSubmission).where(PendingSubmission.idempotency_key == idempotency_key)
            )
            await db.commit()

    async def mark_failed(self, idempotency_key: str, message: str) -> None:
        async with self.session_factory() as db:
            await db.execute(
                update(PendingSubmission)
                .where(PendingSubmission.idempotency_key == idempotency_key)
                .values(
                    retry_count=PendingSubmission.retry_count + 1,
                    last_error=(message or "")[: self.max_error_length],
                )
            )
            await db.commit()

"""Sync Coordinator - drains the pending queue against the price API"""
import asyncio
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from shelfprice.core.logging import get_logger
from shelfprice.offline.api_client import PriceApiClient
from shelfprice.offline.config import client_settings
from shelfprice.offline.errors import (
    InvalidSubmissionError,
    SubmissionRejectedError,
    classify_sync_error,
)
from shelfprice.offline.local_cache import LocalPriceCache, utc_isoformat
from shelfprice.offline.local_db import PendingSubmission
from shelfprice.offline.pending_store import PendingSubmissionStore, SubmissionDraft

logger = get_logger("shelfprice.offline.sync")

CAPTURE_SYNCED = "synced"
CAPTURE_QUEUED = "queued"
CAPTURE_REJECTED = "rejected"

TRIGGER_STARTUP = "startup"
TRIGGER_FOREGROUND = "foreground"
TRIGGER_INTERVAL = "interval"

_KEY_ALPHABET = string.ascii_lowercase + string.digits


def make_idempotency_key(product_id: str, store_id: str, now_ms: Optional[int] = None) -> str:
    """price_{product}_{store}_{millis}_{random}: unique per logical capture."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(random.choices(_KEY_ALPHABET, k=6))
    return f"price_{product_id}_{store_id}_{now_ms}_{suffix}"


@dataclass
class SyncResult:
    synced: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    pending: int = 0
    # True when another cycle was already running and this one did nothing
    skipped: bool = False


@dataclass
class CaptureResult:
    state: str
    idempotency_key: str
    message: Optional[str] = None


class SyncCoordinator:
    """
    Single-flight drain of the pending submission queue for one device.

    Triggers (startup, foreground, interval) all funnel into trigger(),
    which runs the store-list refresh at most once per cooldown and then a
    drain cycle. A cycle requested while one is running is dropped, not
    queued. Entries are submitted one at a time in FIFO order and each
    outcome is handled on its own: success and rejection remove the entry,
    anything retriable increments its retry count.

    Clock and sleep are injectable so schedules can be tested without
    waiting on wall-clock time.
    """

    def __init__(
        self,
        store: PendingSubmissionStore,
        api: PriceApiClient,
        cache: LocalPriceCache,
        device_id: Optional[str] = None,
        refresh_stores: Optional[Callable[[], Awaitable[object]]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        interval_seconds: Optional[float] = None,
        store_refresh_cooldown_seconds: Optional[float] = None,
        batch_limit: Optional[int] = None,
    ):
        self.store = store
        self.api = api
        self.cache = cache
        self.device_id = device_id
        self.refresh_stores = refresh_stores
        self.clock = clock
        self.sleep = sleep
        self.interval_seconds = (
            client_settings.SYNC_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        )
        self.store_refresh_cooldown_seconds = (
            client_settings.STORE_REFRESH_COOLDOWN_SECONDS
            if store_refresh_cooldown_seconds is None
            else store_refresh_cooldown_seconds
        )
        self.batch_limit = client_settings.PENDING_BATCH_LIMIT if batch_limit is None else batch_limit

        self._draining = False
        self._last_store_refresh: Optional[float] = None

    @property
    def is_draining(self) -> bool:
        return self._draining

    async def on_startup(self) -> SyncResult:
        return await self.trigger(TRIGGER_STARTUP)

    async def on_foreground(self) -> SyncResult:
        return await self.trigger(TRIGGER_FOREGROUND)

    async def on_interval(self) -> SyncResult:
        return await self.trigger(TRIGGER_INTERVAL)

    async def trigger(self, reason: str) -> SyncResult:
        logger.debug("Sync triggered by %s", reason)
        await self._refresh_stores_if_due()
        return await self.drain()

    async def run_periodic(self, stop: asyncio.Event) -> None:
        """Startup sync, then one interval sync per period until stopped."""
        await self._run_guarded(TRIGGER_STARTUP)
        while not stop.is_set():
            await self.sleep(self.interval_seconds)
            if stop.is_set():
                break
            await self._run_guarded(TRIGGER_INTERVAL)

    async def _run_guarded(self, reason: str) -> None:
        # A broken cycle must not end the timer loop; the queue is intact
        # and the next tick retries it
        try:
            await self.trigger(reason)
        except Exception:
            logger.exception("Sync cycle (%s) failed", reason)

    async def _refresh_stores_if_due(self) -> None:
        if self.refresh_stores is None:
            return

        now = self.clock()
        if (
            self._last_store_refresh is not None
            and now - self._last_store_refresh < self.store_refresh_cooldown_seconds
        ):
            return

        self._last_store_refresh = now
        try:
            await self.refresh_stores()
        except Exception as exc:
            logger.warning("Store refresh failed, will retry after cooldown: %s", exc)

    async def drain(self) -> SyncResult:
        """Submit every pending entry once, oldest first."""
        if self._draining:
            logger.debug("Drain already in progress; request dropped")
            return SyncResult(skipped=True)

        self._draining = True
        try:
            result = SyncResult()
            entries = await self.store.list_pending(self.batch_limit)

            for entry in entries:
                try:
                    await self._process(entry, result)
                except Exception:
                    # Local bookkeeping failed; the entry stays queued as it was
                    logger.exception("Could not record outcome for submission %s", entry.idempotency_key)
                    result.failed.append(entry.idempotency_key)

            result.pending = await self.store.count()
            if entries:
                logger.info(
                    "Sync cycle done: %d synced, %d dropped, %d failed, %d pending",
                    len(result.synced),
                    len(result.dropped),
                    len(result.failed),
                    result.pending,
                )
            return result
        finally:
            self._draining = False

    async def _process(self, entry: PendingSubmission, result: SyncResult) -> None:
        key = entry.idempotency_key
        try:
            response = await self.api.submit_price(self._payload(entry))
            await self.cache.upsert_from_api_price(response.created_price)
            if response.best_price is not None:
                await self.cache.upsert_from_api_price(response.best_price)
            await self.store.remove(key)
            result.synced.append(key)
            return
        except Exception as exc:
            error = classify_sync_error(exc)

        if isinstance(error, SubmissionRejectedError):
            logger.warning("Dropping rejected submission %s: %s", key, error)
            await self.cache.discard_local_price(key)
            await self.store.remove(key)
            result.dropped.append(key)
        else:
            logger.info("Submission %s will be retried (attempt %d): %s", key, entry.retry_count + 1, error)
            await self.store.mark_failed(key, str(error))
            result.failed.append(key)

    def _payload(self, entry: PendingSubmission) -> dict:
        payload = {
            "productId": entry.product_id,
            "storeId": entry.store_id,
            "priceCents": entry.price_cents,
            "currency": entry.currency,
            "capturedAt": entry.captured_at,
            "photoUrl": entry.photo_url,
            "idempotencyKey": entry.idempotency_key,
            "status": "active",
        }
        submitted_by = entry.submitted_by or self.device_id
        if submitted_by:
            payload["submittedBy"] = submitted_by
        return payload

    async def capture_price(
        self,
        product_id: str,
        store_id: str,
        price_cents: int,
        currency: str,
        captured_at: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> CaptureResult:
        """
        Record a capture from the UI.

        The capture is always queued first, then a drain is attempted. If
        the server cannot be reached the caller gets "queued": saved locally,
        synced later.
        """
        currency = (currency or "").strip().upper()
        if not isinstance(price_cents, int) or isinstance(price_cents, bool) or price_cents <= 0:
            raise InvalidSubmissionError("price_cents must be a positive integer")
        if len(currency) != 3 or not currency.isalpha():
            raise InvalidSubmissionError("currency must be a 3-letter code")

        try:
            captured_at = utc_isoformat(captured_at or datetime.now(timezone.utc))
        except ValueError as exc:
            raise InvalidSubmissionError(f"captured_at is not an ISO 8601 time: {captured_at}") from exc

        key = make_idempotency_key(product_id, store_id)

        await self.store.enqueue(SubmissionDraft(
            idempotency_key=key,
            product_id=product_id,
            store_id=store_id,
            price_cents=price_cents,
            currency=currency,
            captured_at=captured_at,
            photo_url=photo_url,
            submitted_by=self.device_id,
        ))
        await self.cache.add_local_price(key, product_id, store_id, price_cents, currency, captured_at)

        result = await self.drain()
        if key in result.synced:
            return CaptureResult(state=CAPTURE_SYNCED, idempotency_key=key)
        if key in result.dropped:
            return CaptureResult(
                state=CAPTURE_REJECTED,
                idempotency_key=key,
                message="The server rejected this price",
            )
        return CaptureResult(
            state=CAPTURE_QUEUED,
            idempotency_key=key,
            message="Saved, will sync when online",
        )

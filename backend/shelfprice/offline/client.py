"""Offline client wiring: local database, API client and sync coordinator"""
import functools
from typing import Optional

import httpx

from shelfprice.core.logging import get_logger
from shelfprice.offline.api_client import PriceApiClient
from shelfprice.offline.device_identity import get_or_create_device_id
from shelfprice.offline.local_cache import LocalPriceCache
from shelfprice.offline.local_db import LocalDatabase
from shelfprice.offline.pending_store import PendingSubmissionStore
from shelfprice.offline.store_sync import sync_stores_to_local
from shelfprice.offline.sync_coordinator import SyncCoordinator

logger = get_logger("shelfprice.offline")


class OfflineClient:
    """
    Everything one install needs to capture prices offline.

    Usage:
        async with OfflineClient() as client:
            result = await client.coordinator.capture_price(...)
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        api_base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.database = LocalDatabase(database_url)
        self.api = PriceApiClient(base_url=api_base_url, transport=transport)
        self.pending = PendingSubmissionStore(self.database.session_factory)
        self.cache = LocalPriceCache(self.database.session_factory)
        self.device_id: Optional[str] = None
        self.coordinator: Optional[SyncCoordinator] = None

    async def start(self) -> SyncCoordinator:
        await self.database.init()
        self.device_id = await get_or_create_device_id(self.database.session_factory)
        self.coordinator = SyncCoordinator(
            self.pending,
            self.api,
            self.cache,
            device_id=self.device_id,
            refresh_stores=functools.partial(sync_stores_to_local, self.api, self.cache),
        )
        logger.info("Offline client ready for device %s", self.device_id)
        return self.coordinator

    async def close(self):
        await self.api.aclose()
        await self.database.dispose()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

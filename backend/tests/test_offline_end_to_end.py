# ============================================================================
# Offline client against the real app over ASGI
# ============================================================================
import httpx
import pytest_asyncio
from httpx import ASGITransport
from sqlalchemy import func, select

from conftest import make_draft
from shelfprice.main import app
from shelfprice.models.price import Price
from shelfprice.offline.api_client import PriceApiClient
from shelfprice.offline.client import OfflineClient
from shelfprice.offline.store_sync import sync_stores_to_local
from shelfprice.offline.sync_coordinator import CAPTURE_QUEUED, CAPTURE_SYNCED, SyncCoordinator


@pytest_asyncio.fixture
async def api(client):
    # `client` installs the test database override on the app
    async with PriceApiClient(base_url="http://test", transport=ASGITransport(app=app)) as api:
        yield api


@pytest_asyncio.fixture
async def offline_api():
    def handler(request):
        raise httpx.ConnectError("network unreachable", request=request)

    async with PriceApiClient(base_url="http://test", transport=httpx.MockTransport(handler)) as api:
        yield api


async def _server_price_count(session_factory) -> int:
    async with session_factory() as db:
        return (await db.execute(select(func.count()).select_from(Price))).scalar_one()


async def test_capture_online_reaches_server(api, catalog, pending_store, local_cache):
    coordinator = SyncCoordinator(pending_store, api, local_cache, device_id="device-1")

    result = await coordinator.capture_price(catalog.product.id, catalog.store_a.id, 189, "eur")

    assert result.state == CAPTURE_SYNCED
    best = await api.get_best_price(catalog.product.id)
    assert best.best_overall.price_cents == 189
    assert best.best_overall.submitted_by == "device-1"
    views = await local_cache.list_latest_by_product(catalog.product.id)
    assert [(v.store_name, v.is_pending) for v in views] == [("Store A", False)]


async def test_offline_capture_syncs_when_back_online(
    api, offline_api, catalog, pending_store, local_cache, session_factory
):
    coordinator = SyncCoordinator(pending_store, offline_api, local_cache, device_id="device-1")

    queued = await coordinator.capture_price(catalog.product.id, catalog.store_b.id, 210, "EUR")
    assert queued.state == CAPTURE_QUEUED
    assert await _server_price_count(session_factory) == 0

    coordinator.api = api
    result = await coordinator.on_foreground()

    assert result.synced == [queued.idempotency_key]
    assert await pending_store.count() == 0
    assert await _server_price_count(session_factory) == 1


async def test_lost_response_resubmission_stores_one_price(api, catalog, pending_store, local_cache, session_factory):
    coordinator = SyncCoordinator(pending_store, api, local_cache)
    draft = make_draft("price_lost_response", product_id=catalog.product.id, store_id=catalog.store_a.id)

    await pending_store.enqueue(draft)
    await coordinator.drain()
    # Same capture queued again, as if the first response never arrived
    await pending_store.enqueue(draft)
    result = await coordinator.drain()

    assert result.synced == ["price_lost_response"]
    assert await _server_price_count(session_factory) == 1


async def test_unknown_store_is_dropped(api, catalog, pending_store, local_cache):
    coordinator = SyncCoordinator(pending_store, api, local_cache)
    await pending_store.enqueue(
        make_draft("k-bad", product_id=catalog.product.id, store_id="00000000-0000-4000-8000-000000000000")
    )
    await pending_store.enqueue(make_draft("k-good", product_id=catalog.product.id, store_id=catalog.store_a.id))

    result = await coordinator.drain()

    assert result.dropped == ["k-bad"]
    assert result.synced == ["k-good"]


async def test_store_list_refresh(api, catalog, local_cache):
    count = await sync_stores_to_local(api, local_cache)

    assert count == 2
    assert [s.name for s in await local_cache.list_stores()] == ["Store A", "Store B"]


async def test_offline_client_wiring(client, catalog):
    offline_client = OfflineClient(
        database_url="sqlite:///:memory:",
        api_base_url="http://test",
        transport=ASGITransport(app=app),
    )
    async with offline_client as offline:
        result = await offline.coordinator.on_startup()

        assert result.pending == 0
        assert offline.device_id
        assert [s.name for s in await offline.cache.list_stores()] == ["Store A", "Store B"]

        capture = await offline.coordinator.capture_price(catalog.product.id, catalog.store_b.id, 175, "EUR")

        assert capture.state == CAPTURE_SYNCED
        history = await offline.api.get_price_history(catalog.product.id)
        assert [p.submitted_by for p in history] == [offline.device_id]

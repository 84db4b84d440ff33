# ============================================================================
# Tests for shelfprice/services/analytics_service.py and /analytics
# ============================================================================
from shelfprice.services.analytics_service import AnalyticsService


async def _seed_activity(add_price, catalog):
    await add_price(199, store=catalog.store_a)
    await add_price(205, store=catalog.store_a)
    await add_price(99, store=catalog.store_a, product=catalog.other_product)
    # Flagged prices still count as activity
    await add_price(150, store=catalog.store_b, status="flagged")


class TestSummary:
    async def test_totals_and_rankings(self, db, add_price, catalog):
        await _seed_activity(add_price, catalog)

        summary = await AnalyticsService(db).summary()

        assert summary.total_products == 2
        assert summary.total_prices == 4
        assert [(s.name, s.submissions_count) for s in summary.most_active_stores] == [
            ("Store A", 3),
            ("Store B", 1),
        ]
        assert [(p.barcode, p.scans_count) for p in summary.most_scanned_products] == [
            (catalog.product.barcode, 3),
            (catalog.other_product.barcode, 1),
        ]
        assert summary.generated_at.tzinfo is not None

    async def test_limit_applies_to_each_ranking(self, db, add_price, catalog):
        await _seed_activity(add_price, catalog)

        summary = await AnalyticsService(db).summary(limit=1)

        assert [s.store_id for s in summary.most_active_stores] == [catalog.store_a.id]
        assert [p.product_id for p in summary.most_scanned_products] == [catalog.product.id]

    async def test_no_prices_yet(self, db, catalog):
        summary = await AnalyticsService(db).summary()

        assert summary.total_products == 2
        assert summary.total_prices == 0
        assert summary.most_active_stores == []
        assert summary.most_scanned_products == []


class TestSummaryEndpoint:
    async def test_response_shape(self, client, add_price, catalog):
        await _seed_activity(add_price, catalog)

        response = await client.get("/analytics/summary", params={"limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["totals"] == {"products": 2, "prices": 4}
        assert data["mostActiveStores"][0] == {
            "storeId": catalog.store_a.id,
            "name": "Store A",
            "submissionsCount": 3,
        }
        assert data["mostScannedProducts"][0]["scansCount"] == 3
        assert data["mostScannedProducts"][0]["name"] == catalog.product.name
        assert "generatedAt" in data

    async def test_limit_bounds(self, client):
        assert (await client.get("/analytics/summary", params={"limit": 0})).status_code == 422
        assert (await client.get("/analytics/summary", params={"limit": 21})).status_code == 422

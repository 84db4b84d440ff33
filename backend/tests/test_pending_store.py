# ============================================================================
# Tests for shelfprice/offline/pending_store.py
# ============================================================================
from conftest import make_draft


class TestEnqueue:
    async def test_new_entry_starts_without_retry_history(self, pending_store):
        await pending_store.enqueue(make_draft("k1"))

        entry = await pending_store.get("k1")
        assert entry.retry_count == 0
        assert entry.last_error is None
        assert entry.price_cents == 199

    async def test_reenqueue_preserves_retry_history(self, pending_store):
        await pending_store.enqueue(make_draft("k1", price_cents=199))
        await pending_store.mark_failed("k1", "timeout")
        await pending_store.mark_failed("k1", "connection refused")

        await pending_store.enqueue(make_draft("k1", price_cents=205))

        entry = await pending_store.get("k1")
        assert entry.retry_count == 2
        assert entry.last_error == "connection refused"
        assert entry.price_cents == 205
        assert await pending_store.count() == 1

    async def test_reenqueue_moves_entry_to_back(self, pending_store):
        await pending_store.enqueue(make_draft("k1"))
        await pending_store.enqueue(make_draft("k2"))
        await pending_store.enqueue(make_draft("k1"))

        keys = [e.idempotency_key for e in await pending_store.list_pending()]
        assert keys == ["k2", "k1"]


class TestListPending:
    async def test_oldest_first(self, pending_store):
        for key in ("s1", "s2", "s3"):
            await pending_store.enqueue(make_draft(key))

        keys = [e.idempotency_key for e in await pending_store.list_pending()]
        assert keys == ["s1", "s2", "s3"]

    async def test_limit(self, pending_store):
        for key in ("s1", "s2", "s3"):
            await pending_store.enqueue(make_draft(key))

        keys = [e.idempotency_key for e in await pending_store.list_pending(limit=2)]
        assert keys == ["s1", "s2"]

    async def test_empty_queue(self, pending_store):
        assert await pending_store.list_pending() == []
        assert await pending_store.count() == 0


class TestRemoveAndMarkFailed:
    async def test_remove(self, pending_store):
        await pending_store.enqueue(make_draft("k1"))
        await pending_store.enqueue(make_draft("k2"))

        await pending_store.remove("k1")

        assert [e.idempotency_key for e in await pending_store.list_pending()] == ["k2"]

    async def test_remove_missing_key_is_noop(self, pending_store):
        await pending_store.remove("missing")
        assert await pending_store.count() == 0

    async def test_mark_failed_increments_and_records(self, pending_store):
        await pending_store.enqueue(make_draft("k1"))

        await pending_store.mark_failed("k1", "API request failed (503)")

        entry = await pending_store.get("k1")
        assert entry.retry_count == 1
        assert entry.last_error == "API request failed (503)"

    async def test_mark_failed_truncates_message(self, pending_store):
        await pending_store.enqueue(make_draft("k1"))

        await pending_store.mark_failed("k1", "x" * 2000)

        entry = await pending_store.get("k1")
        assert len(entry.last_error) == 500

    async def test_mark_failed_missing_key_is_noop(self, pending_store):
        await pending_store.mark_failed("missing", "boom")
        assert await pending_store.get("missing") is None

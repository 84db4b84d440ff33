# ============================================================================
# Shared fixtures: in-memory databases, seeded catalog, API and fake clients
# ============================================================================
import os

# Configure before any shelfprice import reads settings
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SEED_SAMPLE_DATA"] = "false"

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import shelfprice.models  # noqa: F401
from shelfprice.core.database import Base, get_db
from shelfprice.main import app
from shelfprice.models.price import Price
from shelfprice.models.product import Product
from shelfprice.models.store import Store
from shelfprice.offline.local_cache import LocalPriceCache
from shelfprice.offline.local_db import LocalDatabase
from shelfprice.offline.pending_store import PendingSubmissionStore, SubmissionDraft
from shelfprice.schemas.price import PriceCreateRequest, PriceSubmissionResponse

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def at(hours: int) -> datetime:
    """T0 plus a whole number of hours."""
    return T0 + timedelta(hours=hours)


# ----------------------------------------------------------------------------
# Server side
# ----------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(session_factory):
    """Two products and two stores."""
    milk = Product(barcode="5601312000011", name="Leite Meio Gordo 1L", brand="Mimosa")
    rice = Product(barcode="5601009970013", name="Arroz Carolino 1kg", brand="Cigala")
    store_a = Store(name="Store A", address="Rua A 1")
    store_b = Store(name="Store B", address="Rua B 2")

    async with session_factory() as session:
        session.add_all([milk, rice, store_a, store_b])
        await session.commit()

    return SimpleNamespace(product=milk, other_product=rice, store_a=store_a, store_b=store_b)


@pytest.fixture
def add_price(session_factory, catalog):
    """Insert a price row directly, bypassing ingestion."""
    async def _add(
        price_cents: int,
        store=None,
        product=None,
        captured_at: datetime = T0,
        status: str = "active",
        idempotency_key: str = None,
        submitted_by: str = None,
    ) -> Price:
        price = Price(
            product_id=(product or catalog.product).id,
            store_id=(store or catalog.store_a).id,
            price_cents=price_cents,
            currency="EUR",
            captured_at=captured_at,
            status=status,
            confidence_score=1.0,
            idempotency_key=idempotency_key,
            submitted_by=submitted_by,
        )
        async with session_factory() as session:
            session.add(price)
            await session.commit()
        return price

    return _add


@pytest.fixture
def submission(catalog):
    """Build a PriceCreateRequest for the default product and store."""
    def _build(price_cents: int, **overrides) -> PriceCreateRequest:
        data = {
            "product_id": catalog.product.id,
            "store_id": catalog.store_a.id,
            "price_cents": price_cents,
            "currency": "eur",
            "captured_at": T0,
        }
        data.update(overrides)
        return PriceCreateRequest(**data)

    return _build


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client against the app with get_db bound to the test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


# ----------------------------------------------------------------------------
# Offline client side
# ----------------------------------------------------------------------------

@pytest_asyncio.fixture
async def local_db():
    database = LocalDatabase("sqlite:///:memory:")
    await database.init()
    yield database
    await database.dispose()


class TickingClock:
    """Returns strictly increasing datetimes, one second apart."""

    def __init__(self, start: datetime = T0):
        self.current = start
        self.ticks = 0

    def __call__(self) -> datetime:
        self.ticks += 1
        return self.current + timedelta(seconds=self.ticks)


@pytest.fixture
def pending_store(local_db):
    return PendingSubmissionStore(local_db.session_factory, clock=TickingClock(), max_error_length=500)


@pytest.fixture
def local_cache(local_db):
    return LocalPriceCache(local_db.session_factory)


def make_draft(key: str, price_cents: int = 199, product_id: str = None, store_id: str = None) -> SubmissionDraft:
    return SubmissionDraft(
        idempotency_key=key,
        product_id=product_id or "11111111-1111-4111-8111-111111111111",
        store_id=store_id or "22222222-2222-4222-8222-222222222222",
        price_cents=price_cents,
        currency="EUR",
        captured_at=T0.isoformat(),
    )


def make_submission_response(payload: dict, status: str = "active") -> PriceSubmissionResponse:
    """What the server would answer for a payload, with a fresh price id."""
    price = {
        "id": str(uuid.uuid4()),
        "productId": payload["productId"],
        "storeId": payload["storeId"],
        "priceCents": payload["priceCents"],
        "currency": payload["currency"],
        "capturedAt": payload["capturedAt"],
        "submittedBy": payload.get("submittedBy"),
        "photoUrl": payload.get("photoUrl"),
        "status": status,
        "confidenceScore": 1.0,
        "idempotencyKey": payload.get("idempotencyKey"),
        "store": {"id": payload["storeId"], "name": "Store A"},
    }
    return PriceSubmissionResponse.model_validate({"createdPrice": price, "bestPrice": price})


class FakePriceApi:
    """Scripted stand-in for PriceApiClient.submit_price."""

    def __init__(self):
        self.calls = []
        self.outcomes = {}
        self.default_outcome = None

    async def submit_price(self, payload: dict) -> PriceSubmissionResponse:
        key = payload["idempotencyKey"]
        self.calls.append(key)
        outcome = self.outcomes.get(key, self.default_outcome)
        if isinstance(outcome, Exception):
            raise outcome
        return make_submission_response(payload)


@pytest.fixture
def fake_api():
    return FakePriceApi()

from decimal import Decimal

import httpx
import pytest

from pharmacy_plus.core.config import Settings
from pharmacy_plus.db.storage import MemoryStorage
from pharmacy_plus.main import PharmacyPlusSession
from pharmacy_plus.mock_backend import MockStore, create_app
from pharmacy_plus.models.schemas import Medicine

TEST_SETTINGS = Settings(
    API_BASE_URL="http://testserver/api",
    SECRET_KEY="test-secret",
    ACCESS_TOKEN_EXPIRE_MINUTES=30,
)

CUSTOMER = ("john@example.com", "customer123")
OTHER_CUSTOMER = ("jane@example.com", "customer123")
ADMIN = ("admin@pharmacy.com", "admin123")
PHARMACY_OWNER = ("sarah@pharmacy.com", "pharmacy123")
DELIVERY_PERSON = ("mike@delivery.com", "delivery123")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store():
    return MockStore.seeded()


@pytest.fixture
def backend(store):
    return create_app(store, TEST_SETTINGS)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def make_session(backend, storage):
    def factory(shared_storage=None):
        session = PharmacyPlusSession(
            settings=TEST_SETTINGS,
            storage=shared_storage if shared_storage is not None else storage,
            transport=httpx.ASGITransport(app=backend),
        )
        session.start()
        return session
    return factory


@pytest.fixture
async def session(anyio_backend, make_session):
    session = make_session()
    yield session
    await session.aclose()


@pytest.fixture
def requests_seen(backend):
    """Paths of every request that reached the backend."""
    seen = []

    @backend.middleware("http")
    async def record(request, call_next):
        seen.append((request.method, request.url.path))
        return await call_next(request)

    return seen


def medicine(med_id="m1", price="5.99", pharmacy_id="p1", stock=100, name=None):
    return Medicine(
        id=med_id,
        name=name or f"Medicine {med_id}",
        price=Decimal(price),
        stock=stock,
        pharmacy_id=pharmacy_id,
    )

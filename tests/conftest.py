"""
Test Configuration
==================

Pytest fixtures for the warranty registry tests.
"""

import os
from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["WARRANTY_STORAGE_BACKEND"] = "memory"
os.environ["WARRANTY_PASSWORD_HASH_ROUNDS"] = "4"
os.environ["OMNISEND_API_KEY"] = ""
os.environ["SHOPIFY_SHOP_NAME"] = ""
os.environ["SHOPIFY_ACCESS_TOKEN"] = ""

from services.warranty.services import (  # noqa: E402
    AdminDirectory,
    RegistrationCoordinator,
    RegistrationLedger,
    WarrantyNumberPool,
)
from services.warranty.store import InMemoryWarrantyStore, set_store  # noqa: E402
from services.warranty.sync import MarketingSyncDispatcher, set_dispatcher  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def store() -> Generator[InMemoryWarrantyStore, None, None]:
    """Fresh in-memory store installed as the global store."""
    store = InMemoryWarrantyStore()
    set_store(store)
    yield store
    set_store(None)


@pytest.fixture
def dispatcher() -> Generator[MarketingSyncDispatcher, None, None]:
    """Dispatcher with no clients (marketing sync disabled)."""
    dispatcher = MarketingSyncDispatcher([])
    set_dispatcher(dispatcher)
    yield dispatcher
    set_dispatcher(None)


@pytest.fixture
def pool(store: InMemoryWarrantyStore) -> WarrantyNumberPool:
    return WarrantyNumberPool(store)


@pytest.fixture
def ledger(store: InMemoryWarrantyStore) -> RegistrationLedger:
    return RegistrationLedger(store)


@pytest.fixture
def coordinator(
    pool: WarrantyNumberPool,
    ledger: RegistrationLedger,
    dispatcher: MarketingSyncDispatcher,
) -> RegistrationCoordinator:
    """Coordinator with instant retry backoff."""
    return RegistrationCoordinator(
        pool,
        ledger,
        dispatcher,
        link_max_attempts=3,
        backoff_min_seconds=0,
        backoff_max_seconds=0,
        store_timeout_seconds=1.0,
    )


@pytest.fixture
def admins(store: InMemoryWarrantyStore) -> AdminDirectory:
    return AdminDirectory(store)


@pytest_asyncio.fixture
async def warranty_client(
    store: InMemoryWarrantyStore,
    dispatcher: MarketingSyncDispatcher,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Warranty Registry Service."""
    from services.warranty.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def registration_data() -> dict[str, Any]:
    """Sample registration submission for code TH11-0001."""
    return {
        "first_name": "Jane",
        "last_name": "Doe",
        "full_name": "Jane Doe",
        "email": "jane.doe@example.com",
        "phone": "+15555550100",
        "product": "LDAS TH11 Headset",
        "product_id": "th11",
        "source": "Amazon CA",
        "order_id": "ORD-1001",
        "code": "TH11-0001",
        "purchase_date": datetime(2024, 3, 15, tzinfo=UTC),
    }


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Generate admin authentication headers."""
    from shared.auth import create_access_token

    token = create_access_token({
        "sub": "test-admin-id",
        "username": "test-admin",
        "roles": ["admin"],
    })
    return {"Authorization": f"Bearer {token}"}

import os
import sys
from decimal import Decimal
from pathlib import Path

import httpx
import pytest
import pytest_asyncio


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()
os.environ.setdefault("TRACING_ENABLED", "false")

from dropship_api.app import create_app  # noqa: E402
from dropship_api.domain.dropshipping import (  # noqa: E402
    DropshipOrderData,
    OrderLineItem,
    ShippingAddress,
)
from dropship_api.observability.dropshipping import get_dropship_store  # noqa: E402
from dropship_api.services.dropshipping import ResiliencePolicy  # noqa: E402


@pytest.fixture(autouse=True)
def reset_dropship_store():
    store = get_dropship_store()
    store.reset()
    yield store
    store.reset()


@pytest.fixture
def fast_policy() -> ResiliencePolicy:
    return ResiliencePolicy(
        timeout_seconds=1.0,
        read_retry_attempts=2,
        backoff_seconds=0.0,
        breaker_failure_threshold=5,
        breaker_reset_seconds=30.0,
    )


@pytest_asyncio.fixture
async def mock_http():
    """Factory for AsyncClients backed by an ``httpx.MockTransport`` handler."""

    clients: list[httpx.AsyncClient] = []

    def factory(handler) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    try:
        yield factory
    finally:
        for client in clients:
            await client.aclose()


@pytest.fixture
def order_data() -> DropshipOrderData:
    return DropshipOrderData(
        items=(
            OrderLineItem(product_id="prod-1", variant_id="var-1", quantity=2, unit_price=Decimal("12.50")),
        ),
        shipping_address=ShippingAddress(
            first_name="Ada",
            last_name="Lovelace",
            street="1 Analytical Way",
            city="Austin",
            state="TX",
            postal_code="73301",
            country="US",
        ),
        customer_email="ada@example.com",
        customer_phone="+15550100",
    )


@pytest.fixture
def order_payload() -> dict:
    return {
        "items": [{"productId": "prod-1", "variantId": "var-1", "quantity": 2, "unitPrice": "12.50"}],
        "shippingAddress": {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "street": "1 Analytical Way",
            "city": "Austin",
            "state": "TX",
            "postalCode": "73301",
            "country": "US",
        },
        "customerEmail": "ada@example.com",
    }


@pytest_asyncio.fixture
async def api_client_factory():
    """Build an ASGI client around an app wired to an injected service."""

    clients: list[httpx.AsyncClient] = []

    def factory(service) -> httpx.AsyncClient:
        app = create_app(service)
        client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
        clients.append(client)
        return client

    try:
        yield factory
    finally:
        for client in clients:
            await client.aclose()

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from dropship_api.domain.dropshipping import (
    OrderNotFoundError,
    OrderState,
    ProductQuery,
    ProviderHealthStatus,
    VendorRequestError,
)
from dropship_api.services.dropshipping import DSersProvider

BASE_URL = "https://dsers.test/v1"


def _products_payload() -> dict:
    return {
        "products": [
            {"product_id": "ds-1", "title": "LED Strip", "price": 7.99, "images": ["https://img.test/1.jpg"], "status": "active", "stock": 40},
            {"product_id": "ds-2", "title": "Phone Stand", "price": "4.10", "status": "inactive"},
            {"product_id": "ds-3", "title": "Desk Lamp", "price": "18.00", "status": "active", "stock": 0},
        ]
    }


@pytest.mark.asyncio
async def test_get_products_forwards_query_parameters(mock_http, fast_policy):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_products_payload())

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    products = await provider.get_products(
        ProductQuery(keyword="led", min_price=Decimal("5"), page=2, extra={"warehouse": "US"})
    )

    params = seen[0].url.params
    assert seen[0].url.path == "/v1/products"
    assert params["keyword"] == "led"
    assert params["page"] == "2"
    assert params["limit"] == "20"
    assert params["min_price"] == "5"
    assert params["warehouse"] == "US"
    assert "category" not in params
    assert seen[0].headers["Authorization"] == "Bearer ds-key"
    assert [product.id for product in products] == ["ds-1", "ds-2", "ds-3"]
    assert products[0].price == Decimal("7.99")
    assert products[0].images == ("https://img.test/1.jpg",)


@pytest.mark.asyncio
async def test_available_products_drop_inactive_and_out_of_stock(mock_http, fast_policy):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_products_payload())

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    available = await provider.get_available_products()

    assert [product.id for product in available] == ["ds-1"]


@pytest.mark.asyncio
async def test_get_product_returns_none_when_missing(mock_http, fast_policy):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/products/ds-1"):
            return httpx.Response(200, json={"product": {"product_id": "ds-1", "title": "LED Strip", "price": "7.99"}})
        return httpx.Response(404, json={"message": "Product not found"})

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    found = await provider.get_product("ds-1")

    assert found is not None and found.name == "LED Strip"
    assert await provider.get_product("ds-404") is None


@pytest.mark.asyncio
async def test_create_order_returns_vendor_order_id(mock_http, fast_policy, order_data):
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"dsers_order_id": "DS-1001", "total_cost": 21.35})

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    result = await provider.create_order(order_data)

    assert result.success
    assert result.order_id == "DS-1001"
    assert result.cost == Decimal("21.35")
    assert bodies[0]["products"][0] == {"product_id": "prod-1", "variant_id": "var-1", "quantity": 2, "price": "12.50"}
    assert bodies[0]["shipping_address"]["province"] == "TX"
    assert bodies[0]["customer_info"] == {"email": "ada@example.com"}


@pytest.mark.asyncio
async def test_create_order_rejection_carries_vendor_message(mock_http, fast_policy, order_data):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Variant var-1 is out of stock"})

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    result = await provider.create_order(order_data)

    assert result.success is False
    assert result.error == "Variant var-1 is out of stock"


@pytest.mark.asyncio
async def test_create_order_without_id_is_a_vendor_error(mock_http, fast_policy, order_data):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "queued"})

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    with pytest.raises(VendorRequestError):
        await provider.create_order(order_data)


@pytest.mark.asyncio
async def test_order_status_maps_vendor_states(mock_http, fast_policy):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/orders/DS-1"):
            return httpx.Response(
                200,
                json={"order": {"status": "IN_TRANSIT", "tracking_number": "LP0001", "tracking_url": "https://t.test/LP0001"}},
            )
        if request.url.path.endswith("/orders/DS-2"):
            return httpx.Response(200, json={"status": "completed"})
        return httpx.Response(404, json={})

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    in_transit = await provider.get_order_status("DS-1")
    completed = await provider.get_order_status("DS-2")

    assert in_transit.state is OrderState.SHIPPED
    assert in_transit.tracking_number == "LP0001"
    assert completed.state is OrderState.DELIVERED
    with pytest.raises(OrderNotFoundError):
        await provider.get_order_status("DS-3")


@pytest.mark.asyncio
async def test_cancel_order_reads_success_flag(mock_http, fast_policy):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        if request.url.path.endswith("/orders/DS-1/cancel"):
            return httpx.Response(200, json={"success": True})
        if request.url.path.endswith("/orders/DS-2/cancel"):
            return httpx.Response(200, json={"success": False})
        if request.url.path.endswith("/orders/DS-3/cancel"):
            return httpx.Response(400, json={"message": "Already shipped"})
        return httpx.Response(404, json={})

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    assert await provider.cancel_order("DS-1") is True
    assert await provider.cancel_order("DS-2") is False
    assert await provider.cancel_order("DS-3") is False
    with pytest.raises(OrderNotFoundError):
        await provider.cancel_order("DS-4")


@pytest.mark.asyncio
async def test_health_check_reports_offline_after_retries(mock_http, fast_policy):
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        assert request.url.path == "/v1/account"
        return httpx.Response(503, json={"message": "maintenance"})

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    health = await provider.check_health()

    assert health.status is ProviderHealthStatus.OFFLINE
    assert health.detail == "dsers responded with HTTP 503"
    assert calls == 3


@pytest.mark.asyncio
async def test_stock_values_are_parsed_tolerantly(mock_http, fast_policy):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "products": [
                    {"product_id": "a", "title": "Float string", "price": "1", "stock": "12.0"},
                    {"product_id": "b", "title": "Unknown", "price": "1", "stock": "N/A"},
                    {"product_id": "c", "title": "Sold out", "price": "1", "stock": "0.0"},
                    {"product_id": "d", "title": "Fractional", "price": "1", "stock": 0.5},
                ]
            },
        )

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    products = await provider.get_products()

    assert {product.id: product.available for product in products} == {
        "a": True,
        "b": True,
        "c": False,
        "d": True,
    }


@pytest.mark.asyncio
async def test_create_order_auth_failure_is_not_a_rejection(mock_http, fast_policy, order_data):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Invalid API key"})

    provider = DSersProvider("ds-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    with pytest.raises(VendorRequestError) as exc_info:
        await provider.create_order(order_data)

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Invalid API key"

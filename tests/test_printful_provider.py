from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from dropship_api.domain.dropshipping import (
    OrderNotFoundError,
    OrderState,
    ProductQuery,
    ProviderDisabledError,
    ProviderHealthStatus,
    VendorRequestError,
)
from dropship_api.services.dropshipping import PrintfulProvider
from dropship_api.services.dropshipping.providers.printful import map_printful_status

BASE_URL = "https://printful.test"

CATALOG = {
    "code": 200,
    "result": [
        {"id": 1, "title": "Unisex Tee", "description": "Soft cotton", "price": "15.00", "type_name": "T-Shirt"},
        {"id": 2, "title": "Ceramic Mug", "description": "11oz mug", "price": "9.50", "type_name": "Mug"},
        {"id": 3, "title": "Tote Bag", "description": "Canvas bag", "price": "12.00", "is_discontinued": True},
    ],
}


@pytest.mark.asyncio
async def test_disabled_printful_never_touches_the_network(mock_http, fast_policy, order_data):
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    provider = PrintfulProvider("  ", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    assert not provider.is_enabled
    with pytest.raises(ProviderDisabledError) as exc_info:
        await provider.create_order(order_data)
    assert exc_info.value.provider == "printful"
    with pytest.raises(ProviderDisabledError):
        await provider.cancel_order("123")
    with pytest.raises(ProviderDisabledError):
        await provider.get_order_status("123")
    assert await provider.get_products() == []
    assert await provider.get_product("1") is None
    assert calls == []


@pytest.mark.asyncio
async def test_get_products_filters_and_paginates_locally(mock_http, fast_policy):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        assert request.url.path == "/products"
        return httpx.Response(200, json=CATALOG)

    provider = PrintfulProvider(
        "pf-key",
        store_id="store-9",
        base_url=BASE_URL,
        http_client=mock_http(handler),
        policy=fast_policy,
    )

    everything = await provider.get_products()
    mugs = await provider.get_products(ProductQuery(keyword="mug"))
    second_page = await provider.get_products(ProductQuery(page=2, limit=1))
    available = await provider.get_available_products()

    assert [product.id for product in everything] == ["1", "2", "3"]
    assert [product.name for product in mugs] == ["Ceramic Mug"]
    assert [product.id for product in second_page] == ["2"]
    assert [product.id for product in available] == ["1", "2"]
    assert everything[0].category == "T-Shirt"
    assert everything[2].category == "Custom Products"
    assert seen[0].headers["Authorization"] == "Bearer pf-key"
    assert seen[0].headers["X-PF-Store-Id"] == "store-9"


@pytest.mark.asyncio
async def test_get_product_transforms_nested_variants(mock_http, fast_policy):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/products/77":
            return httpx.Response(
                200,
                json={
                    "result": {
                        "product": {"id": 77, "title": "Hoodie", "image": "https://cdn.test/h.png"},
                        "variants": [
                            {"id": 701, "name": "Hoodie / S", "size": "S", "color": "Black", "price": "32.00", "in_stock": False},
                            {"id": 702, "name": "Hoodie / M", "size": "M", "color": "Black", "price": "29.00"},
                        ],
                    }
                },
            )
        return httpx.Response(404, json={"code": 404, "result": "Not found"})

    provider = PrintfulProvider("pf-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    product = await provider.get_product("77")
    missing = await provider.get_product("78")

    assert missing is None
    assert product is not None
    assert product.price == Decimal("29.00")
    assert product.images == ("https://cdn.test/h.png",)
    assert product.available is True
    assert product.variants[0]["options"] == {"size": "S", "color": "Black"}
    assert product.variants[0]["inStock"] is False
    assert product.variants[1]["image"] == "https://cdn.test/h.png"


@pytest.mark.asyncio
async def test_create_order_posts_recipient_and_returns_cost(mock_http, fast_policy, order_data):
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"result": {"id": 9001, "status": "draft", "costs": {"total": "31.40"}}})

    provider = PrintfulProvider("pf-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    result = await provider.create_order(order_data)

    assert result.success
    assert result.order_id == "9001"
    assert result.cost == Decimal("31.40")
    recipient = bodies[0]["recipient"]
    assert recipient["name"] == "Ada Lovelace"
    assert recipient["country_code"] == "US"
    assert bodies[0]["items"] == [{"sync_variant_id": "var-1", "quantity": 2, "retail_price": "12.50"}]


@pytest.mark.asyncio
async def test_create_order_maps_validation_failure_to_rejection(mock_http, fast_policy, order_data):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"code": 400, "result": "Invalid", "error": {"reason": "BadRequest", "message": "Invalid address"}},
        )

    provider = PrintfulProvider("pf-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    result = await provider.create_order(order_data)

    assert not result.success
    assert result.order_id is None
    assert result.error == "Invalid address"


@pytest.mark.asyncio
async def test_create_order_is_not_retried_on_server_error(mock_http, fast_policy, order_data):
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(502, json={"error": "bad gateway"})

    provider = PrintfulProvider("pf-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    with pytest.raises(VendorRequestError) as exc_info:
        await provider.create_order(order_data)

    assert exc_info.value.status_code == 502
    assert calls == 1


@pytest.mark.asyncio
async def test_order_status_reports_tracking(mock_http, fast_policy):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/orders/555":
            return httpx.Response(
                200,
                json={
                    "result": {
                        "id": 555,
                        "status": "fulfilled",
                        "updated": 1700000000,
                        "shipments": [{"tracking_number": "1Z999", "tracking_url": "https://track.test/1Z999"}],
                    }
                },
            )
        return httpx.Response(404, json={"code": 404})

    provider = PrintfulProvider("pf-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    status = await provider.get_order_status("555")

    assert status.state is OrderState.SHIPPED
    assert status.tracking_number == "1Z999"
    assert status.tracking_url == "https://track.test/1Z999"
    assert status.updates[0].status == "fulfilled"
    assert status.updates[0].timestamp is not None

    with pytest.raises(OrderNotFoundError) as exc_info:
        await provider.get_order_status("556")
    assert exc_info.value.order_id == "556"


@pytest.mark.asyncio
async def test_cancel_order_uses_delete_and_checks_status(mock_http, fast_policy):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        if request.url.path == "/orders/1":
            return httpx.Response(200, json={"result": {"id": 1, "status": "canceled"}})
        if request.url.path == "/orders/2":
            return httpx.Response(409, json={"error": {"message": "Order already fulfilled"}})
        return httpx.Response(404, json={})

    provider = PrintfulProvider("pf-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    assert await provider.cancel_order("1") is True
    assert await provider.cancel_order("2") is False
    with pytest.raises(OrderNotFoundError):
        await provider.cancel_order("3")


def test_status_mapping_defaults_to_pending():
    assert map_printful_status("inprocess") is OrderState.PROCESSING
    assert map_printful_status("CANCELED") is OrderState.CANCELLED
    assert map_printful_status("something-new") is OrderState.PENDING
    assert map_printful_status(None) is OrderState.PENDING


@pytest.mark.asyncio
async def test_health_check_calls_store_endpoint(mock_http, fast_policy):
    responses = iter([httpx.Response(200, json={"result": {"id": 1}}), httpx.Response(401, json={"error": "bad key"})])

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/store"
        return next(responses)

    provider = PrintfulProvider("pf-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    healthy = await provider.check_health()
    degraded = await provider.check_health()
    disabled = await PrintfulProvider(None, base_url=BASE_URL).check_health()

    assert healthy.status is ProviderHealthStatus.HEALTHY
    assert healthy.latency_ms is not None
    assert degraded.status is ProviderHealthStatus.DEGRADED
    assert degraded.detail == "HTTP 401"
    assert disabled.status is ProviderHealthStatus.DISABLED


@pytest.mark.asyncio
async def test_available_products_fill_the_requested_page(mock_http, fast_policy):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "result": [
                    {"id": 10, "title": "Retired Cap", "price": "11.00", "is_discontinued": True},
                    {"id": 11, "title": "Poster", "price": "8.00"},
                    {"id": 12, "title": "Sticker", "price": "2.00"},
                ]
            },
        )

    provider = PrintfulProvider("pf-key", base_url=BASE_URL, http_client=mock_http(handler), policy=fast_policy)

    available = await provider.get_available_products(ProductQuery(limit=2))
    listed = await provider.get_products(ProductQuery(limit=2))

    assert [product.id for product in available] == ["11", "12"]
    assert [product.id for product in listed] == ["10", "11"]

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from dropship_api.api.errors import error_response
from dropship_api.domain.dropshipping.errors import DropshipErrorCode
from dropship_api.domain.dropshipping.types import ProductQuery
from dropship_api.observability.dropshipping import get_dropship_store
from dropship_api.schemas.dropshipping import (
    CancelOrderResponse,
    CreateDropshipOrderRequest,
    DeliveryWindow,
    DropshipOrderResultResponse,
    DropshipProductResponse,
    ErrorResponse,
    OrderStatusResponse,
    ProviderDescriptorResponse,
    ProviderHealthResponse,
    ShippingCosts,
    ShippingEstimateRequest,
    ShippingEstimateResponse,
)
from dropship_api.services.dropshipping import DropshippingService, get_dropshipping_service
from dropship_api.services.dropshipping.shipping import estimate_shipping

router = APIRouter(prefix="/dropshipping", tags=["Dropshipping"])


def get_service(request: Request) -> DropshippingService:
    service = getattr(request.app.state, "dropshipping_service", None)
    if service is None:
        return get_dropshipping_service()
    return service


_KNOWN_QUERY_PARAMS = frozenset({"keyword", "category", "minPrice", "maxPrice", "page", "limit"})


def product_query(
    request: Request,
    keyword: str | None = Query(None),
    category: str | None = Query(None),
    min_price: Decimal | None = Query(None, alias="minPrice", ge=0),
    max_price: Decimal | None = Query(None, alias="maxPrice", ge=0),
    page: int | None = Query(None, ge=1),
    limit: int | None = Query(None, ge=1, le=100),
) -> ProductQuery:
    """Known filters are validated here; any other query parameter is passed to the vendor as-is."""

    extra = {key: value for key, value in request.query_params.items() if key not in _KNOWN_QUERY_PARAMS}
    return ProductQuery.from_mapping(
        {
            **extra,
            "keyword": keyword,
            "category": category,
            "min_price": min_price,
            "max_price": max_price,
            "page": page,
            "limit": limit,
        }
    )


@router.get(
    "/providers",
    summary="List enabled dropshipping providers",
    response_model=list[ProviderDescriptorResponse],
)
async def list_enabled_providers(
    service: DropshippingService = Depends(get_service),
) -> list[ProviderDescriptorResponse]:
    return [ProviderDescriptorResponse.from_domain(item) for item in service.get_enabled_providers()]


@router.get(
    "/providers/status",
    summary="List every registered provider with its status",
    response_model=list[ProviderDescriptorResponse],
)
async def list_provider_status(
    service: DropshippingService = Depends(get_service),
) -> list[ProviderDescriptorResponse]:
    return [ProviderDescriptorResponse.from_domain(item) for item in service.list_providers()]


@router.get(
    "/providers/health",
    summary="Health check of every provider",
    response_model=dict[str, ProviderHealthResponse],
)
async def provider_health(
    service: DropshippingService = Depends(get_service),
) -> dict[str, ProviderHealthResponse]:
    health = await service.get_provider_health()
    return {name: ProviderHealthResponse.from_domain(result) for name, result in health.items()}


@router.get(
    "/products",
    summary="Available products across all enabled providers",
    response_model=list[DropshipProductResponse],
)
async def list_all_products(
    query: ProductQuery = Depends(product_query),
    service: DropshippingService = Depends(get_service),
) -> list[DropshipProductResponse]:
    products = await service.get_all_products(query)
    return [DropshipProductResponse.from_domain(product) for product in products]


@router.get(
    "/providers/{provider}/products",
    summary="Catalog of a single provider",
    response_model=list[DropshipProductResponse],
)
async def list_provider_products(
    provider: str,
    query: ProductQuery = Depends(product_query),
    service: DropshippingService = Depends(get_service),
) -> list[DropshipProductResponse]:
    products = await service.get_products(provider, query)
    return [DropshipProductResponse.from_domain(product) for product in products]


@router.get(
    "/providers/{provider}/products/{product_id}",
    summary="Single product detail",
    response_model=DropshipProductResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_provider_product(
    provider: str,
    product_id: str,
    service: DropshippingService = Depends(get_service),
):
    product = await service.get_product(provider, product_id)
    if product is None:
        return error_response(
            DropshipErrorCode.PRODUCT_NOT_FOUND,
            f"Product {product_id} not found on {provider}",
            provider=provider,
        )
    return DropshipProductResponse.from_domain(product)


@router.post(
    "/orders",
    summary="Submit an order to a dropshipping provider",
    response_model=DropshipOrderResultResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def create_dropship_order(
    payload: CreateDropshipOrderRequest,
    service: DropshippingService = Depends(get_service),
):
    order_data = payload.order.to_domain()
    result = await service.create_order(order_data, payload.provider)
    if not result.success:
        return error_response(
            DropshipErrorCode.VENDOR_REJECTED,
            result.error or "Failed to create dropship order",
            provider=result.provider,
        )
    return DropshipOrderResultResponse.from_domain(result)


@router.get(
    "/providers/{provider}/orders/{order_id}",
    summary="Order status as reported by the provider",
    response_model=OrderStatusResponse,
)
async def get_order_status(
    provider: str,
    order_id: str,
    service: DropshippingService = Depends(get_service),
) -> OrderStatusResponse:
    order_status = await service.get_order_status(provider, order_id)
    return OrderStatusResponse.from_domain(service.get_provider(provider).name, order_status)


@router.post(
    "/providers/{provider}/orders/{order_id}/cancel",
    summary="Request cancellation of a provider order",
    response_model=CancelOrderResponse,
)
async def cancel_order(
    provider: str,
    order_id: str,
    service: DropshippingService = Depends(get_service),
) -> CancelOrderResponse:
    cancelled = await service.cancel_order(provider, order_id)
    return CancelOrderResponse(
        orderId=order_id,
        provider=service.get_provider(provider).name,
        cancelled=cancelled,
    )


@router.post(
    "/shipping/estimate",
    summary="Flat-rate shipping estimate",
    response_model=ShippingEstimateResponse,
)
async def shipping_estimate(
    payload: ShippingEstimateRequest,
    service: DropshippingService = Depends(get_service),
) -> ShippingEstimateResponse:
    provider = service.get_provider(payload.provider)
    estimate = estimate_shipping(payload.quantity, payload.destination_country)
    logger.debug(
        "Shipping estimate computed",
        provider=provider.name,
        destination_country=payload.destination_country,
        total=str(estimate.total),
    )
    return ShippingEstimateResponse(
        provider=provider.name,
        productId=payload.product_id,
        quantity=payload.quantity,
        destinationCountry=payload.destination_country.upper(),
        destinationZip=payload.destination_zip,
        costs=ShippingCosts(
            baseShipping=estimate.base_shipping,
            perItemCost=estimate.per_item_cost,
            internationalSurcharge=estimate.international_surcharge,
            totalShipping=estimate.total,
        ),
        estimatedDelivery=DeliveryWindow(min=estimate.min_days, max=estimate.max_days),
    )


@router.get("/observability", summary="Vendor call counters per provider")
async def dropship_observability() -> JSONResponse:
    return JSONResponse(get_dropship_store().snapshot().as_dict())

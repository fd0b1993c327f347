"""DSers (AliExpress) dropshipping provider."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, NoReturn

from dropship_api.domain.dropshipping.errors import OrderNotFoundError, VendorRequestError
from dropship_api.domain.dropshipping.types import (
    DropshipOrderData,
    DropshipOrderResult,
    DropshipProduct,
    OrderState,
    OrderStatus,
    ProductQuery,
    to_decimal,
)

from ..resilience import VendorResponse
from .base import VENDOR_REJECTION_STATUSES, DropshippingProvider, vendor_error_detail

_STATUS_MAP: Dict[str, OrderState] = {
    "awaiting_payment": OrderState.PENDING,
    "pending": OrderState.PENDING,
    "awaiting_shipment": OrderState.PROCESSING,
    "processing": OrderState.PROCESSING,
    "shipped": OrderState.SHIPPED,
    "in_transit": OrderState.SHIPPED,
    "delivered": OrderState.DELIVERED,
    "completed": OrderState.DELIVERED,
    "cancelled": OrderState.CANCELLED,
    "canceled": OrderState.CANCELLED,
    "closed": OrderState.CANCELLED,
    "failed": OrderState.FAILED,
}


def _stock_level(value: Any) -> Decimal | None:
    """Vendor stock as a number; None when missing or unreadable ("N/A")."""

    if value is None or value == "":
        return None
    try:
        level = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not level.is_finite():
        return None
    return level


class DSersProvider(DropshippingProvider):
    name = "dsers"
    display_name = "DSers"
    default_base_url = "https://api.dsers.com/v1"
    health_path = "/account"

    def _transform_product(self, raw: Mapping[str, Any]) -> DropshipProduct:
        images = raw.get("images") or []
        stock = _stock_level(raw.get("stock"))
        status = str(raw.get("status") or "active").lower()
        return DropshipProduct(
            id=str(raw.get("product_id") or raw.get("id") or ""),
            name=raw.get("title") or "",
            description=raw.get("description") or "",
            price=to_decimal(raw.get("price")),
            images=tuple(str(image) for image in images if image),
            variants=tuple(variant for variant in raw.get("variants") or [] if isinstance(variant, Mapping)),
            category=raw.get("category") or "",
            provider=self.name,
            currency=raw.get("currency") or "USD",
            available=status == "active" and (stock is None or stock > 0),
        )

    def _raise_vendor_error(self, response: VendorResponse, default: str) -> NoReturn:
        raise VendorRequestError(
            vendor_error_detail(response.payload, default),
            provider=self.name,
            status_code=response.status_code,
            url=response.url,
        )

    async def _get_products(self, query: ProductQuery, *, available_only: bool = False) -> List[DropshipProduct]:
        # Paging is vendor side, so available_only can only trim the returned page.
        params: Dict[str, Any] = {
            "keyword": query.keyword or "",
            "category": query.category,
            "page": query.page or 1,
            "limit": query.limit or 20,
        }
        if query.min_price is not None:
            params["min_price"] = str(query.min_price)
        if query.max_price is not None:
            params["max_price"] = str(query.max_price)
        for key, value in query.extra.items():
            params.setdefault(key, value)

        response = await self._client.request("GET", "/products", params=params)
        if not response.ok:
            self._raise_vendor_error(response, "Failed to list DSers products")
        raw_products = response.payload.get("products") or []
        return [self._transform_product(raw) for raw in raw_products if isinstance(raw, Mapping)]

    async def _get_product(self, product_id: str) -> DropshipProduct | None:
        response = await self._client.request("GET", f"/products/{product_id}")
        if response.status_code == 404:
            return None
        if not response.ok:
            self._raise_vendor_error(response, "Failed to get DSers product")
        raw = response.payload.get("product")
        if not isinstance(raw, Mapping):
            return None
        return self._transform_product(raw)

    async def _create_order(self, order_data: DropshipOrderData) -> DropshipOrderResult:
        address = order_data.shipping_address
        payload = {
            "products": [
                {
                    "product_id": item.product_id,
                    "variant_id": item.variant_id,
                    "quantity": item.quantity,
                    "price": str(item.unit_price),
                }
                for item in order_data.items
            ],
            "shipping_address": {
                "first_name": address.first_name,
                "last_name": address.last_name,
                "address1": address.street,
                "address2": address.street2,
                "city": address.city,
                "province": address.state,
                "zip": address.postal_code,
                "country_code": address.country,
                "phone": order_data.customer_phone,
            },
            "customer_info": {"email": order_data.customer_email},
            "notes": order_data.notes,
        }
        response = await self._client.request("POST", "/orders", json=payload)
        if response.status_code in VENDOR_REJECTION_STATUSES:
            return DropshipOrderResult.rejected(
                self.name,
                vendor_error_detail(response.payload, f"DSers rejected the order (HTTP {response.status_code})"),
            )
        if not response.ok:
            self._raise_vendor_error(response, f"Unexpected DSers response (HTTP {response.status_code})")
        order_id = response.payload.get("dsers_order_id") or response.payload.get("order_id")
        if not order_id:
            raise VendorRequestError(
                "DSers accepted the order without returning an id",
                provider=self.name,
                status_code=response.status_code,
                url=response.url,
            )
        cost = response.payload.get("total_cost")
        return DropshipOrderResult.succeeded(
            self.name,
            str(order_id),
            cost=to_decimal(cost) if cost is not None else None,
        )

    async def _get_order_status(self, order_id: str) -> OrderStatus:
        response = await self._client.request("GET", f"/orders/{order_id}")
        if response.status_code == 404:
            raise OrderNotFoundError(self.name, order_id)
        if not response.ok:
            self._raise_vendor_error(response, "Failed to get DSers order status")
        order = response.payload.get("order")
        if not isinstance(order, Mapping):
            order = response.payload
        raw_status = str(order.get("status") or "").lower()
        return OrderStatus(
            order_id=order_id,
            state=_STATUS_MAP.get(raw_status, OrderState.PENDING),
            tracking_number=order.get("tracking_number"),
            tracking_url=order.get("tracking_url"),
        )

    async def _cancel_order(self, order_id: str) -> bool:
        response = await self._client.request("POST", f"/orders/{order_id}/cancel")
        if response.status_code == 404:
            raise OrderNotFoundError(self.name, order_id)
        if not response.ok:
            return False
        return bool(response.payload.get("success", True))


__all__ = ["DSersProvider"]

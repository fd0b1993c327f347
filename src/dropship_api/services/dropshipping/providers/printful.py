"""Printful print-on-demand provider."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping

from loguru import logger

from dropship_api.domain.dropshipping.errors import OrderNotFoundError, VendorRequestError
from dropship_api.domain.dropshipping.types import (
    DropshipOrderData,
    DropshipOrderResult,
    DropshipProduct,
    OrderState,
    OrderStatus,
    ProductQuery,
    StatusUpdate,
    to_decimal,
)

from .base import VENDOR_REJECTION_STATUSES, DropshippingProvider, vendor_error_detail

_STATUS_MAP: Dict[str, OrderState] = {
    "draft": OrderState.PENDING,
    "pending": OrderState.PENDING,
    "confirmed": OrderState.PROCESSING,
    "inprocess": OrderState.PROCESSING,
    "onhold": OrderState.PROCESSING,
    "partial": OrderState.SHIPPED,
    "fulfilled": OrderState.SHIPPED,
    "shipped": OrderState.SHIPPED,
    "delivered": OrderState.DELIVERED,
    "returned": OrderState.CANCELLED,
    "canceled": OrderState.CANCELLED,
    "cancelled": OrderState.CANCELLED,
    "failed": OrderState.FAILED,
}


def map_printful_status(status: str | None) -> OrderState:
    return _STATUS_MAP.get((status or "").lower(), OrderState.PENDING)


def _timestamp(value: Any) -> datetime | None:
    if isinstance(value, (int, float)) and value > 0:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


class PrintfulProvider(DropshippingProvider):
    name = "printful"
    display_name = "Printful"
    default_base_url = "https://api.printful.com"
    health_path = "/store"

    def __init__(self, api_key: str | None = None, *, store_id: str | None = None, **kwargs: Any) -> None:
        self._store_id = store_id
        super().__init__(api_key, **kwargs)

    def _build_headers(self) -> Mapping[str, str]:
        headers = dict(super()._build_headers())
        if self._store_id:
            headers["X-PF-Store-Id"] = self._store_id
        return headers

    def _transform_product(self, raw: Mapping[str, Any]) -> DropshipProduct:
        # /products/{id} nests the product next to its variants
        product = raw.get("product") if isinstance(raw.get("product"), Mapping) else raw
        raw_variants = raw.get("variants") or product.get("variants") or []
        image = product.get("image")

        variants = []
        for variant in raw_variants:
            if not isinstance(variant, Mapping):
                continue
            options = {key: str(variant[key]) for key in ("size", "color") if variant.get(key)}
            variants.append(
                {
                    "id": str(variant.get("id", "")),
                    "name": variant.get("name") or "",
                    "options": options,
                    "price": str(to_decimal(variant.get("price"))),
                    "sku": variant.get("sku") or "",
                    "image": variant.get("image") or image,
                    "inStock": variant.get("in_stock", True) is not False,
                }
            )

        price = to_decimal(product.get("price"))
        if price == 0 and variants:
            price = min(to_decimal(variant["price"]) for variant in variants)

        in_stock = not variants or any(variant["inStock"] for variant in variants)
        return DropshipProduct(
            id=str(product.get("id", "")),
            name=product.get("title") or product.get("name") or "",
            description=product.get("description") or "",
            price=price,
            images=(image,) if image else tuple(),
            variants=tuple(variants),
            category=product.get("type_name") or "Custom Products",
            provider=self.name,
            currency=product.get("currency") or "USD",
            available=not product.get("is_discontinued", False) and in_stock,
        )

    async def _get_products(self, query: ProductQuery, *, available_only: bool = False) -> List[DropshipProduct]:
        # Printful has no search endpoint; filter and paginate client side.
        response = await self._client.request("GET", "/products")
        if not response.ok:
            raise VendorRequestError(
                vendor_error_detail(response.payload, "Failed to list Printful products"),
                provider=self.name,
                status_code=response.status_code,
                url=response.url,
            )
        raw_products = response.payload.get("result") or []
        products = [
            self._transform_product(raw) for raw in raw_products if isinstance(raw, Mapping)
        ]
        matching = [
            product
            for product in products
            if query.matches(product) and (product.available or not available_only)
        ]
        return query.paginate(matching)

    async def _get_product(self, product_id: str) -> DropshipProduct | None:
        response = await self._client.request("GET", f"/products/{product_id}")
        if response.status_code == 404:
            return None
        if not response.ok:
            raise VendorRequestError(
                vendor_error_detail(response.payload, "Failed to get Printful product"),
                provider=self.name,
                status_code=response.status_code,
                url=response.url,
            )
        result = response.payload.get("result")
        if not isinstance(result, Mapping):
            return None
        return self._transform_product(result)

    def _order_payload(self, order_data: DropshipOrderData) -> Dict[str, Any]:
        address = order_data.shipping_address
        return {
            "shipping": "STANDARD",
            "recipient": {
                "name": address.full_name,
                "address1": address.street,
                "address2": address.street2 or "",
                "city": address.city,
                "state_code": address.state,
                "country_code": address.country,
                "zip": address.postal_code,
                "phone": order_data.customer_phone or "",
                "email": order_data.customer_email or "",
            },
            "items": [
                {
                    "sync_variant_id": item.variant_id or item.product_id,
                    "quantity": item.quantity,
                    "retail_price": str(item.unit_price.quantize(Decimal("0.01"))),
                }
                for item in order_data.items
            ],
        }

    async def _create_order(self, order_data: DropshipOrderData) -> DropshipOrderResult:
        response = await self._client.request("POST", "/orders", json=self._order_payload(order_data))
        if response.status_code in VENDOR_REJECTION_STATUSES:
            return DropshipOrderResult.rejected(
                self.name,
                vendor_error_detail(response.payload, f"Printful rejected the order (HTTP {response.status_code})"),
            )
        if not response.ok:
            raise VendorRequestError(
                f"Unexpected Printful response (HTTP {response.status_code})",
                provider=self.name,
                status_code=response.status_code,
                url=response.url,
            )
        order = response.payload.get("result")
        order_id = order.get("id") if isinstance(order, Mapping) else None
        if order_id is None:
            raise VendorRequestError(
                "Printful accepted the order without returning an id",
                provider=self.name,
                status_code=response.status_code,
                url=response.url,
            )
        costs = order.get("costs") if isinstance(order.get("costs"), Mapping) else {}
        total = costs.get("total")
        return DropshipOrderResult.succeeded(
            self.name,
            str(order_id),
            cost=to_decimal(total) if total is not None else None,
        )

    async def _get_order_status(self, order_id: str) -> OrderStatus:
        response = await self._client.request("GET", f"/orders/{order_id}")
        if response.status_code == 404:
            raise OrderNotFoundError(self.name, order_id)
        if not response.ok:
            raise VendorRequestError(
                vendor_error_detail(response.payload, "Failed to get Printful order status"),
                provider=self.name,
                status_code=response.status_code,
                url=response.url,
            )
        order = response.payload.get("result") or {}
        raw_status = order.get("status")
        shipments = order.get("shipments") or []
        shipment = shipments[0] if shipments and isinstance(shipments[0], Mapping) else {}
        return OrderStatus(
            order_id=order_id,
            state=map_printful_status(raw_status),
            tracking_number=shipment.get("tracking_number"),
            tracking_url=shipment.get("tracking_url"),
            updates=(
                StatusUpdate(
                    timestamp=_timestamp(order.get("updated")),
                    status=str(raw_status or "unknown"),
                    description=f"Order {raw_status or 'unknown'}",
                ),
            ),
        )

    async def _cancel_order(self, order_id: str) -> bool:
        response = await self._client.request("DELETE", f"/orders/{order_id}")
        if response.status_code == 404:
            raise OrderNotFoundError(self.name, order_id)
        if not response.ok:
            logger.warning(
                "Printful refused cancellation",
                order_id=order_id,
                status_code=response.status_code,
                detail=vendor_error_detail(response.payload, ""),
            )
            return False
        order = response.payload.get("result") or {}
        return map_printful_status(order.get("status")) is OrderState.CANCELLED


__all__ = ["PrintfulProvider", "map_printful_status"]

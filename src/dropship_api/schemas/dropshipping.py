from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from dropship_api.domain.dropshipping.types import (
    DropshipOrderData,
    DropshipOrderResult,
    DropshipProduct,
    OrderLineItem,
    OrderStatus,
    ProviderDescriptor,
    ProviderHealth,
    ShippingAddress,
)

OrderStateValue = Literal["pending", "processing", "shipped", "delivered", "cancelled", "failed"]
HealthStatusValue = Literal["healthy", "degraded", "offline", "disabled"]


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel)


class OrderLineItemPayload(_CamelModel):
    product_id: str = Field(..., min_length=1)
    variant_id: str | None = None
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)


class ShippingAddressPayload(_CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)
    street2: str | None = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=2)


class DropshipOrderPayload(_CamelModel):
    items: list[OrderLineItemPayload] = Field(..., min_length=1)
    shipping_address: ShippingAddressPayload
    customer_email: str | None = None
    customer_phone: str | None = None
    notes: str | None = Field(default=None, max_length=1000)

    def to_domain(self) -> DropshipOrderData:
        address = self.shipping_address
        return DropshipOrderData(
            items=tuple(
                OrderLineItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    variant_id=item.variant_id,
                )
                for item in self.items
            ),
            shipping_address=ShippingAddress(
                first_name=address.first_name,
                last_name=address.last_name,
                street=address.street,
                street2=address.street2,
                city=address.city,
                state=address.state,
                postal_code=address.postal_code,
                country=address.country,
            ),
            customer_email=self.customer_email,
            customer_phone=self.customer_phone,
            notes=self.notes,
        )


class CreateDropshipOrderRequest(_CamelModel):
    provider: str | None = None
    order: DropshipOrderPayload


class DropshipOrderResultResponse(_CamelModel):
    success: bool
    provider: str
    order_id: str | None = None
    error: str | None = None
    cost: Decimal | None = None

    @classmethod
    def from_domain(cls, result: DropshipOrderResult) -> "DropshipOrderResultResponse":
        return cls(
            success=result.success,
            provider=result.provider,
            order_id=result.order_id,
            error=result.error,
            cost=result.cost,
        )


class DropshipProductResponse(_CamelModel):
    id: str
    name: str
    description: str
    price: Decimal
    currency: str
    images: list[str]
    variants: list[dict[str, Any]]
    category: str
    provider: str
    available: bool

    @classmethod
    def from_domain(cls, product: DropshipProduct) -> "DropshipProductResponse":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            currency=product.currency,
            images=list(product.images),
            variants=[dict(variant) for variant in product.variants],
            category=product.category,
            provider=product.provider,
            available=product.available,
        )


class StatusUpdateResponse(_CamelModel):
    timestamp: datetime | None = None
    status: str
    description: str = ""
    location: str | None = None


class OrderStatusResponse(_CamelModel):
    order_id: str
    provider: str
    status: OrderStateValue
    tracking_number: str | None = None
    tracking_url: str | None = None
    estimated_delivery: datetime | None = None
    updates: list[StatusUpdateResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, provider: str, status: OrderStatus) -> "OrderStatusResponse":
        return cls(
            order_id=status.order_id,
            provider=provider,
            status=status.state.value,
            tracking_number=status.tracking_number,
            tracking_url=status.tracking_url,
            estimated_delivery=status.estimated_delivery,
            updates=[
                StatusUpdateResponse(
                    timestamp=update.timestamp,
                    status=update.status,
                    description=update.description,
                    location=update.location,
                )
                for update in status.updates
            ],
        )


class CancelOrderResponse(_CamelModel):
    order_id: str
    provider: str
    cancelled: bool


class ProviderDescriptorResponse(_CamelModel):
    name: str
    display_name: str
    enabled: bool
    priority: int
    status: Literal["active", "disabled"]

    @classmethod
    def from_domain(cls, descriptor: ProviderDescriptor) -> "ProviderDescriptorResponse":
        return cls(
            name=descriptor.name,
            display_name=descriptor.display_name,
            enabled=descriptor.enabled,
            priority=descriptor.priority,
            status=descriptor.status,
        )


class ProviderHealthResponse(_CamelModel):
    provider: str
    status: HealthStatusValue
    latency_ms: float | None = None
    detail: str | None = None

    @classmethod
    def from_domain(cls, health: ProviderHealth) -> "ProviderHealthResponse":
        return cls(
            provider=health.provider,
            status=health.status.value,
            latency_ms=health.latency_ms,
            detail=health.detail,
        )


class ShippingEstimateRequest(_CamelModel):
    provider: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    destination_country: str = Field(..., min_length=2, max_length=2)
    destination_zip: str | None = None


class ShippingCosts(_CamelModel):
    base_shipping: Decimal
    per_item_cost: Decimal
    international_surcharge: Decimal
    total_shipping: Decimal


class DeliveryWindow(_CamelModel):
    min: int
    max: int
    unit: str = "business days"


class ShippingEstimateResponse(_CamelModel):
    provider: str
    product_id: str
    quantity: int
    destination_country: str
    destination_zip: str | None = None
    costs: ShippingCosts
    estimated_delivery: DeliveryWindow


class ErrorDetail(BaseModel):
    code: str
    message: str
    provider: str | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail

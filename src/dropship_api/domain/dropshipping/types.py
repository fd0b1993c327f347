"""Value objects exchanged with dropshipping providers.

Every object here is immutable and created per call. ``DropshipOrderData`` and
``DropshipOrderResult`` validate their invariants on construction so that no
provider ever sees a malformed order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Tuple

from .errors import InvalidOrderDataError


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Coerce vendor price fields ("12.50", 12.5, None) into Decimal."""

    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


@dataclass(frozen=True, slots=True)
class ProductQuery:
    """Optional catalog filter; an empty query means no filter."""

    keyword: str | None = None
    category: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    page: int | None = None
    limit: int | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.page is not None and self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be >= 1")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "ProductQuery":
        if not payload:
            return cls()
        known = {"keyword", "category", "min_price", "max_price", "page", "limit"}
        extra = {key: value for key, value in payload.items() if key not in known and value is not None}
        min_price = payload.get("min_price")
        max_price = payload.get("max_price")
        page = payload.get("page")
        limit = payload.get("limit")
        return cls(
            keyword=payload.get("keyword") or None,
            category=payload.get("category") or None,
            min_price=to_decimal(min_price) if min_price is not None else None,
            max_price=to_decimal(max_price) if max_price is not None else None,
            page=int(page) if page is not None else None,
            limit=int(limit) if limit is not None else None,
            extra=extra,
        )

    def matches(self, product: "DropshipProduct") -> bool:
        """Client-side filter for vendors without a search endpoint."""

        if self.keyword:
            needle = self.keyword.lower()
            if needle not in product.name.lower() and needle not in product.description.lower():
                return False
        if self.category and self.category.lower() not in product.category.lower():
            return False
        if self.min_price is not None and product.price < self.min_price:
            return False
        if self.max_price is not None and product.price > self.max_price:
            return False
        return True

    def paginate(self, items: list) -> list:
        if self.page is None and self.limit is None:
            return items
        page = self.page or 1
        limit = self.limit or 20
        start = (page - 1) * limit
        return items[start : start + limit]


@dataclass(frozen=True, slots=True)
class DropshipProduct:
    """Read view of a catalog item as reported by a provider."""

    id: str
    name: str
    provider: str
    price: Decimal = Decimal("0")
    description: str = ""
    images: Tuple[str, ...] = field(default_factory=tuple)
    variants: Tuple[Mapping[str, Any], ...] = field(default_factory=tuple)
    category: str = ""
    currency: str = "USD"
    available: bool = True

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(f"Product {self.id} has a negative price")


@dataclass(frozen=True, slots=True)
class OrderLineItem:
    product_id: str
    quantity: int
    unit_price: Decimal
    variant_id: str | None = None

    def __post_init__(self) -> None:
        if not self.product_id or not self.product_id.strip():
            raise InvalidOrderDataError("Line item product id is required")
        if self.quantity < 1:
            raise InvalidOrderDataError(f"Line item {self.product_id} quantity must be >= 1")
        if self.unit_price < 0:
            raise InvalidOrderDataError(f"Line item {self.product_id} unit price must be >= 0")


@dataclass(frozen=True, slots=True)
class ShippingAddress:
    first_name: str
    last_name: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str
    street2: str | None = None

    _REQUIRED = ("first_name", "last_name", "street", "city", "state", "postal_code", "country")

    def __post_init__(self) -> None:
        missing = [name for name in self._REQUIRED if not str(getattr(self, name) or "").strip()]
        if missing:
            raise InvalidOrderDataError(f"Shipping address is missing: {', '.join(missing)}")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True, slots=True)
class DropshipOrderData:
    """Outbound order payload handed to a provider."""

    items: Tuple[OrderLineItem, ...]
    shipping_address: ShippingAddress
    customer_email: str | None = None
    customer_phone: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if not self.items:
            raise InvalidOrderDataError("Order requires at least one line item")


@dataclass(frozen=True, slots=True)
class DropshipOrderResult:
    """Provider acknowledgment; ``order_id`` is set exactly when ``success`` is."""

    success: bool
    provider: str
    order_id: str | None = None
    error: str | None = None
    cost: Decimal | None = None

    def __post_init__(self) -> None:
        if self.success and not self.order_id:
            raise ValueError("Successful order results must carry an order id")
        if not self.success and self.order_id is not None:
            raise ValueError("Rejected order results cannot carry an order id")

    @classmethod
    def succeeded(cls, provider: str, order_id: str, *, cost: Decimal | None = None) -> "DropshipOrderResult":
        return cls(success=True, provider=provider, order_id=order_id, cost=cost)

    @classmethod
    def rejected(cls, provider: str, error: str) -> "DropshipOrderResult":
        return cls(success=False, provider=provider, error=error)


class OrderState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class StatusUpdate:
    timestamp: datetime | None
    status: str
    description: str = ""
    location: str | None = None


@dataclass(frozen=True, slots=True)
class OrderStatus:
    order_id: str
    state: OrderState
    tracking_number: str | None = None
    tracking_url: str | None = None
    estimated_delivery: datetime | None = None
    updates: Tuple[StatusUpdate, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ProviderDescriptor:
    """Registration entry exposed by the orchestrator."""

    name: str
    display_name: str
    enabled: bool
    priority: int

    @property
    def status(self) -> str:
        return "active" if self.enabled else "disabled"


class ProviderHealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    OFFLINE = "offline"
    DISABLED = "disabled"


@dataclass(frozen=True, slots=True)
class ProviderHealth:
    provider: str
    status: ProviderHealthStatus
    latency_ms: float | None = None
    detail: str | None = None


__all__ = [
    "DropshipOrderData",
    "DropshipOrderResult",
    "DropshipProduct",
    "OrderLineItem",
    "OrderState",
    "OrderStatus",
    "ProductQuery",
    "ProviderDescriptor",
    "ProviderHealth",
    "ProviderHealthStatus",
    "ShippingAddress",
    "StatusUpdate",
    "to_decimal",
]

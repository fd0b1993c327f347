"""Contract every dropshipping provider adapter implements."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import ClassVar, List, Mapping

import httpx
from loguru import logger

from dropship_api.domain.dropshipping.errors import (
    DropshippingError,
    ProviderDisabledError,
)
from dropship_api.domain.dropshipping.types import (
    DropshipOrderData,
    DropshipOrderResult,
    DropshipProduct,
    OrderStatus,
    ProductQuery,
    ProviderDescriptor,
    ProviderHealth,
    ProviderHealthStatus,
)
from dropship_api.observability.dropshipping import DropshipObservabilityStore

from ..resilience import ResiliencePolicy, VendorHttpClient


class DropshippingProvider(ABC):
    """Adapter for one external fulfillment vendor.

    ``is_enabled`` is decided once from the credential passed at construction.
    The public methods enforce the enabled check before delegating to the
    ``_``-prefixed hooks, so subclasses only deal with enabled providers:

    * writes (``create_order``, ``cancel_order``) and order lookups raise
      ``ProviderDisabledError`` without any I/O;
    * catalog reads degrade: listings return ``[]`` and ``get_product``
      returns ``None``.
    """

    name: ClassVar[str]
    display_name: ClassVar[str]
    default_base_url: ClassVar[str]
    health_path: ClassVar[str | None] = None

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        policy: ResiliencePolicy | None = None,
        store: DropshipObservabilityStore | None = None,
    ) -> None:
        self._api_key = (api_key or "").strip()
        self._is_enabled = bool(self._api_key)
        self._base_url = base_url or self.default_base_url
        self._client = VendorHttpClient(
            self.name,
            base_url=self._base_url,
            headers=self._build_headers(),
            http_client=http_client,
            policy=policy,
            store=store,
        )

    @property
    def is_enabled(self) -> bool:
        return self._is_enabled

    @property
    def client(self) -> VendorHttpClient:
        return self._client

    def _build_headers(self) -> Mapping[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def descriptor(self, priority: int) -> ProviderDescriptor:
        return ProviderDescriptor(
            name=self.name,
            display_name=self.display_name,
            enabled=self.is_enabled,
            priority=priority,
        )

    def _require_enabled(self) -> None:
        if not self._is_enabled:
            raise ProviderDisabledError(self.name)

    async def create_order(self, order_data: DropshipOrderData) -> DropshipOrderResult:
        self._require_enabled()
        result = await self._create_order(order_data)
        if result.success:
            logger.info(
                "Dropship order created",
                provider=self.name,
                order_id=result.order_id,
                line_items=len(order_data.items),
            )
        else:
            logger.warning("Dropship order rejected by vendor", provider=self.name, error=result.error)
        return result

    async def get_order_status(self, order_id: str) -> OrderStatus:
        self._require_enabled()
        return await self._get_order_status(order_id)

    async def cancel_order(self, order_id: str) -> bool:
        self._require_enabled()
        cancelled = await self._cancel_order(order_id)
        logger.info("Dropship order cancellation requested", provider=self.name, order_id=order_id, cancelled=cancelled)
        return cancelled

    async def get_products(self, query: ProductQuery | None = None) -> List[DropshipProduct]:
        if not self._is_enabled:
            return []
        return await self._get_products(query or ProductQuery())

    async def get_available_products(self, query: ProductQuery | None = None) -> List[DropshipProduct]:
        if not self._is_enabled:
            return []
        products = await self._get_products(query or ProductQuery(), available_only=True)
        return [product for product in products if product.available]

    async def get_product(self, product_id: str) -> DropshipProduct | None:
        if not self._is_enabled:
            return None
        return await self._get_product(product_id)

    async def check_health(self) -> ProviderHealth:
        """Check the vendor is reachable; never raises."""

        if not self._is_enabled:
            return ProviderHealth(provider=self.name, status=ProviderHealthStatus.DISABLED, detail="API key not configured")
        if not self.health_path:
            return ProviderHealth(provider=self.name, status=ProviderHealthStatus.HEALTHY, detail="No health endpoint")

        started = time.perf_counter()
        try:
            response = await self._client.request("GET", self.health_path)
        except DropshippingError as exc:
            latency_ms = round((time.perf_counter() - started) * 1000, 2)
            return ProviderHealth(
                provider=self.name,
                status=ProviderHealthStatus.OFFLINE,
                latency_ms=latency_ms,
                detail=exc.message,
            )
        latency_ms = round((time.perf_counter() - started) * 1000, 2)
        if response.ok:
            return ProviderHealth(provider=self.name, status=ProviderHealthStatus.HEALTHY, latency_ms=latency_ms)
        return ProviderHealth(
            provider=self.name,
            status=ProviderHealthStatus.DEGRADED,
            latency_ms=latency_ms,
            detail=f"HTTP {response.status_code}",
        )

    @abstractmethod
    async def _create_order(self, order_data: DropshipOrderData) -> DropshipOrderResult: ...

    @abstractmethod
    async def _get_order_status(self, order_id: str) -> OrderStatus: ...

    @abstractmethod
    async def _cancel_order(self, order_id: str) -> bool: ...

    @abstractmethod
    async def _get_products(self, query: ProductQuery, *, available_only: bool = False) -> List[DropshipProduct]:
        """List products; with ``available_only`` adapters that page locally drop unsellable items first."""

    @abstractmethod
    async def _get_product(self, product_id: str) -> DropshipProduct | None: ...


# Vendor answers that mean "this order was refused", as opposed to a fault.
VENDOR_REJECTION_STATUSES = frozenset({400, 404, 409, 422})


def vendor_error_detail(payload: Mapping[str, object], default: str) -> str:
    """Pull a human readable message out of a vendor error body."""

    for key in ("error", "message", "result", "detail"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
        if isinstance(value, Mapping):
            nested = value.get("message") or value.get("reason")
            if isinstance(nested, str) and nested.strip():
                return nested
    return default


__all__ = ["VENDOR_REJECTION_STATUSES", "DropshippingProvider", "vendor_error_detail"]

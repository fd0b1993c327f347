"""Spocket provider; registered but not yet wired to the vendor API."""

from __future__ import annotations

from typing import List

from dropship_api.domain.dropshipping.errors import ProviderNotImplementedError
from dropship_api.domain.dropshipping.types import (
    DropshipOrderData,
    DropshipOrderResult,
    DropshipProduct,
    OrderStatus,
    ProductQuery,
)

from .base import DropshippingProvider


class SpocketProvider(DropshippingProvider):
    name = "spocket"
    display_name = "Spocket"
    default_base_url = "https://api.spocket.co"

    async def _create_order(self, order_data: DropshipOrderData) -> DropshipOrderResult:
        raise ProviderNotImplementedError(self.name, "create_order")

    async def _get_order_status(self, order_id: str) -> OrderStatus:
        raise ProviderNotImplementedError(self.name, "get_order_status")

    async def _cancel_order(self, order_id: str) -> bool:
        raise ProviderNotImplementedError(self.name, "cancel_order")

    async def _get_products(self, query: ProductQuery, *, available_only: bool = False) -> List[DropshipProduct]:
        return []

    async def _get_product(self, product_id: str) -> DropshipProduct | None:
        return None


__all__ = ["SpocketProvider"]

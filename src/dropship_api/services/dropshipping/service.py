"""Routing and aggregation across dropshipping providers."""

from __future__ import annotations

import asyncio
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Sequence

import httpx
from loguru import logger

from dropship_api.core.settings import Settings, get_settings
from dropship_api.domain.dropshipping.errors import ProviderNotFoundError
from dropship_api.domain.dropshipping.types import (
    DropshipOrderData,
    DropshipOrderResult,
    DropshipProduct,
    OrderStatus,
    ProductQuery,
    ProviderDescriptor,
    ProviderHealth,
)

from .providers import DropshippingProvider, DSersProvider, PrintfulProvider, SpocketProvider
from .resilience import ResiliencePolicy


def _normalize_name(name: str) -> str:
    return name.strip().lower()


class DropshippingService:
    """Owns the provider set and routes order and catalog calls to it.

    Membership is fixed at construction, so the service can be shared by
    concurrent requests without locking. Read aggregates isolate provider
    failures; order operations let provider faults propagate unchanged.
    """

    def __init__(
        self,
        providers: Iterable[DropshippingProvider],
        *,
        priority: Sequence[str] | None = None,
        owned_http_client: httpx.AsyncClient | None = None,
    ) -> None:
        registered: Dict[str, DropshippingProvider] = {}
        for provider in providers:
            key = _normalize_name(provider.name)
            if key in registered:
                raise ValueError(f"Dropshipping provider '{key}' registered twice")
            registered[key] = provider

        ordered_names: List[str] = []
        for name in priority or ():
            key = _normalize_name(name)
            if key in registered and key not in ordered_names:
                ordered_names.append(key)
        ordered_names.extend(name for name in registered if name not in ordered_names)

        self._providers: Mapping[str, DropshippingProvider] = MappingProxyType(
            {name: registered[name] for name in ordered_names}
        )
        self._priority: Mapping[str, int] = MappingProxyType(
            {name: index for index, name in enumerate(ordered_names)}
        )
        self._owned_http_client = owned_http_client

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> "DropshippingService":
        """Build every known provider from configured credentials."""

        owns_client = http_client is None
        client = http_client or httpx.AsyncClient(timeout=settings.dropship_request_timeout_seconds)
        policy = ResiliencePolicy.from_settings(settings)

        providers: List[DropshippingProvider] = [
            PrintfulProvider(
                settings.printful_api_key,
                store_id=settings.printful_store_id,
                base_url=settings.printful_base_url,
                http_client=client,
                policy=policy,
            ),
            DSersProvider(
                settings.dsers_api_key,
                base_url=settings.dsers_base_url,
                http_client=client,
                policy=policy,
            ),
            SpocketProvider(
                settings.spocket_api_key,
                base_url=settings.spocket_base_url,
                http_client=client,
                policy=policy,
            ),
        ]
        service = cls(
            providers,
            priority=settings.dropship_provider_priority,
            owned_http_client=client if owns_client else None,
        )

        enabled = [descriptor.name for descriptor in service.get_enabled_providers()]
        if enabled:
            logger.info("Dropshipping providers enabled", providers=enabled)
        else:
            logger.warning(
                "No dropshipping providers enabled",
                hint="set PRINTFUL_API_KEY, DSERS_API_KEY or SPOCKET_API_KEY",
            )
        return service

    @property
    def providers(self) -> Mapping[str, DropshippingProvider]:
        return self._providers

    def get_provider(self, name: str) -> DropshippingProvider:
        provider = self._providers.get(_normalize_name(name))
        if provider is None:
            raise ProviderNotFoundError(name)
        return provider

    def is_provider_enabled(self, name: str) -> bool:
        provider = self._providers.get(_normalize_name(name))
        return provider is not None and provider.is_enabled

    def list_providers(self) -> List[ProviderDescriptor]:
        return [provider.descriptor(self._priority[name]) for name, provider in self._providers.items()]

    def get_enabled_providers(self) -> List[ProviderDescriptor]:
        return [descriptor for descriptor in self.list_providers() if descriptor.enabled]

    def get_default_provider(self) -> DropshippingProvider | None:
        for provider in self._providers.values():
            if provider.is_enabled:
                return provider
        return None

    def _resolve(self, provider_name: str | None) -> DropshippingProvider:
        if provider_name:
            return self.get_provider(provider_name)
        provider = self.get_default_provider()
        if provider is None:
            raise ProviderNotFoundError(None)
        return provider

    async def get_all_products(self, query: ProductQuery | None = None) -> List[DropshipProduct]:
        """Union of available products from every enabled provider.

        Providers are queried concurrently, so the result order is not
        meaningful. A provider that fails is logged and skipped.
        """

        enabled = [provider for provider in self._providers.values() if provider.is_enabled]
        if not enabled:
            return []

        results = await asyncio.gather(
            *(provider.get_available_products(query) for provider in enabled),
            return_exceptions=True,
        )

        products: List[DropshipProduct] = []
        for provider, result in zip(enabled, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.bind(provider=provider.name, error=str(result)).warning(
                    "Failed to get products from dropshipping provider"
                )
                continue
            products.extend(result)
        return products

    async def get_products(self, provider_name: str, query: ProductQuery | None = None) -> List[DropshipProduct]:
        return await self.get_provider(provider_name).get_products(query)

    async def get_product(self, provider_name: str, product_id: str) -> DropshipProduct | None:
        return await self.get_provider(provider_name).get_product(product_id)

    async def create_order(
        self,
        order_data: DropshipOrderData,
        provider_name: str | None = None,
    ) -> DropshipOrderResult:
        provider = self._resolve(provider_name)
        return await provider.create_order(order_data)

    async def get_order_status(self, provider_name: str, order_id: str) -> OrderStatus:
        return await self.get_provider(provider_name).get_order_status(order_id)

    async def cancel_order(self, provider_name: str, order_id: str) -> bool:
        return await self.get_provider(provider_name).cancel_order(order_id)

    async def get_provider_health(self) -> Dict[str, ProviderHealth]:
        providers = list(self._providers.values())
        results = await asyncio.gather(*(provider.check_health() for provider in providers))
        return {provider.name: result for provider, result in zip(providers, results)}

    async def aclose(self) -> None:
        if self._owned_http_client is not None:
            await self._owned_http_client.aclose()
            self._owned_http_client = None


@lru_cache
def get_dropshipping_service() -> DropshippingService:
    """Process-wide service, built from settings on first access."""

    return DropshippingService.from_settings(get_settings())


__all__ = ["DropshippingService", "get_dropshipping_service"]

"""Dropshipping provider orchestration."""

from .providers import DropshippingProvider, DSersProvider, PrintfulProvider, SpocketProvider
from .resilience import CircuitBreaker, CircuitState, ResiliencePolicy, VendorHttpClient
from .service import DropshippingService, get_dropshipping_service

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "DSersProvider",
    "DropshippingProvider",
    "DropshippingService",
    "PrintfulProvider",
    "ResiliencePolicy",
    "SpocketProvider",
    "VendorHttpClient",
    "get_dropshipping_service",
]

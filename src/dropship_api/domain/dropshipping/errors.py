"""Error taxonomy shared by dropshipping providers and the orchestrator."""

from __future__ import annotations

from enum import Enum


class DropshipErrorCode(str, Enum):
    PROVIDER_DISABLED = "PROVIDER_DISABLED"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    PROVIDER_NOT_FOUND = "PROVIDER_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    VENDOR_REJECTED = "VENDOR_REJECTED"
    VENDOR_ERROR = "VENDOR_ERROR"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    INVALID_ORDER = "INVALID_ORDER"


class DropshippingError(RuntimeError):
    """Base class for provider faults; ``code`` is stable for API consumers."""

    code: DropshipErrorCode = DropshipErrorCode.VENDOR_ERROR

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider


class ProviderDisabledError(DropshippingError):
    """Raised before any I/O when a provider lacks its credential."""

    code = DropshipErrorCode.PROVIDER_DISABLED

    def __init__(self, provider: str) -> None:
        super().__init__(f"Dropshipping provider '{provider}' is not enabled - check API key", provider=provider)


class ProviderNotImplementedError(DropshippingError):
    code = DropshipErrorCode.NOT_IMPLEMENTED

    def __init__(self, provider: str, operation: str) -> None:
        super().__init__(f"{provider} {operation} not yet implemented", provider=provider)
        self.operation = operation


class ProviderNotFoundError(DropshippingError):
    code = DropshipErrorCode.PROVIDER_NOT_FOUND

    def __init__(self, provider: str | None) -> None:
        if provider:
            message = f"Dropshipping provider '{provider}' not found"
        else:
            message = "No dropshipping provider configured or enabled"
        super().__init__(message, provider=provider)


class OrderNotFoundError(DropshippingError):
    code = DropshipErrorCode.ORDER_NOT_FOUND

    def __init__(self, provider: str, order_id: str) -> None:
        super().__init__(f"Order {order_id} not found on {provider}", provider=provider)
        self.order_id = order_id


class VendorRequestError(DropshippingError):
    """Transport failure or unexpected vendor response."""

    code = DropshipErrorCode.VENDOR_ERROR

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: int | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message, provider=provider)
        self.status_code = status_code
        self.url = url

    @property
    def retryable(self) -> bool:
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class ProviderUnavailableError(DropshippingError):
    """Raised without I/O while a provider's circuit breaker is open."""

    code = DropshipErrorCode.PROVIDER_UNAVAILABLE

    def __init__(self, provider: str, retry_after_seconds: float) -> None:
        super().__init__(
            f"Dropshipping provider '{provider}' is temporarily unavailable",
            provider=provider,
        )
        self.retry_after_seconds = retry_after_seconds


class InvalidOrderDataError(DropshippingError, ValueError):
    code = DropshipErrorCode.INVALID_ORDER

    def __init__(self, message: str) -> None:
        super().__init__(message)


__all__ = [
    "DropshipErrorCode",
    "DropshippingError",
    "InvalidOrderDataError",
    "OrderNotFoundError",
    "ProviderDisabledError",
    "ProviderNotFoundError",
    "ProviderNotImplementedError",
    "ProviderUnavailableError",
    "VendorRequestError",
]

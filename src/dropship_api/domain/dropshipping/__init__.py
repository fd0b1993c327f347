"""Dropshipping domain types and errors."""

from .errors import (  # noqa: F401
    DropshipErrorCode,
    DropshippingError,
    InvalidOrderDataError,
    OrderNotFoundError,
    ProviderDisabledError,
    ProviderNotFoundError,
    ProviderNotImplementedError,
    ProviderUnavailableError,
    VendorRequestError,
)
from .types import (  # noqa: F401
    DropshipOrderData,
    DropshipOrderResult,
    DropshipProduct,
    OrderLineItem,
    OrderState,
    OrderStatus,
    ProductQuery,
    ProviderDescriptor,
    ProviderHealth,
    ProviderHealthStatus,
    ShippingAddress,
    StatusUpdate,
    to_decimal,
)

"""Flat-rate shipping estimate used before a vendor quote is available."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

BASE_SHIPPING = Decimal("4.99")
PER_ADDITIONAL_ITEM = Decimal("1.50")
INTERNATIONAL_SURCHARGE = Decimal("5.00")
DOMESTIC_COUNTRY = "US"


@dataclass(frozen=True, slots=True)
class ShippingEstimate:
    base_shipping: Decimal
    per_item_cost: Decimal
    international_surcharge: Decimal
    min_days: int
    max_days: int

    @property
    def total(self) -> Decimal:
        return self.base_shipping + self.per_item_cost + self.international_surcharge


def estimate_shipping(quantity: int, destination_country: str) -> ShippingEstimate:
    if quantity < 1:
        raise ValueError("quantity must be >= 1")
    domestic = destination_country.strip().upper() == DOMESTIC_COUNTRY
    return ShippingEstimate(
        base_shipping=BASE_SHIPPING,
        per_item_cost=PER_ADDITIONAL_ITEM * (quantity - 1),
        international_surcharge=Decimal("0.00") if domestic else INTERNATIONAL_SURCHARGE,
        min_days=3 if domestic else 7,
        max_days=5 if domestic else 14,
    )


__all__ = ["ShippingEstimate", "estimate_shipping"]

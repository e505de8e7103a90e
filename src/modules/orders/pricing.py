"""Checkout pricing policy.

All arithmetic is fixed-point ``Decimal`` quantized to cents with
``ROUND_HALF_UP``.  Discounts are carried through the breakdown but coupon
pricing is not applied, so ``discount_amount`` is always zero today.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.conf import settings

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount_amount: Decimal
    shipping_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    currency: str


@dataclass(frozen=True)
class PricingPolicy:
    """Flat-rate tax and threshold-based shipping."""

    tax_rate: Decimal = Decimal("0.10")
    free_shipping_threshold: Decimal = Decimal("100.00")
    flat_shipping_amount: Decimal = Decimal("15.00")
    currency: str = "USD"

    @classmethod
    def from_settings(cls) -> PricingPolicy:
        return cls(
            tax_rate=Decimal(str(settings.CHECKOUT_TAX_RATE)),
            free_shipping_threshold=Decimal(
                str(settings.CHECKOUT_FREE_SHIPPING_THRESHOLD)
            ),
            flat_shipping_amount=Decimal(str(settings.CHECKOUT_FLAT_SHIPPING_AMOUNT)),
            currency=settings.CHECKOUT_CURRENCY,
        )

    def shipping_for(self, subtotal: Decimal) -> Decimal:
        """Free strictly above the threshold, flat fee otherwise."""
        if subtotal > self.free_shipping_threshold:
            return ZERO
        return money(self.flat_shipping_amount)

    def tax_for(self, amount: Decimal) -> Decimal:
        return money(amount * self.tax_rate)

    def price(
        self, line_totals: Iterable[Decimal], discount: Decimal = ZERO
    ) -> PriceBreakdown:
        subtotal = money(sum(line_totals, ZERO))
        discount = money(discount)
        shipping = self.shipping_for(subtotal)
        tax = self.tax_for(subtotal)
        return PriceBreakdown(
            subtotal=subtotal,
            discount_amount=discount,
            shipping_amount=shipping,
            tax_amount=tax,
            total_amount=money(subtotal - discount + shipping + tax),
            currency=self.currency,
        )

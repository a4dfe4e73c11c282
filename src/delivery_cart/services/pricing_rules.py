"""In-process pricing function for offline use and local development."""

import asyncio
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from delivery_cart.domain.pricing import ZERO, PricingBreakdown, PricingRequest

VAT_RATE = Decimal("0.12")
SERVICE_FEE_RATE = Decimal("0.05")
PROCESSING_FEE = Decimal("10")
INCLUDED_DISTANCE_KM = Decimal("5")
MAX_LOYALTY_SHARE = Decimal("0.3")


@dataclass(frozen=True)
class LocationPricing:
    base_delivery_fee: Decimal
    extra_distance_fee: Decimal
    surcharge_multiplier: Decimal


@dataclass(frozen=True)
class PromoCode:
    percentage: Decimal | None
    fixed: Decimal | None
    min_order: Decimal
    max_discount: Decimal


def _location(base: int, extra: int, multiplier: str) -> LocationPricing:
    return LocationPricing(
        base_delivery_fee=Decimal(base),
        extra_distance_fee=Decimal(extra),
        surcharge_multiplier=Decimal(multiplier),
    )


LOCATION_PRICING: dict[str, LocationPricing] = {
    "makati": _location(80, 15, "1.5"),
    "bgc": _location(80, 15, "1.5"),
    "ortigas": _location(70, 12, "1.3"),
    "manila": _location(65, 10, "1.2"),
    "quezon city": _location(60, 10, "1.1"),
    "pasig": _location(55, 8, "1.0"),
    "mandaluyong": _location(55, 8, "1.0"),
    "san juan": _location(50, 8, "1.0"),
    "marikina": _location(50, 8, "1.0"),
    "parañaque": _location(45, 7, "0.9"),
    "las piñas": _location(45, 7, "0.9"),
    "muntinlupa": _location(45, 7, "0.9"),
    "caloocan": _location(40, 6, "0.8"),
    "malabon": _location(40, 6, "0.8"),
    "navotas": _location(40, 6, "0.8"),
    "valenzuela": _location(40, 6, "0.8"),
    "cebu": _location(35, 5, "0.7"),
    "davao": _location(30, 5, "0.6"),
    "iloilo": _location(30, 5, "0.6"),
}
OTHER_LOCATION = _location(25, 4, "0.5")

PROMO_CODES: dict[str, PromoCode] = {
    "FIRST20": PromoCode(
        percentage=Decimal("20"),
        fixed=None,
        min_order=Decimal("200"),
        max_discount=Decimal("100"),
    ),
    "FOOD10": PromoCode(
        percentage=Decimal("10"),
        fixed=None,
        min_order=Decimal("300"),
        max_discount=Decimal("150"),
    ),
    "NEWBIE50": PromoCode(
        percentage=None,
        fixed=Decimal("50"),
        min_order=Decimal("250"),
        max_discount=Decimal("50"),
    ),
}

LUNCH_HOURS = range(11, 15)
DINNER_HOURS = range(18, 22)
LUNCH_MULTIPLIER = Decimal("1.2")
DINNER_MULTIPLIER = Decimal("1.3")


def calculate_breakdown(request: PricingRequest) -> PricingBreakdown:
    """Compute a food-order breakdown the way the pricing endpoint does."""
    base = request.base_amount
    distance = Decimal(str(request.distance_km))
    location = LOCATION_PRICING.get(request.city.strip().lower(), OTHER_LOCATION)
    delivery_fee = location.base_delivery_fee
    if distance > INCLUDED_DISTANCE_KM:
        delivery_fee += (distance - INCLUDED_DISTANCE_KM) * location.extra_distance_fee
    delivery_fee *= location.surcharge_multiplier
    delivery_fee *= _peak_multiplier(request)
    delivery_fee = _round(delivery_fee)

    service_fee = _round(base * SERVICE_FEE_RATE)
    insurance_fee = _insurance_fee(base) if request.is_insured else ZERO
    tip = request.tip
    subtotal_before_tax = (
        base + delivery_fee + service_fee + PROCESSING_FEE + insurance_fee + tip
    )
    tax = _round((service_fee + PROCESSING_FEE + insurance_fee) * VAT_RATE)
    total_before_discounts = subtotal_before_tax + tax

    loyalty_discount = min(
        Decimal(request.loyalty_points), total_before_discounts * MAX_LOYALTY_SHARE
    )
    promotional_discount = _promo_discount(request.promo_code, total_before_discounts)
    final_total = max(
        ZERO, total_before_discounts - loyalty_discount - promotional_discount
    )
    return PricingBreakdown(
        items_subtotal=base,
        delivery_fee=delivery_fee,
        service_fee=service_fee,
        processing_fee=PROCESSING_FEE,
        tax=tax,
        tip=tip,
        insurance_fee=insurance_fee,
        promotional_discount=promotional_discount,
        loyalty_discount=loyalty_discount,
        final_total=final_total,
    )


@dataclass
class LocalPricingClient:
    """Pricing client that computes breakdowns in-process."""

    latency_seconds: float = 0.0

    async def calculate(self, request: PricingRequest) -> PricingBreakdown:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        return calculate_breakdown(request)


def _peak_multiplier(request: PricingRequest) -> Decimal:
    if request.scheduled_for is None:
        return Decimal("1")
    hour = request.scheduled_for.hour
    if hour in LUNCH_HOURS:
        return LUNCH_MULTIPLIER
    if hour in DINNER_HOURS:
        return DINNER_MULTIPLIER
    return Decimal("1")


def _insurance_fee(base: Decimal) -> Decimal:
    return max(Decimal("20"), min(Decimal("500"), _round(base * Decimal("0.01"))))


def _promo_discount(promo_code: str | None, total: Decimal) -> Decimal:
    if not promo_code:
        return ZERO
    promo = PROMO_CODES.get(promo_code.strip().upper())
    if promo is None or total < promo.min_order:
        return ZERO
    if promo.percentage is not None:
        return min(_round(total * promo.percentage / 100), promo.max_discount)
    return min(promo.fixed or ZERO, promo.max_discount)


def _round(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)

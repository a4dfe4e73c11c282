"""Tests for the in-process pricing function."""

import asyncio
from datetime import datetime
from decimal import Decimal

from delivery_cart.domain.pricing import PricingInputs, PricingRequest
from delivery_cart.services.pricing_rules import LocalPricingClient, calculate_breakdown


def _request(
    base: str, city: str = "Batangas City", distance_km: float = 5.0, **inputs
) -> PricingRequest:
    return PricingRequest.build(
        Decimal(base), PricingInputs(city=city, distance_km=distance_km, **inputs), ()
    )


def test_other_city_within_included_distance() -> None:
    breakdown = calculate_breakdown(_request("300"))

    assert breakdown.delivery_fee == Decimal("13")
    assert breakdown.service_fee == Decimal("15")
    assert breakdown.processing_fee == Decimal("10")
    assert breakdown.tax == Decimal("3")
    assert breakdown.final_total == Decimal("341")


def test_known_city_extra_distance_peak_hours_and_insurance() -> None:
    breakdown = calculate_breakdown(
        _request(
            "1000",
            city="Makati",
            distance_km=7.0,
            tip=Decimal("20"),
            is_insured=True,
            scheduled_for=datetime(2026, 10, 18, 12, 0),
        )
    )

    assert breakdown.delivery_fee == Decimal("198")
    assert breakdown.service_fee == Decimal("50")
    assert breakdown.insurance_fee == Decimal("20")
    assert breakdown.tax == Decimal("10")
    assert breakdown.final_total == Decimal("1308")


def test_promo_codes() -> None:
    first20 = calculate_breakdown(_request("300", promo_code="FIRST20"))
    food10 = calculate_breakdown(_request("300", promo_code="food10"))
    newbie50 = calculate_breakdown(_request("300", promo_code="NEWBIE50"))
    unknown = calculate_breakdown(_request("300", promo_code="FREEFOOD"))

    assert first20.promotional_discount == Decimal("68")
    assert first20.final_total == Decimal("273")
    assert food10.promotional_discount == Decimal("34")
    assert newbie50.final_total == Decimal("291")
    assert unknown.promotional_discount == Decimal("0")


def test_promo_code_below_minimum_order_is_ignored() -> None:
    breakdown = calculate_breakdown(_request("100", promo_code="FIRST20"))

    assert breakdown.final_total == Decimal("130")
    assert breakdown.promotional_discount == Decimal("0")


def test_loyalty_discount_capped_at_thirty_percent() -> None:
    capped = calculate_breakdown(_request("300", loyalty_points=1000))
    small = calculate_breakdown(_request("300", loyalty_points=50))

    assert capped.loyalty_discount == Decimal("102.3")
    assert capped.final_total == Decimal("238.7")
    assert small.final_total == Decimal("291")


def test_local_pricing_client() -> None:
    client = LocalPricingClient()

    breakdown = asyncio.run(client.calculate(_request("300")))

    assert breakdown.final_total == Decimal("341")

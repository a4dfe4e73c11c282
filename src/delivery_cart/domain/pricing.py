"""Domain models for pricing reconciliation."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

ZERO = Decimal("0")


@dataclass(frozen=True)
class PricingInputs:
    """User-controlled pricing inputs, independent of cart contents."""

    city: str
    distance_km: float
    tip: Decimal = ZERO
    loyalty_points: int = 0
    promo_code: str | None = None
    is_insured: bool = False
    scheduled_for: datetime | None = None


@dataclass(frozen=True)
class PricingRequest:
    """Everything a breakdown is computed from. The value is its fingerprint."""

    base_amount: Decimal
    city: str
    distance_km: float
    tip: Decimal
    loyalty_points: int
    promo_code: str | None
    is_insured: bool
    scheduled_for: datetime | None
    cart_signature: tuple[tuple[str, int, Decimal], ...]
    order_type: str = "food"

    @classmethod
    def build(
        cls,
        base_amount: Decimal,
        inputs: PricingInputs,
        cart_signature: tuple[tuple[str, int, Decimal], ...],
    ) -> "PricingRequest":
        return cls(
            base_amount=base_amount,
            city=inputs.city,
            distance_km=inputs.distance_km,
            tip=inputs.tip,
            loyalty_points=inputs.loyalty_points,
            promo_code=inputs.promo_code,
            is_insured=inputs.is_insured,
            scheduled_for=inputs.scheduled_for,
            cart_signature=cart_signature,
        )

    def to_payload(self) -> dict[str, object]:
        """Serialize the request for the remote pricing function."""
        payload: dict[str, object] = {
            "orderType": self.order_type,
            "baseAmount": float(self.base_amount),
            "city": self.city,
            "distance": self.distance_km,
            "isInsured": self.is_insured,
            "tip": float(self.tip),
            "loyaltyPoints": self.loyalty_points,
        }
        if self.promo_code:
            payload["promoCode"] = self.promo_code
        if self.scheduled_for is not None:
            payload["scheduledFor"] = self.scheduled_for.isoformat()
        return payload


@dataclass(frozen=True)
class PricingBreakdown:
    """Authoritative price of a cart as computed by the pricing function."""

    items_subtotal: Decimal
    delivery_fee: Decimal
    service_fee: Decimal
    tax: Decimal
    final_total: Decimal
    processing_fee: Decimal = ZERO
    tip: Decimal = ZERO
    insurance_fee: Decimal = ZERO
    promotional_discount: Decimal = ZERO
    loyalty_discount: Decimal = ZERO

    @property
    def total_discounts(self) -> Decimal:
        return self.promotional_discount + self.loyalty_discount


@dataclass(frozen=True)
class PricingState:
    """Read model of the reconciler for the UI."""

    breakdown: PricingBreakdown | None
    fingerprint: PricingRequest | None
    busy: bool
    error: str | None
    last_sequence: int

    def is_current(self, request: PricingRequest) -> bool:
        """Return True when the breakdown was computed for this request."""
        return self.breakdown is not None and self.fingerprint == request

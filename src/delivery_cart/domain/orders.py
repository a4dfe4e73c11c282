"""Domain models for order submission."""

from dataclasses import dataclass, field

from delivery_cart.domain.cart import CartItem
from delivery_cart.domain.pricing import PricingBreakdown, PricingInputs


@dataclass(frozen=True)
class OrderSubmission:
    """Payload sent to the order endpoint once the cart has settled."""

    restaurant_id: str
    items: tuple[CartItem, ...]
    breakdown: PricingBreakdown
    inputs: PricingInputs
    payment_provider: str
    payment_method_type: str | None
    delivery_address: dict[str, object] = field(default_factory=dict)
    special_instructions: str | None = None

    def to_payload(self) -> dict[str, object]:
        """Serialize the submission for the order endpoint."""
        return {
            "restaurantId": self.restaurant_id,
            "items": [
                {
                    "itemId": item.menu_item_id,
                    "lineId": item.id,
                    "name": item.name,
                    "price": float(item.price),
                    "quantity": item.quantity,
                    "specialInstructions": item.special_instructions,
                    "options": list(item.options),
                }
                for item in self.items
            ],
            "subtotal": float(self.breakdown.items_subtotal),
            "deliveryFee": float(self.breakdown.delivery_fee),
            "serviceFee": float(self.breakdown.service_fee),
            "processingFee": float(self.breakdown.processing_fee),
            "tax": float(self.breakdown.tax),
            "tip": float(self.breakdown.tip),
            "insuranceFee": float(self.breakdown.insurance_fee),
            "discounts": float(self.breakdown.total_discounts),
            "totalAmount": float(self.breakdown.final_total),
            "paymentProvider": self.payment_provider,
            "paymentMethodType": self.payment_method_type,
            "deliveryAddress": self.delivery_address,
            "specialInstructions": self.special_instructions,
            "loyaltyPointsUsed": self.inputs.loyalty_points,
            "promoCode": self.inputs.promo_code,
            "isInsured": self.inputs.is_insured,
            "scheduledFor": (
                self.inputs.scheduled_for.isoformat()
                if self.inputs.scheduled_for
                else None
            ),
            "paymentStatus": "pending",
        }


@dataclass(frozen=True)
class OrderConfirmation:
    """Order identifiers returned by the order endpoint."""

    order_id: str
    order_number: str | None = None
    payment_link: str | None = None

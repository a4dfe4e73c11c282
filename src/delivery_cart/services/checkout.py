"""Order submission gated on a settled cart and a current price."""

import logging
from dataclasses import dataclass

from delivery_cart.adapters.order_client import OrderClient
from delivery_cart.domain.errors import (
    CartNotSettled,
    EmptyCart,
    OrderSubmissionFailed,
    PricingNotReady,
)
from delivery_cart.domain.orders import OrderConfirmation, OrderSubmission
from delivery_cart.services.coordinator import MutationCoordinator

_logger = logging.getLogger(__name__)

PAYMENT_PROVIDERS = {"nexuspay", "cod"}


@dataclass
class CheckoutService:
    """Submits the cart as an order once nothing is left in flight."""

    coordinator: MutationCoordinator
    order_client: OrderClient

    def ensure_ready(self) -> None:
        """Raise unless the cart can be submitted right now."""
        store = self.coordinator.store
        if store.is_empty:
            raise EmptyCart("Please add items to your cart before placing an order.")
        if self.coordinator.has_pending_operations():
            raise CartNotSettled("Cart changes are still being saved.")
        state = self.coordinator.pricing_state
        if state.busy:
            raise PricingNotReady("Your total is being updated.")
        if state.error is not None:
            raise PricingNotReady(f"Your total could not be updated: {state.error}")
        if not state.is_current(self.coordinator.pricing_request()):
            raise PricingNotReady("Your total is out of date.")

    async def submit(
        self,
        payment_provider: str,
        payment_method_type: str | None = None,
        delivery_address: dict[str, object] | None = None,
        special_instructions: str | None = None,
    ) -> OrderConfirmation:
        """Place the order and empty the cart on success."""
        if payment_provider not in PAYMENT_PROVIDERS:
            raise ValueError(f"Unsupported payment provider: {payment_provider}")
        self.ensure_ready()
        store = self.coordinator.store
        breakdown = self.coordinator.pricing_state.breakdown
        if breakdown is None or store.restaurant_id is None:
            raise PricingNotReady("Your total is out of date.")

        submission = OrderSubmission(
            restaurant_id=store.restaurant_id,
            items=store.items,
            breakdown=breakdown,
            inputs=self.coordinator.inputs,
            payment_provider=payment_provider,
            payment_method_type=payment_method_type,
            delivery_address=dict(delivery_address or {}),
            special_instructions=special_instructions,
        )
        try:
            confirmation = await self.order_client.submit(submission)
        except Exception as exc:
            _logger.warning("Order submission failed: %s", exc)
            raise OrderSubmissionFailed(str(exc) or type(exc).__name__) from exc

        _logger.info(
            "Placed order %s for restaurant %s (total %s)",
            confirmation.order_id,
            submission.restaurant_id,
            breakdown.final_total,
        )
        if self.coordinator.has_pending_operations():
            _logger.warning("Cart changed while order %s was placed", confirmation.order_id)
        else:
            self.coordinator.complete_checkout()
        return confirmation

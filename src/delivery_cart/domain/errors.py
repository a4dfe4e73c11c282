"""Error taxonomy for cart mutations, pricing and checkout."""

from dataclasses import dataclass


class CartError(Exception):
    """Base class for cart engine errors."""


class ItemNotFound(CartError):
    """Raised when a cart line does not exist."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"Cart item {item_id} not found")
        self.item_id = item_id


class RestaurantConflict(CartError):
    """Raised when an item belongs to a different restaurant than the cart."""

    def __init__(self, current_restaurant_id: str, incoming_restaurant_id: str) -> None:
        super().__init__(
            "Cannot add items from different restaurants "
            f"(cart={current_restaurant_id}, item={incoming_restaurant_id})"
        )
        self.current_restaurant_id = current_restaurant_id
        self.incoming_restaurant_id = incoming_restaurant_id


class MutationRejected(CartError):
    """Raised when the remote side refuses a cart mutation."""

    def __init__(self, message: str, operation_id: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation_id = operation_id


class PricingUnavailable(CartError):
    """Raised when the pricing function fails or returns an error payload."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class OperationNotFound(CartError):
    """Raised for unknown or already retired operation ids."""

    def __init__(self, operation_id: int) -> None:
        super().__init__(f"Operation {operation_id} is not pending")
        self.operation_id = operation_id


class EmptyCart(CartError):
    """Raised when submitting an order for an empty cart."""


class CartNotSettled(CartError):
    """Raised when submitting while cart mutations are still in flight."""


class PricingNotReady(CartError):
    """Raised when the displayed price does not match the current cart."""


class OrderSubmissionFailed(CartError):
    """Raised when the order endpoint refuses the submission."""


class InvalidPricingInput(CartError, ValueError):
    """Raised for out-of-range tip, loyalty or distance values."""


@dataclass(frozen=True)
class StaleResponseDiscarded:
    """Diagnostics record for a pricing response that lost the race."""

    sequence: int
    latest_sequence: int

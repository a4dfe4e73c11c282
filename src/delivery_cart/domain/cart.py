"""Domain models for cart contents."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from delivery_cart.domain.pricing import PricingBreakdown


@dataclass(frozen=True)
class CartItem:
    """One cart line. Identity is the line id, not the menu item."""

    id: str
    menu_item_id: str
    name: str
    price: Decimal
    quantity: int
    restaurant_id: str
    special_instructions: str | None = None
    restaurant_name: str | None = None
    image: str | None = None
    category: str | None = None
    options: tuple[str, ...] = ()

    @property
    def signature(self) -> tuple[str, tuple[str, ...], str]:
        """Customization signature used to merge identical lines."""
        return customization_signature(
            self.menu_item_id, self.options, self.special_instructions
        )

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class NewCartItem:
    """Payload of an add intent; the line id is generated when missing."""

    menu_item_id: str
    name: str
    price: Decimal
    restaurant_id: str
    quantity: int = 1
    id: str | None = None
    special_instructions: str | None = None
    restaurant_name: str | None = None
    image: str | None = None
    category: str | None = None
    options: tuple[str, ...] = ()

    @property
    def signature(self) -> tuple[str, tuple[str, ...], str]:
        return customization_signature(
            self.menu_item_id, self.options, self.special_instructions
        )


@dataclass(frozen=True)
class CartSnapshot:
    """Immutable copy of the cart taken when an operation opens."""

    items: tuple[CartItem, ...]
    restaurant_id: str | None
    breakdown: PricingBreakdown | None = None
    taken_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def get(self, item_id: str) -> CartItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def position_of(self, item_id: str) -> int | None:
        for index, item in enumerate(self.items):
            if item.id == item_id:
                return index
        return None


def customization_signature(
    menu_item_id: str, options: tuple[str, ...], special_instructions: str | None
) -> tuple[str, tuple[str, ...], str]:
    """Normalize the fields that make two lines of one product distinct."""
    instructions = " ".join((special_instructions or "").split()).lower()
    return menu_item_id, tuple(sorted(options)), instructions

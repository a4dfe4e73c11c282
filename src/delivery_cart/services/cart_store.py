"""Authoritative in-memory cart contents."""

from collections.abc import Callable
from dataclasses import dataclass, replace
from decimal import Decimal
from uuid import uuid4

from delivery_cart.domain.cart import CartItem, CartSnapshot, NewCartItem
from delivery_cart.domain.errors import ItemNotFound, RestaurantConflict
from delivery_cart.domain.pricing import PricingBreakdown


@dataclass
class CartStore:
    """Single writer of cart lines.

    Every method runs to completion before returning, so no caller can
    observe a half-applied write. The store enforces two invariants: every
    stored line has ``quantity >= 1`` and a non-empty cart holds lines from
    exactly one restaurant.
    """

    _items: list[CartItem]
    on_change: Callable[["CartStore"], None] | None

    def __init__(
        self,
        items: list[CartItem] | None = None,
        on_change: Callable[["CartStore"], None] | None = None,
    ) -> None:
        self._items = []
        self.on_change = on_change
        for item in items or []:
            _validate_line(item.quantity, item.price)
            self._check_affinity(item.restaurant_id)
            self._items.append(item)

    @property
    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items)

    @property
    def restaurant_id(self) -> str | None:
        return self._items[0].restaurant_id if self._items else None

    @property
    def is_empty(self) -> bool:
        return not self._items

    def get(self, item_id: str) -> CartItem | None:
        """Return a line by id, if present."""
        index = self.position_of(item_id)
        return None if index is None else self._items[index]

    def position_of(self, item_id: str) -> int | None:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None

    def find_identical(self, item: NewCartItem) -> CartItem | None:
        """Return the line an add of ``item`` would merge into."""
        for existing in self._items:
            if existing.signature == item.signature:
                return existing
        return None

    def add_item(self, item: NewCartItem, replace_cart: bool = False) -> CartItem:
        """Append a line or merge it into an identical one."""
        _validate_line(item.quantity, item.price)
        clearing = replace_cart and self.restaurant_id not in {None, item.restaurant_id}
        if not replace_cart:
            self._check_affinity(item.restaurant_id)

        existing = None if clearing else self.find_identical(item)
        if (
            existing is None
            and not clearing
            and item.id is not None
            and self.position_of(item.id) is not None
        ):
            raise ValueError(f"Cart item {item.id} already exists")
        if clearing:
            self._items = []

        if existing is not None:
            merged = replace(existing, quantity=existing.quantity + item.quantity)
            self._items[self._items.index(existing)] = merged
            self._notify()
            return merged

        line = CartItem(
            id=item.id or str(uuid4()),
            menu_item_id=item.menu_item_id,
            name=item.name,
            price=item.price,
            quantity=item.quantity,
            restaurant_id=item.restaurant_id,
            special_instructions=item.special_instructions,
            restaurant_name=item.restaurant_name,
            image=item.image,
            category=item.category,
            options=tuple(item.options),
        )
        self._items.append(line)
        self._notify()
        return line

    def update_quantity(self, item_id: str, quantity: int) -> CartItem | None:
        """Set a line's quantity. Zero or less removes the line."""
        index = self.position_of(item_id)
        if index is None:
            raise ItemNotFound(item_id)
        if quantity <= 0:
            self.remove_item(item_id)
            return None
        updated = replace(self._items[index], quantity=quantity)
        self._items[index] = updated
        self._notify()
        return updated

    def remove_item(self, item_id: str) -> CartItem | None:
        """Remove a line. Removing an absent line is a no-op."""
        index = self.position_of(item_id)
        if index is None:
            return None
        removed = self._items.pop(index)
        self._notify()
        return removed

    def clear(self) -> None:
        self._items = []
        self._notify()

    def snapshot(self, breakdown: PricingBreakdown | None = None) -> CartSnapshot:
        """Capture an immutable copy of the current contents."""
        return CartSnapshot(
            items=tuple(self._items),
            restaurant_id=self.restaurant_id,
            breakdown=breakdown,
        )

    def restore(self, snapshot: CartSnapshot) -> None:
        """Replace the contents with a previously captured snapshot."""
        self._items = list(snapshot.items)
        self._notify()

    def reinstate(self, item: CartItem, position: int | None = None) -> None:
        """Put one line back to an exact prior state.

        Used by rollback to invert a single operation on top of whatever
        the cart holds now.
        """
        _validate_line(item.quantity, item.price)
        index = self.position_of(item.id)
        if index is not None:
            self._items[index] = item
        else:
            self._check_affinity(item.restaurant_id)
            if position is None or position > len(self._items):
                self._items.append(item)
            else:
                self._items.insert(position, item)
        self._notify()

    def get_total_price(self) -> Decimal:
        return sum((item.line_total for item in self._items), Decimal("0"))

    def get_total_item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def _check_affinity(self, restaurant_id: str) -> None:
        current = self.restaurant_id
        if current is not None and current != restaurant_id:
            raise RestaurantConflict(current, restaurant_id)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self)


def _validate_line(quantity: int, price: Decimal) -> None:
    if quantity < 1:
        raise ValueError("Quantity must be at least 1")
    if price < 0:
        raise ValueError("Price must not be negative")

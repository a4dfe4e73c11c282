"""Client-local persistence of cart contents between sessions."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from delivery_cart.domain.cart import CartItem

_logger = logging.getLogger(__name__)

_STORAGE_VERSION = 1


class StoredCartItem(BaseModel):
    """Serialized cart line."""

    id: str
    menu_item_id: str
    name: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1)
    restaurant_id: str
    special_instructions: str | None = None
    restaurant_name: str | None = None
    image: str | None = None
    category: str | None = None
    options: list[str] = []

    @classmethod
    def from_domain(cls, item: CartItem) -> "StoredCartItem":
        return cls(
            id=item.id,
            menu_item_id=item.menu_item_id,
            name=item.name,
            price=item.price,
            quantity=item.quantity,
            restaurant_id=item.restaurant_id,
            special_instructions=item.special_instructions,
            restaurant_name=item.restaurant_name,
            image=item.image,
            category=item.category,
            options=list(item.options),
        )

    def to_domain(self) -> CartItem:
        return CartItem(
            id=self.id,
            menu_item_id=self.menu_item_id,
            name=self.name,
            price=self.price,
            quantity=self.quantity,
            restaurant_id=self.restaurant_id,
            special_instructions=self.special_instructions,
            restaurant_name=self.restaurant_name,
            image=self.image,
            category=self.category,
            options=tuple(self.options),
        )


class StoredCart(BaseModel):
    """Serialized cart: lines plus the owning restaurant."""

    version: int = _STORAGE_VERSION
    restaurant_id: str | None = None
    items: list[StoredCartItem] = []


class CartStorage(Protocol):
    """Persistence interface for cart contents."""

    def load(self) -> list[CartItem]:
        """Return the persisted lines, or an empty list."""

    def save(self, items: tuple[CartItem, ...], restaurant_id: str | None) -> None:
        """Persist the current lines."""

    def clear(self) -> None:
        """Forget any persisted cart."""


@dataclass
class JsonFileCartStorage(CartStorage):
    """Stores the cart as a JSON document on the local filesystem."""

    path: Path

    def load(self) -> list[CartItem]:
        """Load persisted lines; unreadable files are treated as empty."""
        if not self.path.exists():
            return []
        try:
            stored = StoredCart.model_validate_json(self.path.read_text("utf-8"))
        except (OSError, ValidationError) as exc:
            _logger.warning("Ignoring unreadable cart file %s: %s", self.path, exc)
            return []
        if stored.version != _STORAGE_VERSION:
            _logger.warning("Ignoring cart file with version %s", stored.version)
            return []
        return [item.to_domain() for item in stored.items]

    def save(self, items: tuple[CartItem, ...], restaurant_id: str | None) -> None:
        stored = StoredCart(
            restaurant_id=restaurant_id,
            items=[StoredCartItem.from_domain(item) for item in items],
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(stored.model_dump_json(), "utf-8")
        tmp_path.replace(self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


@dataclass
class InMemoryCartStorage(CartStorage):
    """Keeps the persisted cart in memory; used when no file is configured."""

    items: tuple[CartItem, ...] = ()
    restaurant_id: str | None = None

    def load(self) -> list[CartItem]:
        return list(self.items)

    def save(self, items: tuple[CartItem, ...], restaurant_id: str | None) -> None:
        self.items = items
        self.restaurant_id = restaurant_id

    def clear(self) -> None:
        self.items = ()
        self.restaurant_id = None

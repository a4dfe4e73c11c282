"""Pydantic models for the cart HTTP facade."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from delivery_cart.domain.cart import NewCartItem


class AddItemRequest(BaseModel):
    """Add-to-cart payload from the menu item dialog."""

    menu_item_id: str
    name: str
    price: Decimal = Field(ge=0)
    restaurant_id: str
    quantity: int = Field(default=1, ge=1)
    id: str | None = None
    special_instructions: str | None = None
    restaurant_name: str | None = None
    image: str | None = None
    category: str | None = None
    options: list[str] = Field(default_factory=list)
    replace_cart: bool = False

    def to_domain(self) -> NewCartItem:
        return NewCartItem(
            menu_item_id=self.menu_item_id,
            name=self.name,
            price=self.price,
            restaurant_id=self.restaurant_id,
            quantity=self.quantity,
            id=self.id,
            special_instructions=self.special_instructions,
            restaurant_name=self.restaurant_name,
            image=self.image,
            category=self.category,
            options=tuple(self.options),
        )


class UpdateQuantityRequest(BaseModel):
    """Quantity change; zero removes the line."""

    quantity: int


class PricingInputsRequest(BaseModel):
    """Partial update of pricing inputs. Omitted fields stay unchanged."""

    tip: Decimal | None = Field(default=None, ge=0)
    promo_code: str | None = None
    loyalty_points: int | None = Field(default=None, ge=0)
    is_insured: bool | None = None
    scheduled_for: datetime | None = None
    city: str | None = None
    distance_km: float | None = Field(default=None, ge=0)


class CheckoutRequest(BaseModel):
    """Order submission payload."""

    payment_provider: str = "nexuspay"
    payment_method_type: str | None = None
    delivery_address: dict[str, object] = Field(default_factory=dict)
    special_instructions: str | None = None

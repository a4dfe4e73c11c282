"""Clients confirming optimistic cart mutations with the server."""

import asyncio
from dataclasses import dataclass
from typing import Protocol

import httpx

from delivery_cart.domain.cart import CartItem


class CartSyncClient(Protocol):
    """Interface for the network call behind each cart mutation."""

    async def add_item(self, item: CartItem) -> None:
        """Confirm that a line was added or merged."""

    async def update_quantity(self, item_id: str, quantity: int) -> None:
        """Confirm a quantity change."""

    async def remove_item(self, item_id: str) -> None:
        """Confirm a line removal."""

    async def clear(self) -> None:
        """Confirm that the cart was emptied."""


@dataclass
class HttpxCartSyncClient(CartSyncClient):
    """HTTPX-backed cart sync client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15

    @classmethod
    def create(
        cls, base_url: str, api_token: str | None = None, timeout_seconds: float = 15
    ) -> "HttpxCartSyncClient":
        """Create a cart sync client with a managed httpx session."""
        headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(headers=headers),
            timeout_seconds=timeout_seconds,
        )

    async def add_item(self, item: CartItem) -> None:
        response = await self.http_client.post(
            f"{self.base_url}/api/cart/items",
            json={
                "id": item.id,
                "menuItemId": item.menu_item_id,
                "name": item.name,
                "price": float(item.price),
                "quantity": item.quantity,
                "restaurantId": item.restaurant_id,
                "specialInstructions": item.special_instructions,
                "options": list(item.options),
            },
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()

    async def update_quantity(self, item_id: str, quantity: int) -> None:
        response = await self.http_client.patch(
            f"{self.base_url}/api/cart/items/{item_id}",
            json={"quantity": quantity},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()

    async def remove_item(self, item_id: str) -> None:
        response = await self.http_client.delete(
            f"{self.base_url}/api/cart/items/{item_id}",
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()

    async def clear(self) -> None:
        response = await self.http_client.delete(
            f"{self.base_url}/api/cart", timeout=self.timeout_seconds
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


@dataclass
class LocalCartSyncClient(CartSyncClient):
    """Acknowledges every mutation in-process after an optional delay."""

    latency_seconds: float = 0.0

    async def add_item(self, item: CartItem) -> None:
        await asyncio.sleep(self.latency_seconds)

    async def update_quantity(self, item_id: str, quantity: int) -> None:
        await asyncio.sleep(self.latency_seconds)

    async def remove_item(self, item_id: str) -> None:
        await asyncio.sleep(self.latency_seconds)

    async def clear(self) -> None:
        await asyncio.sleep(self.latency_seconds)

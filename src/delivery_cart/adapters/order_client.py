"""Order submission client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from delivery_cart.domain.orders import OrderConfirmation, OrderSubmission


class OrderClient(Protocol):
    """Interface for the order-submission function."""

    async def submit(self, submission: OrderSubmission) -> OrderConfirmation:
        """Create the order and return its identifiers."""


@dataclass
class HttpxOrderClient(OrderClient):
    """HTTPX-backed order client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15

    @classmethod
    def create(
        cls, base_url: str, api_token: str | None = None, timeout_seconds: float = 15
    ) -> "HttpxOrderClient":
        """Create an order client with a managed httpx session."""
        headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(headers=headers),
            timeout_seconds=timeout_seconds,
        )

    async def submit(self, submission: OrderSubmission) -> OrderConfirmation:
        response = await self.http_client.post(
            f"{self.base_url}/api/orders",
            json=submission.to_payload(),
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        data = response.json()
        return OrderConfirmation(
            order_id=str(data["id"]),
            order_number=data.get("orderNumber"),
            payment_link=data.get("paymentLink"),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

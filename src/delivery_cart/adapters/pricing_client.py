"""Remote pricing function client."""

from dataclasses import dataclass
from decimal import Decimal

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from delivery_cart.domain.errors import PricingUnavailable
from delivery_cart.domain.pricing import PricingBreakdown, PricingRequest
from delivery_cart.services.pricing import PricingClient


class PricingBreakdownPayload(BaseModel):
    """Breakdown section of the pricing endpoint response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    items_subtotal: Decimal = Field(alias="itemsSubtotal", ge=0)
    delivery_fee: Decimal = Field(alias="deliveryFee", ge=0)
    service_fee: Decimal = Field(alias="serviceFee", ge=0)
    processing_fee: Decimal = Field(default=Decimal("0"), alias="processingFee")
    tax: Decimal = Field(ge=0)
    tip: Decimal | None = None
    insurance_fee: Decimal | None = Field(default=None, alias="insuranceFee")
    final_total: Decimal = Field(alias="finalTotal", ge=0)


class DiscountPayload(BaseModel):
    """Discount section of the pricing endpoint response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    promotional_discount: Decimal = Field(
        default=Decimal("0"), alias="promotionalDiscount"
    )
    loyalty_points_discount: Decimal = Field(
        default=Decimal("0"), alias="loyaltyPointsDiscount"
    )
    coupon_discount: Decimal = Field(default=Decimal("0"), alias="couponDiscount")


class PricingPayload(BaseModel):
    """Pricing calculation as returned under the ``pricing`` key."""

    model_config = ConfigDict(extra="ignore")

    breakdown: PricingBreakdownPayload
    discounts: DiscountPayload = Field(default_factory=DiscountPayload)

    def to_domain(self) -> PricingBreakdown:
        breakdown = self.breakdown
        return PricingBreakdown(
            items_subtotal=breakdown.items_subtotal,
            delivery_fee=breakdown.delivery_fee,
            service_fee=breakdown.service_fee,
            processing_fee=breakdown.processing_fee,
            tax=breakdown.tax,
            tip=breakdown.tip or Decimal("0"),
            insurance_fee=breakdown.insurance_fee or Decimal("0"),
            promotional_discount=(
                self.discounts.promotional_discount + self.discounts.coupon_discount
            ),
            loyalty_discount=self.discounts.loyalty_points_discount,
            final_total=breakdown.final_total,
        )


@dataclass
class HttpxPricingClient(PricingClient):
    """HTTPX-backed pricing client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15

    @classmethod
    def create(
        cls, base_url: str, api_token: str | None = None, timeout_seconds: float = 15
    ) -> "HttpxPricingClient":
        """Create a pricing client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(headers=_auth_headers(api_token)),
            timeout_seconds=timeout_seconds,
        )

    async def calculate(self, request: PricingRequest) -> PricingBreakdown:
        """Ask the pricing endpoint for an authoritative breakdown."""
        response = await self.http_client.post(
            f"{self.base_url}/api/pricing/calculate",
            json=request.to_payload(),
            timeout=self.timeout_seconds,
        )
        if response.is_error:
            raise PricingUnavailable(_error_message(response))
        try:
            payload = PricingPayload.model_validate(response.json().get("pricing"))
        except (ValidationError, ValueError) as exc:
            raise PricingUnavailable(f"Malformed pricing response: {exc}") from exc
        return payload.to_domain()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _auth_headers(api_token: str | None) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_token}"} if api_token else {}


def _error_message(response: httpx.Response) -> str:
    """Extract ``message`` from an error payload, falling back to the status."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return f"Pricing request failed with status {response.status_code}"

"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal

import pytest

from delivery_cart.adapters.cart_sync_client import CartSyncClient
from delivery_cart.adapters.local_cart_storage import CartStorage, InMemoryCartStorage
from delivery_cart.adapters.order_client import OrderClient
from delivery_cart.config import Settings
from delivery_cart.containers import AppContainer
from delivery_cart.domain.cart import CartItem, NewCartItem
from delivery_cart.domain.errors import MutationRejected, PricingUnavailable
from delivery_cart.domain.orders import OrderConfirmation, OrderSubmission
from delivery_cart.domain.pricing import PricingBreakdown, PricingInputs, PricingRequest
from delivery_cart.services.cart_store import CartStore
from delivery_cart.services.checkout import CheckoutService
from delivery_cart.services.coordinator import MutationCoordinator
from delivery_cart.services.notifications import InMemoryNotifier
from delivery_cart.services.operation_log import OperationLog
from delivery_cart.services.pricing import PricingClient, PricingReconciler


def make_item(  # noqa: PLR0913
    menu_item_id: str = "adobo",
    name: str = "Chicken Adobo",
    price: str = "100",
    quantity: int = 1,
    restaurant_id: str = "resto-1",
    item_id: str | None = None,
    special_instructions: str | None = None,
    options: tuple[str, ...] = (),
) -> NewCartItem:
    return NewCartItem(
        menu_item_id=menu_item_id,
        name=name,
        price=Decimal(price),
        restaurant_id=restaurant_id,
        quantity=quantity,
        id=item_id,
        special_instructions=special_instructions,
        options=options,
    )


def fixed_breakdown(request: PricingRequest) -> PricingBreakdown:
    """Deterministic breakdown: flat 49 delivery, 10 service, 1 tax."""
    return PricingBreakdown(
        items_subtotal=request.base_amount,
        delivery_fee=Decimal("49"),
        service_fee=Decimal("10"),
        tax=Decimal("1"),
        tip=request.tip,
        final_total=request.base_amount + Decimal("60") + request.tip,
    )


async def drain_loop(rounds: int = 5) -> None:
    """Give scheduled tasks a few turns of the event loop."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@dataclass
class RecordingCartSyncClient(CartSyncClient):
    """Cart sync client that acknowledges immediately unless told to fail."""

    calls: list[tuple[str, object]] = field(default_factory=list)
    fail_with: str | None = None

    async def _record(self, name: str, payload: object) -> None:
        self.calls.append((name, payload))
        if self.fail_with is not None:
            raise MutationRejected(self.fail_with)

    async def add_item(self, item: CartItem) -> None:
        await self._record("add", item.id)

    async def update_quantity(self, item_id: str, quantity: int) -> None:
        await self._record("update", (item_id, quantity))

    async def remove_item(self, item_id: str) -> None:
        await self._record("remove", item_id)

    async def clear(self) -> None:
        await self._record("clear", None)


@dataclass
class PendingCall:
    name: str
    payload: object
    future: asyncio.Future[None]

    def succeed(self) -> None:
        self.future.set_result(None)

    def fail(self, message: str = "Server rejected the change") -> None:
        self.future.set_exception(MutationRejected(message))


@dataclass
class ControlledCartSyncClient(CartSyncClient):
    """Cart sync client whose calls resolve only when the test says so."""

    pending: list[PendingCall] = field(default_factory=list)

    async def _wait(self, name: str, payload: object) -> None:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self.pending.append(PendingCall(name=name, payload=payload, future=future))
        await future

    async def add_item(self, item: CartItem) -> None:
        await self._wait("add", item.id)

    async def update_quantity(self, item_id: str, quantity: int) -> None:
        await self._wait("update", (item_id, quantity))

    async def remove_item(self, item_id: str) -> None:
        await self._wait("remove", item_id)

    async def clear(self) -> None:
        await self._wait("clear", None)


@dataclass
class RecordingPricingClient(PricingClient):
    """Pricing client returning ``fixed_breakdown`` and recording requests."""

    requests: list[PricingRequest] = field(default_factory=list)
    fail_with: str | None = None

    async def calculate(self, request: PricingRequest) -> PricingBreakdown:
        self.requests.append(request)
        if self.fail_with is not None:
            raise PricingUnavailable(self.fail_with)
        return fixed_breakdown(request)


@dataclass
class ControlledPricingClient(PricingClient):
    """Pricing client whose responses are released by the test."""

    requests: list[PricingRequest] = field(default_factory=list)
    futures: list[asyncio.Future[PricingBreakdown]] = field(default_factory=list)

    async def calculate(self, request: PricingRequest) -> PricingBreakdown:
        future: asyncio.Future[PricingBreakdown] = (
            asyncio.get_running_loop().create_future()
        )
        self.requests.append(request)
        self.futures.append(future)
        return await future

    def respond(self, index: int) -> None:
        self.futures[index].set_result(fixed_breakdown(self.requests[index]))

    def fail(self, index: int, message: str = "pricing down") -> None:
        self.futures[index].set_exception(PricingUnavailable(message))


@dataclass
class FakeOrderClient(OrderClient):
    """Order client recording submissions."""

    submissions: list[OrderSubmission] = field(default_factory=list)
    fail_with: str | None = None

    async def submit(self, submission: OrderSubmission) -> OrderConfirmation:
        self.submissions.append(submission)
        if self.fail_with is not None:
            raise RuntimeError(self.fail_with)
        return OrderConfirmation(
            order_id="order-1", order_number="BTS-0001", payment_link=None
        )


def build_coordinator(
    sync_client: CartSyncClient | None = None,
    pricing_client: PricingClient | None = None,
    debounce_seconds: float = 0.01,
    storage: CartStorage | None = None,
) -> MutationCoordinator:
    return MutationCoordinator(
        store=CartStore(),
        operations=OperationLog(),
        reconciler=PricingReconciler(
            client=pricing_client or RecordingPricingClient(),
            debounce_seconds=debounce_seconds,
        ),
        sync_client=sync_client or RecordingCartSyncClient(),
        notifier=InMemoryNotifier(),
        inputs=PricingInputs(city="Batangas City", distance_km=5.0),
        storage=storage,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="https://api.test",
        pricing_backend="local",
        cart_sync_backend="local",
        pricing_debounce_ms=10,
        cart_storage_path=None,
    )


@pytest.fixture
def order_client() -> FakeOrderClient:
    return FakeOrderClient()


@pytest.fixture
def container(settings: Settings, order_client: FakeOrderClient) -> AppContainer:
    storage = InMemoryCartStorage()
    coordinator = MutationCoordinator(
        store=CartStore(),
        operations=OperationLog(),
        reconciler=PricingReconciler(
            client=RecordingPricingClient(),
            debounce_seconds=settings.pricing_debounce_ms / 1000,
        ),
        sync_client=RecordingCartSyncClient(),
        notifier=InMemoryNotifier(),
        inputs=PricingInputs(
            city=settings.default_city, distance_km=settings.default_distance_km
        ),
        storage=storage,
    )

    async def close_resources() -> None:
        coordinator.shutdown()

    return AppContainer(
        settings=settings,
        store=coordinator.store,
        operations=coordinator.operations,
        reconciler=coordinator.reconciler,
        notifier=coordinator.notifier,
        coordinator=coordinator,
        checkout_service=CheckoutService(
            coordinator=coordinator, order_client=order_client
        ),
        close_resources=close_resources,
    )

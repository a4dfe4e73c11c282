"""Dependency container wiring for a cart session."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from delivery_cart.adapters.cart_sync_client import (
    CartSyncClient,
    HttpxCartSyncClient,
    LocalCartSyncClient,
)
from delivery_cart.adapters.local_cart_storage import (
    CartStorage,
    InMemoryCartStorage,
    JsonFileCartStorage,
)
from delivery_cart.adapters.order_client import HttpxOrderClient
from delivery_cart.adapters.pricing_client import HttpxPricingClient
from delivery_cart.config import Settings, parse_backend
from delivery_cart.domain.pricing import PricingInputs
from delivery_cart.services.cart_store import CartStore
from delivery_cart.services.checkout import CheckoutService
from delivery_cart.services.coordinator import MutationCoordinator
from delivery_cart.services.notifications import InMemoryNotifier
from delivery_cart.services.operation_log import OperationLog
from delivery_cart.services.pricing import PricingClient, PricingReconciler
from delivery_cart.services.pricing_rules import LocalPricingClient


@dataclass
class AppContainer:
    """Holds the dependencies of one cart session."""

    settings: Settings
    store: CartStore
    operations: OperationLog
    reconciler: PricingReconciler
    notifier: InMemoryNotifier
    coordinator: MutationCoordinator
    checkout_service: CheckoutService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    base_url = resolved_settings.api_base_url
    token = resolved_settings.api_token
    timeout = resolved_settings.request_timeout_seconds
    closers: list[Callable[[], Awaitable[None]]] = []

    pricing_client: PricingClient
    if parse_backend(resolved_settings.pricing_backend) == "local":
        pricing_client = LocalPricingClient()
    else:
        remote_pricing = HttpxPricingClient.create(base_url, token, timeout)
        closers.append(remote_pricing.close)
        pricing_client = remote_pricing

    sync_client: CartSyncClient
    if parse_backend(resolved_settings.cart_sync_backend) == "local":
        sync_client = LocalCartSyncClient(
            latency_seconds=resolved_settings.local_sync_latency_ms / 1000
        )
    else:
        remote_sync = HttpxCartSyncClient.create(base_url, token, timeout)
        closers.append(remote_sync.close)
        sync_client = remote_sync

    order_client = HttpxOrderClient.create(base_url, token, timeout)
    closers.append(order_client.close)

    storage: CartStorage
    if resolved_settings.cart_storage_path:
        storage = JsonFileCartStorage(Path(resolved_settings.cart_storage_path))
    else:
        storage = InMemoryCartStorage()

    store = CartStore()
    operations = OperationLog()
    reconciler = PricingReconciler(
        client=pricing_client,
        debounce_seconds=resolved_settings.pricing_debounce_ms / 1000,
    )
    notifier = InMemoryNotifier()
    coordinator = MutationCoordinator(
        store=store,
        operations=operations,
        reconciler=reconciler,
        sync_client=sync_client,
        notifier=notifier,
        inputs=PricingInputs(
            city=resolved_settings.default_city,
            distance_km=resolved_settings.default_distance_km,
        ),
        storage=storage,
    )
    checkout_service = CheckoutService(coordinator=coordinator, order_client=order_client)

    async def close_resources() -> None:
        coordinator.shutdown()
        for close in closers:
            await close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        operations=operations,
        reconciler=reconciler,
        notifier=notifier,
        coordinator=coordinator,
        checkout_service=checkout_service,
        close_resources=close_resources,
    )

"""Optimistic cart mutations: apply, confirm, commit or roll back."""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from delivery_cart.adapters.cart_sync_client import CartSyncClient
from delivery_cart.adapters.local_cart_storage import CartStorage
from delivery_cart.domain.cart import CartItem, CartSnapshot, NewCartItem
from delivery_cart.domain.errors import (
    CartNotSettled,
    InvalidPricingInput,
    ItemNotFound,
    MutationRejected,
)
from delivery_cart.domain.operations import OperationType, RollbackResult
from delivery_cart.domain.pricing import PricingInputs, PricingRequest, PricingState
from delivery_cart.services.cart_store import CartStore
from delivery_cart.services.notifications import Notification, Notifier
from delivery_cart.services.operation_log import OperationLog
from delivery_cart.services.pricing import PricingReconciler

_logger = logging.getLogger(__name__)


class IntentState(Enum):
    IDLE = "idle"
    APPLYING = "applying"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class Intent:
    """One user intent travelling through the mutation state machine."""

    operation_id: int
    operation_type: OperationType
    item_ids: tuple[str, ...]
    label: str
    state: IntentState = IntentState.APPLYING
    error: str | None = None
    rollback: RollbackResult | None = None


@dataclass
class MutationCoordinator:
    """Glue between the cart store, the operation log and pricing.

    Every mutating method runs synchronously on the event loop: it writes
    the store, opens an operation and returns the task that confirms it
    with the server. Intents against the same line are not serialized;
    the operation log decides what a failed confirmation may undo.
    """

    store: CartStore
    operations: OperationLog
    reconciler: PricingReconciler
    sync_client: CartSyncClient
    notifier: Notifier
    inputs: PricingInputs
    storage: CartStorage | None = None
    history_size: int = 50

    def __post_init__(self) -> None:
        self._intents: dict[int, Intent] = {}
        self._tasks: set[asyncio.Task[Intent]] = set()
        self.completed: deque[Intent] = deque(maxlen=self.history_size)
        if self.storage is not None:
            self.store.on_change = self._persist

    def add_item(
        self, item: NewCartItem, replace_cart: bool = False
    ) -> asyncio.Task[Intent]:
        """Add a line, merging into an identical one.

        Raises ``RestaurantConflict`` when the cart holds another
        restaurant's items and ``replace_cart`` is false.
        """
        snapshot = self._snapshot()
        current_restaurant = self.store.restaurant_id
        replaces = replace_cart and current_restaurant not in {None, item.restaurant_id}
        merged_into = None if replaces else self.store.find_identical(item)
        line = self.store.add_item(item, replace_cart=replace_cart)

        affected: dict[str, CartItem | None] = {}
        if replaces:
            affected.update({previous.id: previous for previous in snapshot.items})
        affected[line.id] = merged_into
        operation_id = self.operations.begin(
            OperationType.ADD,
            line.id,
            snapshot,
            affected=affected,
            replaces_cart=replaces,
        )

        async def confirm() -> None:
            if replaces:
                await self.sync_client.clear()
            await self.sync_client.add_item(line)

        return self._dispatch(
            operation_id, OperationType.ADD, tuple(affected), line.name, confirm
        )

    def update_quantity(self, item_id: str, quantity: int) -> asyncio.Task[Intent] | None:
        """Change a line's quantity; zero or less removes it."""
        if quantity <= 0:
            return self.remove_item(item_id)
        current = self.store.get(item_id)
        if current is not None and current.quantity == quantity:
            return None
        snapshot = self._snapshot()
        try:
            updated = self.store.update_quantity(item_id, quantity)
        except ItemNotFound:
            _logger.debug("Ignoring quantity change for missing item %s", item_id)
            return None
        operation_id = self.operations.begin(OperationType.UPDATE, item_id, snapshot)
        return self._dispatch(
            operation_id,
            OperationType.UPDATE,
            (item_id,),
            updated.name,
            lambda: self.sync_client.update_quantity(item_id, quantity),
        )

    def remove_item(self, item_id: str) -> asyncio.Task[Intent] | None:
        """Remove a line. Removing an absent line does nothing."""
        snapshot = self._snapshot()
        removed = self.store.remove_item(item_id)
        if removed is None:
            return None
        operation_id = self.operations.begin(OperationType.REMOVE, item_id, snapshot)
        return self._dispatch(
            operation_id,
            OperationType.REMOVE,
            (item_id,),
            removed.name,
            lambda: self.sync_client.remove_item(item_id),
        )

    def clear(self) -> asyncio.Task[Intent] | None:
        """Empty the cart."""
        if self.store.is_empty:
            return None
        snapshot = self._snapshot()
        self.store.clear()
        operation_id = self.operations.begin(OperationType.CLEAR, None, snapshot)
        return self._dispatch(
            operation_id,
            OperationType.CLEAR,
            tuple(item.id for item in snapshot.items),
            "your cart",
            self.sync_client.clear,
        )

    def set_tip(self, tip: Decimal) -> None:
        if tip < 0:
            raise InvalidPricingInput("Tip must not be negative")
        self._update_inputs(tip=tip)

    def set_promo_code(self, promo_code: str | None) -> None:
        cleaned = (promo_code or "").strip().upper()
        self._update_inputs(promo_code=cleaned or None)

    def set_loyalty_points(self, points: int) -> None:
        if points < 0:
            raise InvalidPricingInput("Loyalty points must not be negative")
        self._update_inputs(loyalty_points=points)

    def set_insured(self, is_insured: bool) -> None:
        self._update_inputs(is_insured=is_insured)

    def set_scheduled_for(self, scheduled_for: datetime | None) -> None:
        self._update_inputs(scheduled_for=scheduled_for)

    def set_delivery_location(self, city: str, distance_km: float) -> None:
        if distance_km < 0:
            raise InvalidPricingInput("Distance must not be negative")
        if not city.strip():
            raise InvalidPricingInput("City is required")
        self._update_inputs(city=city.strip(), distance_km=distance_km)

    def pricing_request(self) -> PricingRequest:
        """Fingerprint of the current cart and pricing inputs."""
        signature = tuple(
            (item.id, item.quantity, item.price) for item in self.store.items
        )
        return PricingRequest.build(self.store.get_total_price(), self.inputs, signature)

    def schedule_pricing(self) -> None:
        self.reconciler.schedule(self.pricing_request())

    @property
    def pricing_state(self) -> PricingState:
        return self.reconciler.state

    def has_pending_operations(self) -> bool:
        return self.operations.has_pending_operations()

    def item_state(self, item_id: str) -> IntentState:
        """State of the newest in-flight intent for a line."""
        intents = [
            intent for intent in self._intents.values() if item_id in intent.item_ids
        ]
        if not intents:
            return IntentState.IDLE
        return max(intents, key=lambda intent: intent.operation_id).state

    def is_updating(self, item_id: str) -> bool:
        return self.item_state(item_id) is not IntentState.IDLE

    @property
    def updating_items(self) -> set[str]:
        return {
            item_id for intent in self._intents.values() for item_id in intent.item_ids
        }

    async def wait_until_settled(self) -> None:
        """Wait for every confirmation and the resulting pricing request."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.reconciler.wait_until_settled()

    def restore_persisted(self) -> int:
        """Load the cart persisted by a previous session and price it."""
        if self.storage is None:
            return 0
        items = self.storage.load()
        restaurant_id = items[0].restaurant_id if items else None
        kept = tuple(item for item in items if item.restaurant_id == restaurant_id)
        if len(kept) != len(items):
            _logger.warning(
                "Dropped %s persisted items from other restaurants",
                len(items) - len(kept),
            )
        self.store.restore(CartSnapshot(items=kept, restaurant_id=restaurant_id))
        self.schedule_pricing()
        return len(kept)

    def complete_checkout(self) -> None:
        """Empty the cart locally once the order has been placed."""
        if self.operations.has_pending_operations():
            raise CartNotSettled("Cart changes are still being saved")
        self.store.clear()
        if self.storage is not None:
            self.storage.clear()
        self.schedule_pricing()

    def shutdown(self) -> None:
        """Tear down the session: stop timers and forget in-flight intents."""
        self.reconciler.cancel()
        for task in self._tasks:
            task.cancel()
        self._intents.clear()
        self.operations.clear_pending()
        self.store.on_change = None

    def _dispatch(
        self,
        operation_id: int,
        operation_type: OperationType,
        item_ids: tuple[str, ...],
        label: str,
        confirm: Callable[[], Awaitable[None]],
    ) -> asyncio.Task[Intent]:
        intent = Intent(
            operation_id=operation_id,
            operation_type=operation_type,
            item_ids=item_ids,
            label=label,
        )
        self._intents[operation_id] = intent
        self._transition(intent, IntentState.AWAITING_CONFIRMATION)
        task = asyncio.get_running_loop().create_task(self._settle(intent, confirm))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _settle(
        self, intent: Intent, confirm: Callable[[], Awaitable[None]]
    ) -> Intent:
        try:
            await confirm()
        except Exception as exc:
            error = _as_rejection(exc, intent.operation_id)
        else:
            error = None

        operation = self.operations.get(intent.operation_id)
        if operation is None or not operation.is_pending:
            _logger.debug("Operation %s was discarded", intent.operation_id)
            self._intents.pop(intent.operation_id, None)
            return intent

        if error is None:
            self.operations.commit(intent.operation_id)
            self._transition(intent, IntentState.COMMITTED)
        else:
            self._roll_back(intent, error)

        self._intents.pop(intent.operation_id, None)
        self.completed.append(intent)
        self.schedule_pricing()
        return intent

    def _roll_back(self, intent: Intent, error: MutationRejected) -> None:
        result = self.operations.rollback(intent.operation_id, self.store)
        intent.error = error.message
        intent.rollback = result
        self._transition(intent, IntentState.ROLLED_BACK)
        _logger.warning(
            "Rolled back %s of %s: %s",
            intent.operation_type.value,
            intent.label,
            error.message,
        )
        self.notifier.notify(
            Notification(
                title="Couldn't update your cart",
                message=f"{intent.label}: {error.message}. {_outcome_text(result)}",
                level="error",
                item_id=intent.item_ids[0] if len(intent.item_ids) == 1 else None,
            )
        )
        if result.has_conflict:
            self.notifier.notify(
                Notification(
                    title="Cart updated",
                    message=f"Kept your latest change to {intent.label}.",
                    level="warning",
                    item_id=result.conflicts[0],
                )
            )

    def _transition(self, intent: Intent, state: IntentState) -> None:
        _logger.debug(
            "Operation %s %s -> %s", intent.operation_id, intent.state.value, state.value
        )
        intent.state = state

    def _snapshot(self) -> CartSnapshot:
        return self.store.snapshot(self.reconciler.state.breakdown)

    def _update_inputs(self, **changes: object) -> None:
        updated = replace(self.inputs, **changes)
        if updated == self.inputs:
            return
        self.inputs = updated
        self.schedule_pricing()

    def _persist(self, store: CartStore) -> None:
        if self.storage is None:
            return
        try:
            self.storage.save(store.items, store.restaurant_id)
        except OSError:
            _logger.exception("Failed to persist cart")


def _outcome_text(result: RollbackResult) -> str:
    if result.restored_snapshot or result.reverted:
        return "Your change was undone."
    if result.conflicts:
        return "Your later change was kept."
    return "Your newer change is still being saved."


def _as_rejection(exc: Exception, operation_id: int) -> MutationRejected:
    """Convert any confirmation failure into ``MutationRejected``."""
    if isinstance(exc, MutationRejected):
        return exc
    response = getattr(exc, "response", None)
    message: str | None = None
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            message = body["message"]
        if message is None:
            message = f"Request failed with status {response.status_code}"
    return MutationRejected(message or str(exc) or type(exc).__name__, operation_id)

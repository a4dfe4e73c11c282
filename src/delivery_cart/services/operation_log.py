"""Tracking and conflict-aware rollback of optimistic operations."""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime

from delivery_cart.domain.cart import CartItem, CartSnapshot
from delivery_cart.domain.errors import OperationNotFound, RestaurantConflict
from delivery_cart.domain.operations import (
    Operation,
    OperationStatus,
    OperationType,
    RollbackResult,
)
from delivery_cart.services.cart_store import CartStore

_logger = logging.getLogger(__name__)


@dataclass
class OperationLog:
    """Single writer of operation records.

    Operations are ordered by id. For any line the last committed write
    wins, and a rollback never undoes a strictly later committed write.
    Committed operations are kept until no older operation is pending,
    since only older pending operations can conflict with them.
    """

    _pending: dict[int, Operation]
    _committed: list[Operation]
    _history: deque[Operation]
    _next_id: int

    def __init__(self, history_size: int = 50) -> None:
        self._pending = {}
        self._committed = []
        self._history = deque(maxlen=history_size)
        self._next_id = 0

    def begin(
        self,
        operation_type: OperationType,
        target_item_id: str | None,
        snapshot: CartSnapshot,
        affected: dict[str, CartItem | None] | None = None,
        replaces_cart: bool = False,
    ) -> int:
        """Open a pending operation and return its id."""
        self._next_id += 1
        if affected is None:
            affected = _affected_from_snapshot(operation_type, target_item_id, snapshot)
        operation = Operation(
            id=self._next_id,
            type=operation_type,
            target_item_id=target_item_id,
            snapshot=snapshot,
            affected=dict(affected),
            opened_at=datetime.now(tz=UTC),
            replaces_cart=replaces_cart,
        )
        self._pending[operation.id] = operation
        return operation.id

    def get(self, operation_id: int) -> Operation | None:
        operation = self._pending.get(operation_id)
        if operation is not None:
            return operation
        for retired in self._history:
            if retired.id == operation_id:
                return retired
        return None

    def commit(self, operation_id: int) -> Operation:
        """Mark an operation committed. The optimistic write already stands."""
        operation = self._pop_pending(operation_id)
        operation.status = OperationStatus.COMMITTED
        self._committed.append(operation)
        self._retire(operation)
        _logger.debug("Committed %s operation %s", operation.type.value, operation.id)
        return operation

    def rollback(self, operation_id: int, store: CartStore) -> RollbackResult:
        """Invert one operation on top of the current cart.

        Per affected line: a later committed write wins (conflict, no-op);
        a later pending write inherits this operation's prior state
        (superseded); otherwise the prior state is written back. A line
        blocked by another restaurant's pending lines is handed to the
        operation that added them, which then counts as replacing the cart.
        """
        operation = self._pop_pending(operation_id)
        operation.status = OperationStatus.ROLLED_BACK
        later = self._live_after(operation.id)
        self._retire(operation)

        if not later and operation.snapshot_current:
            store.restore(operation.snapshot)
            self._invalidate_pending_snapshots()
            return RollbackResult(
                operation_id=operation.id,
                reverted=tuple(operation.affected),
                restored_snapshot=True,
            )

        reverted: list[str] = []
        superseded: list[str] = []
        conflicts: list[str] = []
        removals: list[str] = []
        reinstatements: list[CartItem] = []
        for item_id, previous in operation.affected.items():
            touching = [other for other in later if other.touches(item_id)]
            if any(other.status is OperationStatus.COMMITTED for other in touching):
                conflicts.append(item_id)
            elif touching:
                touching[0].affected[item_id] = previous
                superseded.append(item_id)
            elif previous is None:
                removals.append(item_id)
            else:
                reinstatements.append(previous)

        for item_id in removals:
            store.remove_item(item_id)
            reverted.append(item_id)
        for previous in reinstatements:
            try:
                store.reinstate(previous, operation.snapshot.position_of(previous.id))
            except RestaurantConflict:
                holder = _pending_holder(store, previous, later)
                if holder is None:
                    conflicts.append(previous.id)
                else:
                    holder.affected[previous.id] = previous
                    holder.replaces_cart = True
                    superseded.append(previous.id)
            else:
                reverted.append(previous.id)

        self._invalidate_pending_snapshots()
        result = RollbackResult(
            operation_id=operation.id,
            reverted=tuple(reverted),
            superseded=tuple(superseded),
            conflicts=tuple(conflicts),
        )
        if result.has_conflict:
            _logger.warning(
                "Rollback of %s operation %s kept later writes for %s",
                operation.type.value,
                operation.id,
                ", ".join(result.conflicts),
            )
        return result

    def has_pending_operations(self) -> bool:
        return bool(self._pending)

    def pending_for(self, item_id: str) -> list[Operation]:
        """Return pending operations touching a line, oldest first."""
        return [
            op
            for op in sorted(self._pending.values(), key=lambda op: op.id)
            if op.touches(item_id)
        ]

    @property
    def history(self) -> tuple[Operation, ...]:
        """Recently retired operations, for diagnostics."""
        return tuple(self._history)

    def clear_pending(self) -> None:
        """Drop every pending operation, e.g. on logout."""
        self._pending.clear()
        self._committed.clear()

    def _pop_pending(self, operation_id: int) -> Operation:
        operation = self._pending.pop(operation_id, None)
        if operation is None:
            raise OperationNotFound(operation_id)
        return operation

    def _retire(self, operation: Operation) -> None:
        self._history.append(operation)
        oldest_pending = min(self._pending, default=None)
        self._committed = [
            op
            for op in self._committed
            if oldest_pending is not None and op.id > oldest_pending
        ]

    def _live_after(self, operation_id: int) -> list[Operation]:
        candidates = [*self._pending.values(), *self._committed]
        return sorted(
            (op for op in candidates if op.id > operation_id), key=lambda op: op.id
        )

    def _invalidate_pending_snapshots(self) -> None:
        for operation in self._pending.values():
            operation.snapshot_current = False


def _affected_from_snapshot(
    operation_type: OperationType, target_item_id: str | None, snapshot: CartSnapshot
) -> dict[str, CartItem | None]:
    if operation_type is OperationType.CLEAR:
        return {item.id: item for item in snapshot.items}
    if target_item_id is None:
        return {}
    return {target_item_id: snapshot.get(target_item_id)}


def _pending_holder(
    store: CartStore, blocked: CartItem, later: list[Operation]
) -> Operation | None:
    """Pending operation that added the lines blocking ``blocked``.

    None when any blocking line is held by a committed write.
    """
    foreign = [
        item.id for item in store.items if item.restaurant_id != blocked.restaurant_id
    ]
    holders: list[Operation] = []
    for item_id in foreign:
        touching = [op for op in later if op.touches(item_id)]
        if not touching or not all(op.is_pending for op in touching):
            return None
        holders.extend(touching)
    return min(holders, key=lambda op: op.id, default=None)

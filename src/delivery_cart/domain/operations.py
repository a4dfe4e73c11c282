"""Domain models for optimistic cart operations."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from delivery_cart.domain.cart import CartItem, CartSnapshot


class OperationType(Enum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"
    CLEAR = "clear"


class OperationStatus(Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolledback"


@dataclass
class Operation:
    """An optimistic mutation awaiting remote confirmation.

    ``affected`` maps every line the operation touched to its state right
    before the operation (``None`` when the line did not exist yet).
    """

    id: int
    type: OperationType
    target_item_id: str | None
    snapshot: CartSnapshot
    affected: dict[str, CartItem | None]
    opened_at: datetime
    status: OperationStatus = OperationStatus.PENDING
    replaces_cart: bool = False
    snapshot_current: bool = True

    def touches(self, item_id: str) -> bool:
        """Return True when this operation wrote the given line."""
        if self.type is OperationType.CLEAR or self.replaces_cart:
            return True
        return item_id in self.affected

    @property
    def is_pending(self) -> bool:
        return self.status is OperationStatus.PENDING


@dataclass(frozen=True)
class RollbackResult:
    """Outcome of a conflict-aware rollback."""

    operation_id: int
    reverted: tuple[str, ...] = ()
    superseded: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()
    restored_snapshot: bool = False

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicts)

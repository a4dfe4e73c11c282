"""Transient user notifications (toasts)."""

from collections import deque
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Notification:
    """A message the UI shows briefly."""

    title: str
    message: str
    level: str = "info"
    item_id: str | None = None


class Notifier(Protocol):
    """Interface for surfacing notifications to the user."""

    def notify(self, notification: Notification) -> None:
        """Publish a notification."""


@dataclass
class InMemoryNotifier(Notifier):
    """Keeps recent notifications until the UI drains them."""

    _queue: deque[Notification]

    def __init__(self, max_size: int = 50) -> None:
        self._queue = deque(maxlen=max_size)

    def notify(self, notification: Notification) -> None:
        self._queue.append(notification)

    def peek(self) -> list[Notification]:
        return list(self._queue)

    def drain(self) -> list[Notification]:
        """Return and forget every queued notification."""
        notifications = list(self._queue)
        self._queue.clear()
        return notifications

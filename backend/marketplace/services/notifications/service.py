"""
Order notifications.

The order service records a notification for every party of an order whenever
the order's lifecycle changes. Records go to an injected store; delivering
them (push, e-mail, SMS) is left to whatever consumes the store.
"""

import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional, Protocol

from marketplace.core.logging import get_logger
from marketplace.database.base import utcnow

logger = get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    """One queued notification for one recipient."""

    recipient_id: uuid.UUID
    event: str
    order_id: uuid.UUID
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)


class NotificationStore(Protocol):
    """Storage used by NotificationService."""

    async def enqueue(self, notification: Notification) -> None: ...

    async def list_for_user(
        self, user_id: uuid.UUID, limit: int = 50
    ) -> list[Notification]: ...


class InMemoryNotificationStore:
    """
    Process-local store, newest first. Used in development and tests.

    Holds at most ``max_items`` notifications; the oldest are dropped first.
    """

    def __init__(self, max_items: int = 1000) -> None:
        self._items: deque[Notification] = deque(maxlen=max_items)

    async def enqueue(self, notification: Notification) -> None:
        self._items.append(notification)

    async def list_for_user(
        self, user_id: uuid.UUID, limit: int = 50
    ) -> list[Notification]:
        matches = [n for n in reversed(self._items) if n.recipient_id == user_id]
        return matches[:limit]


class NotificationService:
    """Fan lifecycle events out to the parties of an order."""

    def __init__(self, store: NotificationStore):
        self.store = store

    async def notify_parties(
        self,
        recipients: Iterable[uuid.UUID],
        event: str,
        order_id: uuid.UUID,
        message: str,
        skip: Optional[uuid.UUID] = None,
        **context: Any,
    ) -> int:
        """
        Queue one notification per recipient.

        Args:
            recipients: User ids to notify
            event: Event name, e.g. ``order.status_changed``
            order_id: Order the event refers to
            message: Human readable summary
            skip: Recipient to leave out, usually the acting user
            **context: Extra values stored with the notification

        Returns:
            Number of notifications queued
        """
        queued = 0
        for recipient_id in dict.fromkeys(recipients):
            if recipient_id is None or recipient_id == skip:
                continue
            await self.store.enqueue(
                Notification(
                    recipient_id=recipient_id,
                    event=event,
                    order_id=order_id,
                    message=message,
                    context=dict(context),
                )
            )
            queued += 1

        logger.debug(
            "Order notifications queued",
            order_id=str(order_id),
            notification_event=event,
            count=queued,
        )
        return queued

    async def list_for_user(
        self, user_id: uuid.UUID, limit: int = 50
    ) -> list[Notification]:
        return await self.store.list_for_user(user_id, limit=limit)

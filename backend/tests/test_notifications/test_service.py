"""
Tests for order notification fan-out.
"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from marketplace.database.models.user import UserRole
from marketplace.services.notifications.service import (
    InMemoryNotificationStore,
    Notification,
    NotificationService,
)
from marketplace.services.orders.enums import OrderStatus
from marketplace.services.orders.service import OrderService
from tests.conftest import actor_for


@pytest.fixture
def store() -> InMemoryNotificationStore:
    return InMemoryNotificationStore()


@pytest.fixture
def service(store: InMemoryNotificationStore) -> NotificationService:
    return NotificationService(store)


class TestNotifyParties:
    """Test recipient handling."""

    async def test_one_record_per_recipient(
        self, service: NotificationService, store: InMemoryNotificationStore
    ) -> None:
        buyer, driver, order_id = uuid4(), uuid4(), uuid4()

        queued = await service.notify_parties(
            [buyer, driver, buyer, None],
            "order.status_changed",
            order_id,
            "Order is now shipped",
            order_status="shipped",
        )

        assert queued == 2
        inbox = await store.list_for_user(buyer)
        assert len(inbox) == 1
        assert inbox[0].order_id == order_id
        assert inbox[0].context == {"order_status": "shipped"}

    async def test_skips_acting_user(self, service: NotificationService) -> None:
        actor, other = uuid4(), uuid4()

        queued = await service.notify_parties(
            {actor, other}, "order.created", uuid4(), "New order", skip=actor
        )

        assert queued == 1
        assert await service.list_for_user(actor) == []

    async def test_newest_first_with_limit(self, service: NotificationService) -> None:
        user = uuid4()
        for event in ("order.created", "order.approved", "order.paid"):
            await service.notify_parties([user], event, uuid4(), event)

        inbox = await service.list_for_user(user, limit=2)

        assert [n.event for n in inbox] == ["order.paid", "order.approved"]

    async def test_store_drops_oldest_beyond_capacity(self) -> None:
        store = InMemoryNotificationStore(max_items=2)
        service = NotificationService(store)
        user = uuid4()
        for event in ("order.created", "order.approved", "order.paid"):
            await service.notify_parties([user], event, uuid4(), event)

        inbox = await store.list_for_user(user)

        assert [n.event for n in inbox] == ["order.paid", "order.approved"]

    async def test_uses_injected_store(self) -> None:
        store = AsyncMock()
        service = NotificationService(store)
        recipient = uuid4()

        await service.notify_parties([recipient], "order.paid", uuid4(), "Paid")

        store.enqueue.assert_awaited_once()
        notification = store.enqueue.await_args.args[0]
        assert isinstance(notification, Notification)
        assert notification.recipient_id == recipient


async def test_order_change_survives_notification_failure(
    session, make_user, make_product
) -> None:
    """A failing store is logged and does not undo the order operation."""
    store = AsyncMock()
    store.enqueue.side_effect = RuntimeError("queue unavailable")
    service = OrderService(session, notification_service=NotificationService(store))
    customer = await make_user(UserRole.CUSTOMER)
    supervisor = await make_user(UserRole.SUPERVISOR)
    product = await make_product()

    order = await service.create_order(
        actor_for(customer), product_id=product.id, quantity=1, total_price=10
    )
    order = await service.mark_completed(order["id"], actor_for(supervisor))

    assert order["order_status"] is OrderStatus.COMPLETED

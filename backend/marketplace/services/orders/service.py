"""
Order service orchestrating the order lifecycle.

This module implements the OrderService class: order creation for customer and
inventory orders, role-gated status transitions, payment status changes, the
finance approval path, driver assignment and the supplier delivery/payment
path. Each operation loads one order, applies the change through the state
machine, and saves it as one versioned update.
"""

import uuid
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Iterator, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import get_settings
from marketplace.core.logging import get_logger
from marketplace.database.models.order import Order
from marketplace.database.models.user import STAFF_ROLES, User, UserRole
from marketplace.schemas.auth import Actor
from marketplace.services.notifications.service import NotificationService
from marketplace.services.orders.enums import (
    SUPPLIER_PAYABLE_STATUSES,
    OrderStatus,
    OrderType,
    PaymentStatus,
    PaymentTiming,
    accepted_payment_statuses,
)
from marketplace.services.orders.repository import (
    ConcurrentOrderUpdateError,
    OrderNotFoundError,
    OrderRepository,
)
from marketplace.services.orders.state_machine import (
    InvalidTransitionError,
    OrderStateMachine,
)
from marketplace.services.products.repository import ProductRepository
from marketplace.services.users.repository import UserRepository

logger = get_logger(__name__)

DEFAULT_REJECTION_REASON = "Rejected by finance"


class OrderServiceError(Exception):
    """Base exception for order service errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class OrderValidationError(OrderServiceError):
    """Raised when order input is missing or invalid."""

    pass


class OrderForbiddenError(OrderServiceError):
    """Raised when the actor may not perform the operation on this order."""

    pass


class InvalidOperationError(OrderServiceError):
    """Raised when the operation does not apply to this order's type."""

    pass


class OrderProcessingError(OrderServiceError):
    """Raised when an operation fails for an unanticipated reason."""

    pass


_PASSTHROUGH_ERRORS = (
    OrderServiceError,
    OrderNotFoundError,
    ConcurrentOrderUpdateError,
    InvalidTransitionError,
)


def _to_decimal(value: Any, field: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise OrderValidationError(
            f"{field} must be a number", field=field, value=value
        ) from e
    if not result.is_finite():
        raise OrderValidationError(
            f"{field} must be a finite number", field=field, value=str(value)
        )
    return result


class OrderService:
    """
    Order lifecycle manager.

    Attributes:
        repository: Order repository for data access
        users: User directory
        products: Product catalog
        state_machine: Order status state machine
        notification_service: Optional notification fan-out
    """

    def __init__(
        self,
        session: AsyncSession,
        notification_service: Optional[NotificationService] = None,
        state_machine: Optional[OrderStateMachine] = None,
    ):
        self.repository = OrderRepository(session)
        self.users = UserRepository(session)
        self.products = ProductRepository(session)
        self.state_machine = state_machine or OrderStateMachine()
        self.notification_service = notification_service
        self.default_payment_method = get_settings().default_payment_method

    # ------------------------------------------------------------------
    # Creation and queries
    # ------------------------------------------------------------------

    async def create_order(
        self,
        actor: Actor,
        order_type: Any = OrderType.CUSTOMER,
        product_id: Optional[uuid.UUID] = None,
        quantity: Optional[int] = None,
        user_id: Optional[uuid.UUID] = None,
        supplier_id: Optional[uuid.UUID] = None,
        artisan_id: Optional[uuid.UUID] = None,
        total_price: Optional[Any] = None,
        payment_method: Optional[str] = None,
        payment_timing: Optional[Any] = None,
        payment_code: Optional[str] = None,
        delivery_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Create a customer or inventory order.

        Customer orders need product_id, quantity and total_price; user_id
        defaults to the actor. Inventory orders need product_id, quantity and
        supplier_id; artisan_id defaults to the actor and total_price to 0.
        The order starts pending; its payment starts paid only when it is
        prepaid (beforeDelivery) with a payment code. Only staff may name
        another user as the owner.

        Returns:
            Dictionary containing the created order with parties resolved

        Raises:
            OrderValidationError: If required fields are missing or invalid, or
                the product or a named party does not exist
            OrderForbiddenError: If a non-staff actor orders for someone else
            OrderProcessingError: If the order cannot be stored
        """
        with self._operation("create order", actor_id=str(actor.id)):
            order_type = self._parse_order_type(order_type)
            required = {"product_id": product_id, "quantity": quantity}
            if order_type == OrderType.CUSTOMER:
                required["total_price"] = total_price
            else:
                required["supplier_id"] = supplier_id

            missing = [name for name, value in required.items() if value is None]
            if missing:
                raise OrderValidationError(
                    f"Missing required order fields: {', '.join(missing)}",
                    order_type=order_type.value,
                    missing_fields=missing,
                )

            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise OrderValidationError(
                    "Quantity must be a positive integer", quantity=quantity
                )

            price = _to_decimal(
                total_price if total_price is not None else 0, "total_price"
            )
            if price < 0:
                raise OrderValidationError(
                    "Total price cannot be negative", total_price=str(price)
                )

            timing = self._parse_payment_timing(payment_timing)

            if await self.products.get_product_by_id(product_id) is None:
                raise OrderValidationError(
                    "Unknown product", field="product_id", value=str(product_id)
                )

            if order_type == OrderType.INVENTORY:
                await self._require_user_with_role(
                    supplier_id, UserRole.SUPPLIER, "supplier_id"
                )
                parties = {
                    "supplier_id": supplier_id,
                    "artisan_id": await self._resolve_owner(
                        actor, artisan_id, UserRole.ARTISAN, "artisan_id"
                    ),
                }
            else:
                parties = {
                    "user_id": await self._resolve_owner(
                        actor, user_id, UserRole.CUSTOMER, "user_id"
                    )
                }

            payment_status = (
                PaymentStatus.PAID
                if timing == PaymentTiming.BEFORE_DELIVERY and payment_code
                else PaymentStatus.PENDING
            )

            order = await self.repository.create_order(
                order_type=order_type,
                created_by=actor.id,
                product_id=product_id,
                quantity=quantity,
                total_price=price,
                payment_method=payment_method or self.default_payment_method,
                payment_timing=timing,
                payment_code=payment_code or None,
                delivery_address=delivery_address,
                payment_status=payment_status,
                order_status=OrderStatus.PENDING,
                notes=notes,
                **parties,
            )

            logger.info(
                "Order created",
                order_id=str(order.id),
                order_type=order_type.value,
                payment_status=payment_status.value,
            )

            await self._notify(order, actor, "order.created", "New order placed")
            return await self._format_order(order)

    async def get_order(self, order_id: uuid.UUID, actor: Actor) -> dict[str, Any]:
        """
        Get one order with parties resolved.

        Raises:
            OrderNotFoundError: If order not found
            OrderForbiddenError: If the actor is unrelated to the order
        """
        with self._operation("retrieve order", order_id=str(order_id)):
            order = await self.repository.require_order(order_id)
            if not (self._is_party(order, actor) or actor.id == order.created_by):
                raise OrderForbiddenError(
                    "Access denied", order_id=str(order_id), actor_id=str(actor.id)
                )
            return await self._format_order(order)

    async def list_all_orders(
        self,
        actor: Actor,
        allowed_roles: Iterable[UserRole] = STAFF_ROLES,
        order_type: Optional[OrderType] = None,
        order_status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> dict[str, Any]:
        """
        List every order, for oversight roles only.

        Raises:
            OrderForbiddenError: If the actor's role is not allowed
        """
        self._require_role(actor, allowed_roles, "list orders")
        with self._operation("list orders"):
            orders, total = await self.repository.list_orders(
                order_type=order_type,
                order_status=order_status,
                skip=skip,
                limit=limit,
            )
            return await self._page(orders, total, skip, limit)

    async def list_user_orders(
        self,
        user_id: uuid.UUID,
        actor: Actor,
        skip: int = 0,
        limit: int = 50,
    ) -> dict[str, Any]:
        """
        List a customer's orders. Only the customer, admin or finance may look.

        Raises:
            OrderForbiddenError: If the actor may not see this user's orders
        """
        if actor.id != user_id and actor.role not in (
            UserRole.ADMIN,
            UserRole.FINANCE,
        ):
            raise OrderForbiddenError(
                "Access denied", user_id=str(user_id), actor_id=str(actor.id)
            )

        with self._operation("list user orders", user_id=str(user_id)):
            orders, total = await self.repository.list_orders(
                user_id=user_id, skip=skip, limit=limit
            )
            return await self._page(orders, total, skip, limit)

    async def list_driver_orders(
        self, actor: Actor, skip: int = 0, limit: int = 50
    ) -> dict[str, Any]:
        """List orders assigned to the acting driver."""
        self._require_role(actor, (UserRole.DRIVER,), "list driver orders")
        with self._operation("list driver orders"):
            orders, total = await self.repository.list_orders(
                driver_id=actor.id, skip=skip, limit=limit
            )
            return await self._page(orders, total, skip, limit)

    async def list_inventory_orders(
        self,
        actor: Actor,
        order_status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> dict[str, Any]:
        """
        List inventory orders.

        Artisans and suppliers see the orders they are party to; oversight
        roles see all of them.
        """
        if not actor.is_staff and actor.role not in (
            UserRole.ARTISAN,
            UserRole.SUPPLIER,
        ):
            raise OrderForbiddenError(
                "Access denied", actor_role=actor.role.value
            )

        with self._operation("list inventory orders"):
            orders, total = await self.repository.list_orders(
                order_type=OrderType.INVENTORY,
                order_status=order_status,
                party_id=None if actor.is_staff else actor.id,
                skip=skip,
                limit=limit,
            )
            return await self._page(orders, total, skip, limit)

    async def list_users_with_role(self, role: UserRole) -> list[dict[str, Any]]:
        """Directory listing used to pick drivers and suppliers."""
        with self._operation("list users", role=role.value):
            users = await self.users.list_users_by_role(role)
            return [self._format_user(user) for user in users]

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def transition_status(
        self,
        order_id: uuid.UUID,
        new_status: Any,
        actor: Actor,
    ) -> dict[str, Any]:
        """
        Move an order to a new status.

        Customer orders may be moved by the buyer, the assigned driver or an
        oversight role; inventory orders by the artisan, the supplier or an
        oversight role. Only the artisan or an admin may mark an inventory
        order received, and any order can only be received once delivered,
        shipped or completed.

        Raises:
            OrderNotFoundError: If order not found
            OrderForbiddenError: If the actor may not move this order
            InvalidTransitionError: If the status is unknown or not reachable
        """
        with self._operation("update order status", order_id=str(order_id)):
            order = await self.repository.require_order(order_id)
            target = self.state_machine.parse_status(new_status)

            if not self._is_party(order, actor):
                raise OrderForbiddenError(
                    "You are not allowed to update this order",
                    order_id=str(order_id),
                    actor_id=str(actor.id),
                    actor_role=actor.role.value,
                )

            if (
                target == OrderStatus.RECEIVED
                and order.is_inventory
                and not (actor.id == order.artisan_id or actor.role == UserRole.ADMIN)
            ):
                raise OrderForbiddenError(
                    "Only the ordering artisan or an admin can mark an "
                    "inventory order as received",
                    order_id=str(order_id),
                    actor_role=actor.role.value,
                )

            return await self._apply(order, target, actor)

    async def mark_received(self, order_id: uuid.UUID, actor: Actor) -> dict[str, Any]:
        """Shortcut for ``transition_status(order_id, received, actor)``."""
        return await self.transition_status(order_id, OrderStatus.RECEIVED, actor)

    async def mark_delivered(
        self, order_id: uuid.UUID, actor: Actor
    ) -> dict[str, Any]:
        """
        Supplier marks an inventory order delivered.

        Raises:
            InvalidOperationError: If the order is not an inventory order
            OrderForbiddenError: If the actor is neither its supplier nor admin
        """
        with self._operation("mark order delivered", order_id=str(order_id)):
            order = await self.repository.require_order(order_id)
            self._require_inventory(order, "mark delivered")

            if not (actor.id == order.supplier_id or actor.role == UserRole.ADMIN):
                raise OrderForbiddenError(
                    "Only the order's supplier or an admin can mark it delivered",
                    order_id=str(order_id),
                    actor_id=str(actor.id),
                )

            return await self._apply(order, OrderStatus.DELIVERED, actor)

    async def mark_completed(
        self, order_id: uuid.UUID, actor: Actor
    ) -> dict[str, Any]:
        """Supervisor (or admin) closes an order as completed."""
        self._require_role(
            actor, (UserRole.SUPERVISOR, UserRole.ADMIN), "mark order completed"
        )
        with self._operation("mark order completed", order_id=str(order_id)):
            order = await self.repository.require_order(order_id)
            return await self._apply(order, OrderStatus.COMPLETED, actor)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def update_payment_status(
        self,
        order_id: uuid.UUID,
        new_payment_status: Any,
        actor: Actor,
    ) -> dict[str, Any]:
        """
        Set an order's payment status.

        Any authenticated actor may do this; there is no role restriction.

        Raises:
            OrderValidationError: If the payment status is not recognized
            OrderNotFoundError: If order not found
        """
        payment_status = self._parse_payment_status(new_payment_status)

        with self._operation("update payment status", order_id=str(order_id)):
            order = await self.repository.require_order(order_id)
            previous = order.payment_status
            order.payment_status = payment_status
            await self.repository.save(order)

            logger.info(
                "Payment status updated",
                order_id=str(order_id),
                transition=f"{previous.value}->{payment_status.value}",
            )
            await self._notify(
                order,
                actor,
                "order.payment_status_changed",
                f"Payment status updated to '{payment_status.value}'",
            )
            return await self._format_order(order)

    async def finance_approve(
        self, order_id: uuid.UUID, actor: Actor
    ) -> dict[str, Any]:
        """
        Finance approves an inventory order and its payment.

        Raises:
            OrderForbiddenError: If the actor is not finance
            InvalidOperationError: If the order is not an inventory order
        """
        self._require_role(actor, (UserRole.FINANCE,), "approve order")
        with self._operation("approve order", order_id=str(order_id)):
            order = await self.repository.require_order(order_id)
            self._require_inventory(order, "approve")

            self.state_machine.apply_transition(order, OrderStatus.APPROVED, actor.id)
            order.payment_status = PaymentStatus.APPROVED
            return await self._save_and_report(order, actor, "order.approved")

    async def finance_reject(
        self,
        order_id: uuid.UUID,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Finance rejects an inventory order and its payment.

        Raises:
            OrderForbiddenError: If the actor is not finance
            InvalidOperationError: If the order is not an inventory order
        """
        self._require_role(actor, (UserRole.FINANCE,), "reject order")
        with self._operation("reject order", order_id=str(order_id)):
            order = await self.repository.require_order(order_id)
            self._require_inventory(order, "reject")

            self.state_machine.apply_transition(order, OrderStatus.REJECTED, actor.id)
            order.payment_status = PaymentStatus.REJECTED
            order.notes = reason or DEFAULT_REJECTION_REASON
            return await self._save_and_report(order, actor, "order.rejected")

    async def finance_process_payment(
        self,
        order_id: uuid.UUID,
        actor: Actor,
        amount: Optional[Any] = None,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Finance pays out an inventory order, completing it.

        A positive amount replaces the order's total price.

        Raises:
            OrderForbiddenError: If the actor is not finance
            InvalidOperationError: If the order is not an inventory order
            OrderValidationError: If the amount is negative or not a number
        """
        self._require_role(actor, (UserRole.FINANCE,), "process payment")
        paid = _to_decimal(amount if amount is not None else 0, "amount")
        if paid < 0:
            raise OrderValidationError("Amount cannot be negative", amount=str(paid))

        with self._operation("process payment", order_id=str(order_id)):
            order = await self.repository.require_order(order_id)
            self._require_inventory(order, "process payment")

            self.state_machine.apply_transition(
                order, OrderStatus.COMPLETED, actor.id
            )
            order.payment_status = PaymentStatus.PAID
            if paid > 0:
                order.total_price = paid
            if payment_method:
                order.payment_method = payment_method
            if notes:
                order.notes = notes
            return await self._save_and_report(order, actor, "order.paid")

    async def submit_supplier_payment(
        self,
        order_id: uuid.UUID,
        actor: Actor,
        amount: Any,
        notes: Optional[str] = None,
        payment_status: Optional[Any] = None,
    ) -> dict[str, Any]:
        """
        Supplier submits the amount due once the goods have left them.

        Raises:
            OrderForbiddenError: If the actor is neither supplier nor admin
            InvalidTransitionError: If the order is not delivered, received
                or completed yet
            OrderValidationError: If amount is not positive or payment status
                is not recognized
        """
        new_payment_status = (
            self._parse_payment_status(payment_status)
            if payment_status is not None
            else PaymentStatus.PENDING
        )

        with self._operation("submit supplier payment", order_id=str(order_id)):
            order = await self.repository.require_order(order_id)

            if not (actor.id == order.supplier_id or actor.role == UserRole.ADMIN):
                raise OrderForbiddenError(
                    "Only the order's supplier or an admin can submit payment",
                    order_id=str(order_id),
                    actor_id=str(actor.id),
                )

            if order.order_status not in SUPPLIER_PAYABLE_STATUSES:
                raise InvalidTransitionError(
                    "Payment can only be submitted for delivered, received or "
                    "completed orders",
                    current_state=order.order_status,
                    order_id=str(order_id),
                )

            due = _to_decimal(amount, "amount") if amount is not None else Decimal(0)
            if due <= 0:
                raise OrderValidationError(
                    "Amount must be greater than zero", amount=str(due)
                )

            order.total_price = due
            order.payment_status = new_payment_status
            if notes is not None:
                order.notes = notes
            return await self._save_and_report(
                order, actor, "order.supplier_payment_submitted"
            )

    async def finance_report(self, actor: Actor) -> dict[str, Any]:
        """
        Totals across all orders for the finance dashboard.

        Raises:
            OrderForbiddenError: If the actor is neither finance nor admin
        """
        self._require_role(
            actor, (UserRole.FINANCE, UserRole.ADMIN), "view finance report"
        )
        with self._operation("build finance report"):
            totals = await self.repository.get_finance_totals()
            by_status = totals["by_payment_status"]
            return {
                "total_orders": totals["total_orders"],
                "total_value": totals["total_value"],
                "total_approved": by_status[PaymentStatus.APPROVED.value],
                "total_rejected": by_status[PaymentStatus.REJECTED.value],
                "total_paid": by_status[PaymentStatus.PAID.value],
                "by_payment_status": by_status,
                "by_order_type": totals["by_order_type"],
            }

    # ------------------------------------------------------------------
    # Drivers
    # ------------------------------------------------------------------

    async def assign_driver(
        self,
        order_id: uuid.UUID,
        driver_id: Optional[uuid.UUID],
        actor: Actor,
    ) -> dict[str, Any]:
        """
        Assign a delivery driver. The order's status does not change.

        Raises:
            OrderValidationError: If driver_id is not an active driver
            OrderNotFoundError: If order not found
        """
        with self._operation("assign driver", order_id=str(order_id)):
            await self._require_user_with_role(driver_id, UserRole.DRIVER, "driver_id")
            order = await self.repository.require_order(order_id)

            order.driver_id = driver_id
            await self.repository.save(order)

            logger.info(
                "Driver assigned",
                order_id=str(order_id),
                driver_id=str(driver_id),
            )
            await self._notify(order, actor, "order.driver_assigned", "Driver assigned")
            return await self._format_order(order)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, operation: str, **context: Any) -> Iterator[None]:
        """Let domain errors through; wrap anything else with the operation name."""
        try:
            yield
        except _PASSTHROUGH_ERRORS:
            raise
        except Exception as e:
            logger.error(
                "Order operation failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
                **context,
            )
            raise OrderProcessingError(
                f"Failed to {operation}",
                operation=operation,
                error=str(e),
                **context,
            ) from e

    async def _apply(
        self, order: Order, target: OrderStatus, actor: Actor
    ) -> dict[str, Any]:
        self.state_machine.apply_transition(order, target, actor.id)
        return await self._save_and_report(order, actor, "order.status_changed")

    async def _save_and_report(
        self, order: Order, actor: Actor, event: str
    ) -> dict[str, Any]:
        await self.repository.save(order)
        await self._notify(
            order,
            actor,
            event,
            f"Order is now {order.order_status.display_name.lower()}",
        )
        return await self._format_order(order)

    @staticmethod
    def _is_party(order: Order, actor: Actor) -> bool:
        """Whether the actor may act on the order's status."""
        if actor.is_staff:
            return True
        if order.order_type == OrderType.CUSTOMER:
            return actor.id in (order.user_id, order.driver_id)
        return actor.id in (order.artisan_id, order.supplier_id)

    @staticmethod
    def _require_role(
        actor: Actor, roles: Iterable[UserRole], operation: str
    ) -> None:
        allowed = tuple(roles)
        if actor.role not in allowed:
            logger.warning(
                "Access denied: insufficient role",
                operation=operation,
                actor_role=actor.role.value,
                required_roles=[role.value for role in allowed],
            )
            raise OrderForbiddenError(
                f"Access denied: cannot {operation}",
                actor_role=actor.role.value,
                required_roles=[role.value for role in allowed],
            )

    @staticmethod
    def _require_inventory(order: Order, operation: str) -> None:
        if order.order_type != OrderType.INVENTORY:
            raise InvalidOperationError(
                f"Cannot {operation}: only inventory orders support this",
                order_id=str(order.id),
                order_type=order.order_type.value,
            )

    async def _require_user_with_role(
        self, user_id: Optional[uuid.UUID], role: UserRole, field: str
    ) -> User:
        user = await self.users.get_user_by_id(user_id) if user_id else None
        if user is None or user.role != role or not user.is_active:
            raise OrderValidationError(
                f"Invalid {role.value} ID",
                field=field,
                value=str(user_id) if user_id else None,
            )
        return user

    async def _resolve_owner(
        self,
        actor: Actor,
        requested: Optional[uuid.UUID],
        role: UserRole,
        field: str,
    ) -> uuid.UUID:
        """Owner of a new order: the actor, or a user named by staff."""
        if requested is None or requested == actor.id:
            return actor.id
        if not actor.is_staff:
            raise OrderForbiddenError(
                "Only staff can place orders on behalf of another user",
                field=field,
                actor_id=str(actor.id),
            )
        await self._require_user_with_role(requested, role, field)
        return requested

    @staticmethod
    def _parse_order_type(value: Any) -> OrderType:
        try:
            return value if isinstance(value, OrderType) else OrderType(value)
        except ValueError as e:
            raise OrderValidationError(
                f"Invalid order type: {value}",
                accepted=[t.value for t in OrderType],
            ) from e

    @staticmethod
    def _parse_payment_timing(value: Any) -> PaymentTiming:
        if value is None:
            return PaymentTiming.AFTER_DELIVERY
        try:
            return value if isinstance(value, PaymentTiming) else PaymentTiming(value)
        except ValueError as e:
            raise OrderValidationError(
                f"Invalid payment timing: {value}",
                accepted=[t.value for t in PaymentTiming],
            ) from e

    @staticmethod
    def _parse_payment_status(value: Any) -> PaymentStatus:
        if isinstance(value, PaymentStatus):
            return value
        try:
            return PaymentStatus.from_string(value)
        except ValueError as e:
            raise OrderValidationError(
                str(e), accepted=accepted_payment_statuses()
            ) from e

    async def _notify(
        self, order: Order, actor: Actor, event: str, message: str
    ) -> None:
        if self.notification_service is None:
            return
        try:
            await self.notification_service.notify_parties(
                order.party_ids(),
                event,
                order.id,
                message,
                skip=actor.id,
                order_status=order.order_status.value,
                payment_status=order.payment_status.value,
            )
        except Exception as e:
            # A lost notification must not undo the order change.
            logger.error(
                "Failed to queue order notification",
                order_id=str(order.id),
                notification_event=event,
                error=str(e),
            )

    async def _page(
        self, orders: Sequence[Order], total: int, skip: int, limit: int
    ) -> dict[str, Any]:
        return {
            "orders": await self._format_orders(orders),
            "total_count": total,
            "skip": skip,
            "limit": limit,
        }

    async def _format_order(self, order: Order) -> dict[str, Any]:
        return (await self._format_orders([order]))[0]

    async def _format_orders(self, orders: Sequence[Order]) -> list[dict[str, Any]]:
        """Render orders with users and products resolved in two queries."""
        user_ids: set[uuid.UUID] = set()
        for order in orders:
            user_ids |= order.party_ids()
        users = await self.users.get_users_by_ids(user_ids)
        products = await self.products.get_products_by_ids(
            order.product_id for order in orders
        )

        def party(user_id: Optional[uuid.UUID]) -> Optional[dict[str, Any]]:
            user = users.get(user_id) if user_id else None
            return self._format_user(user) if user else None

        formatted = []
        for order in orders:
            product = products.get(order.product_id)
            formatted.append(
                {
                    "id": order.id,
                    "order_type": order.order_type,
                    "created_by": order.created_by,
                    "user_id": order.user_id,
                    "supplier_id": order.supplier_id,
                    "artisan_id": order.artisan_id,
                    "driver_id": order.driver_id,
                    "product_id": order.product_id,
                    "user": party(order.user_id),
                    "supplier": party(order.supplier_id),
                    "artisan": party(order.artisan_id),
                    "driver": party(order.driver_id),
                    "product": (
                        {
                            "id": product.id,
                            "name": product.name,
                            "price": product.price,
                            "image": product.image,
                            "artisan_name": product.artisan_name,
                            "category": product.category,
                        }
                        if product
                        else None
                    ),
                    "quantity": order.quantity,
                    "total_price": order.total_price,
                    "payment_method": order.payment_method,
                    "payment_timing": order.payment_timing,
                    "payment_code": order.payment_code,
                    "delivery_address": order.delivery_address,
                    "payment_status": order.payment_status,
                    "order_status": order.order_status,
                    "notes": order.notes,
                    "approved_at": order.approved_at,
                    "rejected_at": order.rejected_at,
                    "shipped_at": order.shipped_at,
                    "delivered_at": order.delivered_at,
                    "received_at": order.received_at,
                    "completed_at": order.completed_at,
                    "created_at": order.created_at,
                    "updated_at": order.updated_at,
                }
            )
        return formatted

    @staticmethod
    def _format_user(user: User) -> dict[str, Any]:
        return {
            "id": user.id,
            "full_name": user.full_name,
            "email": user.email,
            "role": user.role,
        }

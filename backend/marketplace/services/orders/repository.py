"""
Order data access repository.

This module implements the OrderRepository class providing async methods for
creating, loading, listing and saving orders plus the aggregates behind the
finance report. Every write is flushed as a single statement; the ``version``
column turns concurrent read-modify-writes of one order into a detectable
conflict instead of a silent lost update.
"""

import uuid
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import and_, func, select, true
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from marketplace.core.logging import get_logger
from marketplace.database.models.order import Order
from marketplace.services.orders.enums import (
    OrderStatus,
    OrderType,
    PaymentStatus,
)

logger = get_logger(__name__)


class OrderRepositoryError(Exception):
    """Base exception for order repository errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class OrderNotFoundError(OrderRepositoryError):
    """Raised when order is not found."""

    pass


class OrderCreationError(OrderRepositoryError):
    """Raised when order creation fails."""

    pass


class OrderUpdateError(OrderRepositoryError):
    """Raised when order update fails."""

    pass


class ConcurrentOrderUpdateError(OrderUpdateError):
    """Raised when another request changed the order since it was loaded."""

    pass


class OrderRepository:
    """
    Repository for order data access operations.

    The repository never commits; the request-scoped session owns the
    transaction boundary.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_order(self, **fields: Any) -> Order:
        """
        Insert a new order.

        Args:
            **fields: Order column values

        Returns:
            The persisted order

        Raises:
            OrderCreationError: If the insert fails
        """
        order = Order(**fields)

        try:
            self.session.add(order)
            await self.session.flush()
            await self.session.refresh(order)
        except IntegrityError as e:
            await self.session.rollback()
            logger.error(
                "Order creation failed - integrity error",
                order_type=str(fields.get("order_type")),
                error=str(e),
            )
            raise OrderCreationError(
                "Order creation failed due to data integrity violation",
                error=str(e),
            ) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Order creation failed - database error",
                order_type=str(fields.get("order_type")),
                error=str(e),
            )
            raise OrderCreationError(
                "Order creation failed due to database error",
                error=str(e),
            ) from e

        logger.info(
            "Order inserted",
            order_id=str(order.id),
            order_type=order.order_type.value,
        )
        return order

    async def get_order_by_id(self, order_id: uuid.UUID) -> Optional[Order]:
        """
        Get order by ID.

        Returns:
            Order if found, None otherwise
        """
        try:
            return await self.session.get(Order, order_id)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to retrieve order",
                order_id=str(order_id),
                error=str(e),
            )
            raise OrderRepositoryError(
                "Failed to retrieve order",
                order_id=str(order_id),
                error=str(e),
            ) from e

    async def require_order(self, order_id: uuid.UUID) -> Order:
        """
        Get order by ID or fail.

        Raises:
            OrderNotFoundError: If no order has this id
        """
        order = await self.get_order_by_id(order_id)
        if order is None:
            raise OrderNotFoundError("Order not found", order_id=str(order_id))
        return order

    async def list_orders(
        self,
        user_id: Optional[uuid.UUID] = None,
        driver_id: Optional[uuid.UUID] = None,
        order_type: Optional[OrderType] = None,
        order_status: Optional[OrderStatus] = None,
        party_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[Order], int]:
        """
        List orders newest first with optional filters.

        Args:
            user_id: Only orders bought by this customer
            driver_id: Only orders assigned to this driver
            order_type: Only orders of this type
            order_status: Only orders in this status
            party_id: Only orders where this user is the artisan or supplier
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (orders, total_count)
        """
        conditions = []
        if user_id is not None:
            conditions.append(Order.user_id == user_id)
        if driver_id is not None:
            conditions.append(Order.driver_id == driver_id)
        if order_type is not None:
            conditions.append(Order.order_type == order_type)
        if order_status is not None:
            conditions.append(Order.order_status == order_status)
        if party_id is not None:
            conditions.append(
                (Order.artisan_id == party_id) | (Order.supplier_id == party_id)
            )

        where = and_(true(), *conditions)

        try:
            result = await self.session.execute(
                select(Order)
                .where(where)
                .order_by(Order.created_at.desc(), Order.id)
                .offset(skip)
                .limit(limit)
            )
            orders = result.scalars().all()

            count_result = await self.session.execute(
                select(func.count()).select_from(Order).where(where)
            )
            total_count = count_result.scalar_one()
        except SQLAlchemyError as e:
            logger.error("Failed to list orders", error=str(e))
            raise OrderRepositoryError("Failed to list orders", error=str(e)) from e

        logger.debug(
            "Orders listed",
            count=len(orders),
            total=total_count,
            filters=len(conditions),
        )
        return orders, total_count

    async def save(self, order: Order) -> Order:
        """
        Flush pending changes of one order as a single versioned UPDATE.

        Raises:
            ConcurrentOrderUpdateError: If the row changed since it was loaded
            OrderUpdateError: If the update fails
        """
        # Rollback expires the instance, so read the id while it is loaded.
        order_id = str(order.id)
        try:
            await self.session.flush()
            await self.session.refresh(order)
        except StaleDataError as e:
            await self.session.rollback()
            logger.warning(
                "Concurrent order update detected",
                order_id=order_id,
            )
            raise ConcurrentOrderUpdateError(
                "Order was modified by another request",
                order_id=order_id,
            ) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Order update failed",
                order_id=order_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise OrderUpdateError(
                "Order update failed",
                order_id=order_id,
                error=str(e),
            ) from e

        return order

    async def get_finance_totals(self) -> dict[str, Any]:
        """
        Aggregate order totals for the finance report.

        Returns:
            Dictionary with total value, counts per payment status and counts
            per order type
        """
        try:
            payment_rows = await self.session.execute(
                select(
                    Order.payment_status,
                    func.count(),
                    func.sum(Order.total_price),
                ).group_by(Order.payment_status)
            )
            type_rows = await self.session.execute(
                select(Order.order_type, func.count()).group_by(Order.order_type)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to aggregate finance totals", error=str(e))
            raise OrderRepositoryError(
                "Failed to aggregate finance totals", error=str(e)
            ) from e

        by_payment_status = {status.value: 0 for status in PaymentStatus}
        total_value = Decimal("0.00")
        for payment_status, count, value in payment_rows.all():
            by_payment_status[payment_status.value] = count
            total_value += Decimal(str(value or 0))

        by_order_type = {order_type.value: 0 for order_type in OrderType}
        for order_type, count in type_rows.all():
            by_order_type[order_type.value] = count

        return {
            "total_value": total_value,
            "total_orders": sum(by_order_type.values()),
            "by_payment_status": by_payment_status,
            "by_order_type": by_order_type,
        }

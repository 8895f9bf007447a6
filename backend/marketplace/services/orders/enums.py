"""Order type, status and payment enums for order lifecycle management.

This module defines the enums shared by the order model, the state machine and
the API schemas, together with the lookup tables that drive lifecycle
timestamps and the ``received`` precondition.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional


class OrderType(str, Enum):
    """Kind of order.

    CUSTOMER orders are end-buyer purchases. INVENTORY orders are placed by an
    artisan to restock from a supplier.
    """

    CUSTOMER = "customer"
    INVENTORY = "inventory"


class OrderStatus(str, Enum):
    """Order lifecycle status.

    Lifecycle:
    - PENDING -> PROCESSING, APPROVED, REJECTED, CANCELLED
    - -> SHIPPED / DELIVERED -> RECEIVED -> COMPLETED
    - REJECTED, CANCELLED -> (terminal)

    Only the terminal states and the RECEIVED precondition are enforced;
    other moves are explicit transition calls.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    RECEIVED = "received"
    COMPLETED = "completed"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "OrderStatus":
        """Convert string to OrderStatus enum.

        Raises:
            ValueError: If value is empty or not a valid status
        """
        if not value:
            raise ValueError("Order status is required")
        if not isinstance(value, str):
            raise ValueError(f"Invalid order status: {value!r}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid_values = ", ".join(s.value for s in cls)
            raise ValueError(
                f"Invalid order status: {value}. Valid values are: {valid_values}"
            )

    def is_terminal(self) -> bool:
        """Check if status is a terminal state (REJECTED, CANCELLED)."""
        return self in TERMINAL_ORDER_STATUSES

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class PaymentStatus(str, Enum):
    """Payment status of an order."""

    PENDING = "pending"
    PAID = "paid"
    APPROVED = "approved"
    REJECTED = "rejected"
    RECEIVED = "received"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "PaymentStatus":
        """Convert string to PaymentStatus enum.

        Raises:
            ValueError: If value is not a valid payment status
        """
        if value is not None and not isinstance(value, str):
            raise ValueError(
                f"Invalid payment status: {value!r}. "
                f"Use one of: {', '.join(accepted_payment_statuses())}"
            )
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid payment status: {value}. "
                f"Use one of: {', '.join(accepted_payment_statuses())}"
            )


class PaymentTiming(str, Enum):
    """When the buyer pays relative to delivery."""

    BEFORE_DELIVERY = "beforeDelivery"
    AFTER_DELIVERY = "afterDelivery"


TERMINAL_ORDER_STATUSES: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.REJECTED, OrderStatus.CANCELLED}
)

# An order can only be marked received once it has left the supplier.
RECEIVABLE_FROM: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.SHIPPED, OrderStatus.COMPLETED}
)

# Statuses after which a supplier may submit a payment request.
SUPPLIER_PAYABLE_STATUSES: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.RECEIVED, OrderStatus.COMPLETED}
)

LIFECYCLE_TIMESTAMPS: Dict[OrderStatus, str] = {
    OrderStatus.APPROVED: "approved_at",
    OrderStatus.REJECTED: "rejected_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.RECEIVED: "received_at",
    OrderStatus.COMPLETED: "completed_at",
}


def accepted_payment_statuses() -> list[str]:
    """Values accepted for a payment status update."""
    return [s.value for s in PaymentStatus]


def get_timestamp_field(status: OrderStatus) -> Optional[str]:
    """Name of the lifecycle timestamp recorded when ``status`` is reached."""
    return LIFECYCLE_TIMESTAMPS.get(status)

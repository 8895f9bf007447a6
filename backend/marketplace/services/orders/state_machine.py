"""Order state machine implementation with transition validation.

This module implements the OrderStateMachine class that validates and applies
``order_status`` changes: terminal states are final, per-target guards check
preconditions, and side effects record lifecycle timestamps. The machine
mutates the order in memory only; persisting is the repository's job.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from marketplace.core.logging import get_logger
from marketplace.database.base import utcnow
from marketplace.services.orders.enums import (
    RECEIVABLE_FROM,
    OrderStatus,
    PaymentStatus,
    PaymentTiming,
    get_timestamp_field,
)

logger = get_logger(__name__)


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        message: str,
        current_state: Optional[OrderStatus] = None,
        target_state: Optional[OrderStatus] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.current_state = current_state
        self.target_state = target_state
        self.context = context


class OrderStateMachine:
    """State machine for order lifecycle transitions.

    Guards and side effects are keyed by target status.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        """Initialize state machine.

        Args:
            clock: Source of the current time for lifecycle timestamps
        """
        self.clock = clock
        self._transition_guards: Dict[OrderStatus, Callable[[Any], bool]] = {
            OrderStatus.RECEIVED: self._guard_received,
        }
        self._side_effects: Dict[OrderStatus, Callable[[Any], None]] = {
            OrderStatus.RECEIVED: self._effect_received,
        }

    @staticmethod
    def parse_status(value: Any) -> OrderStatus:
        """Coerce a requested status into an OrderStatus.

        Raises:
            InvalidTransitionError: If the status is absent or unrecognized
        """
        if isinstance(value, OrderStatus):
            return value
        try:
            return OrderStatus.from_string(value)
        except ValueError as e:
            raise InvalidTransitionError(
                str(e),
                requested_status=value,
                allowed_statuses=[s.value for s in OrderStatus],
            ) from e

    def validate_transition(self, order: Any, target_status: OrderStatus) -> bool:
        """Validate if transition to target status is allowed.

        Returns:
            True if transition is valid

        Raises:
            InvalidTransitionError: If transition is invalid
        """
        current_status = order.order_status

        if current_status.is_terminal():
            raise InvalidTransitionError(
                f"Order is {current_status.value} and cannot change status",
                current_state=current_status,
                target_state=target_status,
            )

        guard = self._transition_guards.get(target_status)
        if guard is not None and not guard(order):
            raise InvalidTransitionError(
                f"Cannot move order from {current_status.value} to "
                f"{target_status.value}",
                current_state=current_status,
                target_state=target_status,
                guard_failed=True,
            )

        return True

    def apply_transition(
        self,
        order: Any,
        target_status: OrderStatus,
        actor_id: Optional[UUID] = None,
    ) -> OrderStatus:
        """Apply state transition to order with side effects.

        Args:
            order: Order instance to transition
            target_status: Target status to transition to
            actor_id: User initiating the transition

        Returns:
            The status the order had before the transition

        Raises:
            InvalidTransitionError: If transition is not allowed
        """
        self.validate_transition(order, target_status)

        old_status = order.order_status
        order.order_status = target_status
        self.record_timestamp(order, target_status)

        side_effect = self._side_effects.get(target_status)
        if side_effect is not None:
            side_effect(order)

        logger.info(
            "State transition applied",
            order_id=str(order.id),
            transition=f"{old_status.value}->{target_status.value}",
            actor_id=str(actor_id) if actor_id else None,
        )
        return old_status

    def record_timestamp(self, order: Any, status: OrderStatus) -> None:
        """Stamp the lifecycle timestamp for ``status`` unless already set."""
        field = get_timestamp_field(status)
        if field is not None and getattr(order, field) is None:
            setattr(order, field, self.clock())

    # Transition Guards

    def _guard_received(self, order: Any) -> bool:
        return order.order_status in RECEIVABLE_FROM

    # Side Effects

    def _effect_received(self, order: Any) -> None:
        """Goods in hand settle a pay-on-delivery order."""
        if (
            order.payment_timing == PaymentTiming.AFTER_DELIVERY
            and order.payment_status == PaymentStatus.PENDING
        ):
            order.payment_status = PaymentStatus.PAID
            logger.info(
                "Payment settled on receipt",
                order_id=str(order.id),
            )

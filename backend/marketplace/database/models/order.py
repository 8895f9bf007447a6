"""
Order model for customer purchases and artisan inventory replenishment.

One table holds both order types. Party columns depend on the type: customer
orders reference the buying user, inventory orders reference the supplier and
the artisan. Lifecycle timestamps record the first time each milestone status
was reached.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.base import BaseModel, create_table_args
from marketplace.services.orders.enums import (
    OrderStatus,
    OrderType,
    PaymentStatus,
    PaymentTiming,
)


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


def _user_fk(nullable: bool, comment: str) -> Mapped:
    return mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL" if nullable else "RESTRICT"),
        nullable=nullable,
        comment=comment,
    )


class Order(BaseModel):
    """
    Order with role-gated status and payment lifecycle.

    Attributes:
        order_type: customer or inventory, immutable after creation
        created_by: User who placed the order
        user_id: Buying user (customer orders)
        supplier_id: Supplier fulfilling the order (inventory orders)
        artisan_id: Artisan restocking (inventory orders)
        driver_id: Assigned delivery driver
        product_id: Ordered product
        quantity: Number of units, at least 1
        total_price: Order total, never negative
        payment_method: Free-form payment method label
        payment_timing: Whether payment happens before or after delivery
        payment_code: Payment reference supplied for prepaid orders
        payment_status: Current payment status
        order_status: Current order status
        version: Optimistic concurrency counter
    """

    __tablename__ = "orders"

    order_type: Mapped[OrderType] = mapped_column(
        SQLEnum(
            OrderType,
            name="order_type",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=OrderType.CUSTOMER,
        comment="customer or inventory",
    )

    # Parties
    created_by: Mapped[uuid.UUID] = _user_fk(False, "User who placed the order")
    user_id: Mapped[Optional[uuid.UUID]] = _user_fk(True, "Buying customer")
    supplier_id: Mapped[Optional[uuid.UUID]] = _user_fk(True, "Supplier")
    artisan_id: Mapped[Optional[uuid.UUID]] = _user_fk(True, "Restocking artisan")
    driver_id: Mapped[Optional[uuid.UUID]] = _user_fk(True, "Assigned driver")

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Ordered product",
    )

    # Commercial fields
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    total_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0.00"),
    )

    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)

    payment_timing: Mapped[PaymentTiming] = mapped_column(
        SQLEnum(
            PaymentTiming,
            name="payment_timing",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=PaymentTiming.AFTER_DELIVERY,
    )

    payment_code: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    delivery_address: Mapped[Optional[str]] = mapped_column(
        String(500), nullable=True
    )

    # Status fields
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(
            PaymentStatus,
            name="payment_status",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    order_status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(
            OrderStatus,
            name="order_status",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Lifecycle timestamps, each set once
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    rejected_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    shipped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    received_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = create_table_args(
        Index("ix_orders_type_status", "order_type", "order_status"),
        Index("ix_orders_artisan_type", "artisan_id", "order_type"),
        Index("ix_orders_supplier_type", "supplier_id", "order_type"),
        Index("ix_orders_user", "user_id"),
        Index("ix_orders_driver", "driver_id"),
        Index("ix_orders_created_by", "created_by"),
        CheckConstraint("quantity >= 1", name="ck_orders_quantity_positive"),
        CheckConstraint("total_price >= 0", name="ck_orders_total_price_non_negative"),
        CheckConstraint(
            "(order_type = 'customer' AND user_id IS NOT NULL) OR "
            "(order_type = 'inventory' AND supplier_id IS NOT NULL "
            "AND artisan_id IS NOT NULL)",
            name="ck_orders_parties_match_type",
        ),
        comment="Customer and inventory orders",
    )

    @property
    def is_inventory(self) -> bool:
        return self.order_type == OrderType.INVENTORY

    def party_ids(self) -> set[uuid.UUID]:
        """Ids of every user referenced by this order."""
        return {
            party
            for party in (
                self.created_by,
                self.user_id,
                self.supplier_id,
                self.artisan_id,
                self.driver_id,
            )
            if party is not None
        }

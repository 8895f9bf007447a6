"""
Product model.

Products are referenced by orders and are read-only from the order workflow's
point of view.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.base import BaseModel, create_table_args


class Product(BaseModel):
    """Catalog product offered by an artisan."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    artisan_name: Mapped[str] = mapped_column(String(255), nullable=False)

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="KES")

    __table_args__ = create_table_args(
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        comment="Product catalog",
    )

"""
Declarative base and shared columns for the marketplace tables.

This module provides the SQLAlchemy DeclarativeBase together with the UUID
primary key and timestamp mixins shared by every model. Column types are the
dialect-neutral ones so the same models run on PostgreSQL and SQLite.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Uuid
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Base(AsyncAttrs, DeclarativeBase):
    """Root of the model hierarchy; `AsyncAttrs` allows awaiting lazy attributes."""

    __abstract__ = True

    def __repr__(self) -> str:
        pk_values = []
        for column in self.__table__.primary_key.columns:
            value = getattr(self, column.name, None)
            if value is not None:
                pk_values.append(f"{column.name}={value!r}")

        return f"<{type(self).__name__}({', '.join(pk_values) or 'transient'})>"


class TimestampMixin:
    """
    created_at / updated_at columns.

    Adds created_at and updated_at columns populated on the Python side, so
    the values are available on the instance right after a flush.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            comment="Row creation time (UTC)",
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            onupdate=utcnow,
            comment="Last modification time (UTC)",
        )


class UUIDMixin:
    """
    UUID primary key.

    Uses the generic ``Uuid`` type: native UUID on PostgreSQL, CHAR(32)
    elsewhere.
    """

    @declared_attr
    def id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            Uuid(as_uuid=True),
            primary_key=True,
            default=uuid.uuid4,
            nullable=False,
            comment="Primary key",
        )


class BaseModel(Base, UUIDMixin, TimestampMixin):
    """
    Concrete models inherit from this: UUID key plus timestamps.

    Example:
        class Product(BaseModel):
            __tablename__ = "products"

            name: Mapped[str] = mapped_column(String(255))
    """

    __abstract__ = True


def create_table_args(
    *constraints: Any,
    comment: Optional[str] = None,
) -> tuple:
    """
    Build a ``__table_args__`` tuple from constraints and a table comment.

    Example:
        __table_args__ = create_table_args(
            Index("ix_orders_type_status", "order_type", "order_status"),
            comment="Customer and inventory orders",
        )
    """
    options: Dict[str, Any] = {}
    if comment:
        options["comment"] = comment
    return (*constraints, options)

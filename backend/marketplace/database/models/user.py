"""
User model with role and account status.

Users are managed by the account service; the order workflow reads them to
resolve actors, drivers and suppliers.
"""

import enum
from typing import Optional

from sqlalchemy import Enum as SQLEnum
from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.database.base import BaseModel, create_table_args


class UserRole(str, enum.Enum):
    """User role enumeration for role-based access control."""

    CUSTOMER = "customer"
    ARTISAN = "artisan"
    ADMIN = "admin"
    FINANCE = "finance"
    SUPERVISOR = "supervisor"
    DRIVER = "driver"
    SUPPLIER = "supplier"

    @property
    def is_staff(self) -> bool:
        """Roles that oversee every order regardless of ownership."""
        return self in STAFF_ROLES


STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPERVISOR, UserRole.FINANCE})


class UserStatus(str, enum.Enum):
    """Account status. Only ACTIVE users may act on orders."""

    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"
    REJECTED = "rejected"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class User(BaseModel):
    """
    Marketplace user.

    Attributes:
        id: Unique user identifier (UUID)
        full_name: Display name
        email: Login email (unique)
        phone: Optional phone number
        role: Role used for authorization
        status: Account status
    """

    __tablename__ = "users"

    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="User display name",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="User email address",
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        comment="Contact phone number",
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(
            UserRole,
            name="user_role",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=UserRole.CUSTOMER,
        comment="User role for access control",
    )

    status: Mapped[UserStatus] = mapped_column(
        SQLEnum(
            UserStatus,
            name="user_status",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=UserStatus.ACTIVE,
        comment="Account status",
    )

    __table_args__ = create_table_args(
        Index("ix_users_role", "role"),
        comment="Marketplace users of every role",
    )

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

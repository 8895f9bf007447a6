"""
Authentication schemas.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from marketplace.database.models.user import UserRole


class Actor(BaseModel):
    """The authenticated user performing an operation."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    role: UserRole

    @property
    def is_staff(self) -> bool:
        return self.role.is_staff

"""
User directory lookups used by the order workflow.
"""

import uuid
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.logging import get_logger
from marketplace.database.models.user import User, UserRole, UserStatus

logger = get_logger(__name__)


class UserRepositoryError(Exception):
    """Raised when a user lookup fails at the storage layer."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.context = context


class UserRepository:
    """Read access to marketplace users."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        try:
            return await self.session.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load user", user_id=str(user_id), error=str(e))
            raise UserRepositoryError(
                "Failed to load user", user_id=str(user_id), error=str(e)
            ) from e

    async def get_users_by_ids(
        self, user_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, User]:
        """Load several users at once, keyed by id. Unknown ids are skipped."""
        ids = {user_id for user_id in user_ids if user_id is not None}
        if not ids:
            return {}

        try:
            result = await self.session.execute(select(User).where(User.id.in_(ids)))
        except SQLAlchemyError as e:
            logger.error("Failed to load users", count=len(ids), error=str(e))
            raise UserRepositoryError(
                "Failed to load users", count=len(ids), error=str(e)
            ) from e

        return {user.id: user for user in result.scalars().all()}

    async def list_users_by_role(
        self,
        role: UserRole,
        active_only: bool = True,
    ) -> Sequence[User]:
        """
        List users holding a role, ordered by name.

        Args:
            role: Role to filter on
            active_only: Skip suspended, pending and rejected accounts
        """
        query = select(User).where(User.role == role).order_by(User.full_name)
        if active_only:
            query = query.where(User.status == UserStatus.ACTIVE)

        try:
            result = await self.session.execute(query)
        except SQLAlchemyError as e:
            logger.error("Failed to list users", role=role.value, error=str(e))
            raise UserRepositoryError(
                "Failed to list users", role=role.value, error=str(e)
            ) from e

        users = result.scalars().all()
        logger.debug("Users listed by role", role=role.value, count=len(users))
        return users

"""
FastAPI dependencies for authentication and service wiring.

This module resolves the bearer token into an Actor, exposes the request
database session, and builds the OrderService with the application's
notification store.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import get_settings
from marketplace.core.logging import get_logger, set_actor
from marketplace.core.security import TokenError, get_token_user_id
from marketplace.database.connection import get_db
from marketplace.database.models.user import User
from marketplace.schemas.auth import Actor
from marketplace.services.notifications.service import (
    InMemoryNotificationStore,
    NotificationService,
)
from marketplace.services.orders.service import OrderService

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Actor:
    """
    Validate the bearer token and load the acting user.

    Raises:
        HTTPException: 401 if the token is missing, invalid or names an
            unknown user; 403 if the user is not active
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        logger.warning("Authentication failed: No credentials provided")
        raise credentials_exception

    try:
        user_id = get_token_user_id(credentials.credentials)
    except TokenError as e:
        logger.warning(
            "Authentication failed: token rejected",
            error=str(e),
            code=e.code,
        )
        raise credentials_exception from e

    user = await db.get(User, user_id)

    if user is None:
        logger.warning(
            "Authentication failed: User not found",
            user_id=str(user_id),
        )
        raise credentials_exception

    if not user.is_active:
        logger.warning(
            "Authentication failed: User account is not active",
            user_id=str(user.id),
            user_status=user.status.value,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account",
        )

    set_actor(str(user.id), user.role.value)
    return Actor(id=user.id, role=user.role)


def get_notification_service(request: Request) -> NotificationService:
    """Notification service backed by the application's store."""
    store = getattr(request.app.state, "notification_store", None)
    if store is None:
        store = InMemoryNotificationStore(
            max_items=get_settings().notification_buffer_size
        )
        request.app.state.notification_store = store
    return NotificationService(store)


async def get_order_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
) -> OrderService:
    return OrderService(db, notification_service=notifications)


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]

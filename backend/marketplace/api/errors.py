"""
Translation of order workflow errors into HTTP responses.
"""

from fastapi import HTTPException, status

from marketplace.core.logging import get_logger
from marketplace.services.orders.repository import (
    ConcurrentOrderUpdateError,
    OrderNotFoundError,
)
from marketplace.services.orders.service import (
    InvalidOperationError,
    OrderForbiddenError,
    OrderProcessingError,
    OrderServiceError,
    OrderValidationError,
)
from marketplace.services.orders.state_machine import InvalidTransitionError

logger = get_logger(__name__)

ORDER_ERRORS = (
    OrderServiceError,
    OrderNotFoundError,
    ConcurrentOrderUpdateError,
    InvalidTransitionError,
)

_STATUS_CODES = (
    (OrderValidationError, status.HTTP_400_BAD_REQUEST),
    (OrderForbiddenError, status.HTTP_403_FORBIDDEN),
    (OrderNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (InvalidOperationError, status.HTTP_409_CONFLICT),
    (ConcurrentOrderUpdateError, status.HTTP_409_CONFLICT),
)


def to_http_exception(error: Exception, operation: str) -> HTTPException:
    """
    Map a workflow error to an HTTPException.

    Processing failures and anything unrecognized become a generic 500 so
    storage details do not leak to the client.
    """
    context = getattr(error, "context", {})

    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            logger.warning(
                "Order request rejected",
                operation=operation,
                status_code=status_code,
                error=str(error),
                error_type=type(error).__name__,
                context=context,
            )
            return HTTPException(status_code=status_code, detail=str(error))

    if isinstance(error, OrderProcessingError):
        logger.error(
            "Order processing failed",
            operation=operation,
            error=str(error),
            context=context,
        )
        detail = f"Failed to {operation}"
    else:
        logger.error(
            "Unexpected error handling order request",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
        )
        detail = "An unexpected error occurred"

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
    )

"""
JWT verification utilities.

Tokens are issued by the marketplace auth service; this backend only verifies
them and reads the subject claim. ``create_access_token`` mirrors the issuer's
claim layout and is used by local tooling and the test suite.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from jose import JWTError, jwt

from marketplace.core.config import get_settings
from marketplace.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)


class TokenError(Exception):
    """Raised when a bearer token cannot be decoded or is malformed."""

    def __init__(self, message: str, code: str, **context: Any):
        super().__init__(message)
        self.code = code
        self.context = context


def create_access_token(
    user_id: UUID,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token for a user.

    Args:
        user_id: User identifier stored in the ``sub`` claim
        role: User role stored in the ``role`` claim
        expires_delta: Optional custom lifetime

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta
        or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    claims = {
        "sub": str(user_id),
        "role": role,
        "type": "access",
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string to decode

    Returns:
        Dictionary of decoded token claims

    Raises:
        TokenError: If token is empty, invalid, or expired
    """
    if not token:
        raise TokenError("Token cannot be empty", code="EMPTY_TOKEN")

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as e:
        logger.warning("Token has expired", error=str(e))
        raise TokenError("Token has expired", code="TOKEN_EXPIRED") from e
    except JWTError as e:
        logger.warning(
            "Invalid token",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise TokenError("Invalid token", code="TOKEN_INVALID") from e

    logger.debug(
        "Token decoded successfully",
        subject=payload.get("sub"),
        token_type=payload.get("type"),
    )
    return payload


def get_token_user_id(token: str) -> UUID:
    """
    Extract the user ID from a token's subject claim.

    Raises:
        TokenError: If the token is invalid or the subject is not a UUID
    """
    payload = decode_token(token)
    subject = payload.get("sub")
    if not subject:
        raise TokenError("Token missing 'sub' claim", code="TOKEN_NO_SUBJECT")

    try:
        return UUID(subject)
    except ValueError as e:
        raise TokenError(
            "Token subject is not a valid user id",
            code="TOKEN_BAD_SUBJECT",
            subject=subject,
        ) from e

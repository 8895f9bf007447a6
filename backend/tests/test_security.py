"""
Tests for JWT verification utilities.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from marketplace.core.config import get_settings
from marketplace.core.security import (
    TokenError,
    create_access_token,
    decode_token,
    get_token_user_id,
)


class TestDecodeToken:
    """Test token decoding and claim extraction."""

    def test_round_trip_claims(self) -> None:
        user_id = uuid4()

        payload = decode_token(create_access_token(user_id, "artisan"))

        assert payload["sub"] == str(user_id)
        assert payload["role"] == "artisan"
        assert payload["type"] == "access"

    def test_empty_token(self) -> None:
        with pytest.raises(TokenError) as exc_info:
            decode_token("")

        assert exc_info.value.code == "EMPTY_TOKEN"

    def test_expired_token(self) -> None:
        token = create_access_token(uuid4(), "driver", expires_delta=timedelta(seconds=-1))

        with pytest.raises(TokenError) as exc_info:
            decode_token(token)

        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_wrong_signature(self) -> None:
        token = jwt.encode({"sub": str(uuid4())}, "x" * 40, algorithm="HS256")

        with pytest.raises(TokenError) as exc_info:
            decode_token(token)

        assert exc_info.value.code == "TOKEN_INVALID"


class TestTokenUserId:
    """Test subject parsing."""

    def test_returns_uuid(self) -> None:
        user_id = uuid4()

        assert get_token_user_id(create_access_token(user_id, "customer")) == user_id

    def test_missing_subject(self) -> None:
        settings = get_settings()
        token = jwt.encode(
            {"role": "customer"}, settings.secret_key, algorithm=settings.jwt_algorithm
        )

        with pytest.raises(TokenError) as exc_info:
            get_token_user_id(token)

        assert exc_info.value.code == "TOKEN_NO_SUBJECT"

    def test_subject_not_uuid(self) -> None:
        settings = get_settings()
        token = jwt.encode(
            {"sub": "user-42"}, settings.secret_key, algorithm=settings.jwt_algorithm
        )

        with pytest.raises(TokenError) as exc_info:
            get_token_user_id(token)

        assert exc_info.value.code == "TOKEN_BAD_SUBJECT"

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for JWT token utilities.

Tests the JWTManager class and token operations.
"""

import time
from datetime import timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from jose import jwt
from pydantic import SecretStr

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)


@pytest.fixture
def jwt_settings() -> MagicMock:
    """Create mock JWT settings."""
    settings = MagicMock()
    settings.secret_key = SecretStr("test-secret-key-for-jwt-testing")
    settings.algorithm = "HS256"
    settings.access_token_expire_minutes = 30
    return settings


@pytest.fixture
def jwt_manager(jwt_settings: MagicMock) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


class TestJWTManager:
    """Tests for JWTManager class."""

    def test_decode_access_token_returns_payload(self, jwt_manager: JWTManager) -> None:
        """Test that a created token decodes to the same identity."""
        user_id = uuid4()
        tenant_id = uuid4()

        token = jwt_manager.create_access_token(user_id=user_id, tenant_id=tenant_id, role="teacher")
        payload = jwt_manager.decode_token(token)

        assert isinstance(payload, TokenPayload)
        assert payload.sub == str(user_id)
        assert payload.tenant_id == str(tenant_id)
        assert payload.role == "teacher"
        assert payload.jti

    def test_token_payload_timestamps(self, jwt_manager: JWTManager) -> None:
        before = int(time.time())

        token = jwt_manager.create_access_token(user_id="u", tenant_id="s", role="hr")
        payload = jwt_manager.decode_token(token)

        assert before <= payload.iat <= before + 2
        assert payload.exp - payload.iat == 30 * 60

    def test_decode_expired_token_raises_error(self, jwt_manager: JWTManager) -> None:
        token = jwt_manager.create_access_token(
            user_id="u",
            tenant_id="s",
            role="teacher",
            expires_delta=timedelta(seconds=-10),
        )

        with pytest.raises(TokenExpiredError, match="Token has expired"):
            jwt_manager.decode_token(token)

    def test_decode_invalid_token_raises_error(self, jwt_manager: JWTManager) -> None:
        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token("invalid.token.here")

    def test_decode_token_with_wrong_secret_raises_error(
        self,
        jwt_manager: JWTManager,
        jwt_settings: MagicMock,
    ) -> None:
        token = jwt_manager.create_access_token(user_id="u", tenant_id="s", role="teacher")

        jwt_settings.secret_key = SecretStr("different-secret-key")
        other_manager = JWTManager(jwt_settings)

        with pytest.raises(InvalidTokenError):
            other_manager.decode_token(token)

    def test_token_without_role_is_invalid(self, jwt_manager: JWTManager) -> None:
        """Tokens from other issuers lacking the school or role claim are rejected."""
        now = int(time.time())
        token = jwt.encode(
            {"sub": "u", "tenant_id": "s", "exp": now + 60, "iat": now, "jti": "x"},
            "test-secret-key-for-jwt-testing",
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_each_token_has_unique_jti(self, jwt_manager: JWTManager) -> None:
        first = jwt_manager.decode_token(jwt_manager.create_access_token("u", "s", "teacher"))
        second = jwt_manager.decode_token(jwt_manager.create_access_token("u", "s", "teacher"))

        assert first.jti != second.jti

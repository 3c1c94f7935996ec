# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT token management utilities.

Identity is asserted by the school's sign-in service; Classbook only
validates the bearer token and reads who is calling, for which school and
in which role. Token creation is provided for that service and for tests.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> token = jwt_manager.create_access_token(user_id="user-123", tenant_id="school-1", role="teacher")
    >>> claims = jwt_manager.decode_token(token)
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel, ValidationError

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Attributes:
        sub: Subject (user ID).
        tenant_id: School the user acts for.
        role: Role code (teacher, admin, hr, ...).
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID for token tracking.
    """

    sub: str
    tenant_id: str
    role: str
    exp: int
    iat: int
    jti: str


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT token creation and validation manager.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        """Initialize the JWT manager.

        Args:
            settings: JWT configuration settings.
        """
        self._settings = settings

    def create_access_token(
        self,
        user_id: str | UUID,
        tenant_id: str | UUID,
        role: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create an access token.

        Args:
            user_id: User identifier.
            tenant_id: School identifier.
            role: Role code.
            expires_delta: Lifetime override. Defaults to the configured one.

        Returns:
            JWT access token string.
        """
        now = datetime.now(timezone.utc)
        exp = now + (expires_delta or timedelta(minutes=self._settings.access_token_expire_minutes))

        payload = {
            "sub": str(user_id),
            "tenant_id": str(tenant_id),
            "role": role,
            "exp": int(exp.timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }

        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate a JWT token.

        Args:
            token: JWT token string.

        Returns:
            TokenPayload with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or lacks a claim.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
            )
            return TokenPayload.model_validate(payload)

        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except (JoseJWTError, ValidationError) as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

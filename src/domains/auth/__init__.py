# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain services.

Users sign in through the school's identity service, which issues a bearer
token naming the user, the school and the role. This package validates
those tokens.

Exports:
    JWTManager: JWT token creation and validation.
    TokenPayload: Decoded token claims.
"""

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

__all__ = [
    "JWTManager",
    "TokenPayload",
    "JWTError",
    "TokenExpiredError",
    "InvalidTokenError",
]

"""JWT access tokens.

Claims: ``userId``, ``email``, ``role``, ``schoolId``, ``branchId`` and
``exp``. Tokens are HS256-signed with ``JWT_SECRET``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from educore.auth.roles import Role
from educore.config.settings import settings


class InvalidTokenError(Exception):
    """The access token is missing, malformed, forged or expired."""


@dataclass
class AuthenticatedUser:
    """Identity decoded from a verified access token."""

    user_id: str
    role: Role
    email: str | None = None
    school_id: str | None = None
    branch_id: str | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    def to_claims(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "email": self.email,
            "role": self.role.value,
            "schoolId": self.school_id,
            "branchId": self.branch_id,
        }


def create_access_token(
    user: AuthenticatedUser,
    secret: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    minutes = expires_minutes if expires_minutes is not None else settings.JWT_EXPIRES_MINUTES
    payload = user.to_claims()
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, secret: str | None = None) -> AuthenticatedUser:
    """Verify ``token`` and return the identity it carries.

    Raises:
        InvalidTokenError: On a bad signature, expiry, or missing claims.
    """
    try:
        payload = jwt.decode(
            token,
            secret or settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except jwt.ExpiredSignatureError as exc:
        raise InvalidTokenError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError("Invalid token") from exc

    try:
        return AuthenticatedUser(
            user_id=payload["userId"],
            role=Role(payload["role"]),
            email=payload.get("email"),
            school_id=payload.get("schoolId"),
            branch_id=payload.get("branchId"),
        )
    except (KeyError, ValueError) as exc:
        raise InvalidTokenError("Invalid token claims") from exc

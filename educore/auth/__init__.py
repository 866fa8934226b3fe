"""Authentication: roles and JWT access tokens."""

from educore.auth.roles import BRANCH_EXEMPT_ROLES, Role
from educore.auth.tokens import (
    AuthenticatedUser,
    InvalidTokenError,
    create_access_token,
    decode_access_token,
)

__all__ = [
    "AuthenticatedUser",
    "BRANCH_EXEMPT_ROLES",
    "InvalidTokenError",
    "Role",
    "create_access_token",
    "decode_access_token",
]

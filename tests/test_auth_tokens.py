"""Tests for educore.auth.tokens - JWT access tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from educore.auth import (
    AuthenticatedUser,
    InvalidTokenError,
    Role,
    create_access_token,
    decode_access_token,
)
from educore.config.settings import settings

ADMIN = AuthenticatedUser(
    user_id="user-1",
    role=Role.ADMIN,
    email="admin@amani.ac.ke",
    school_id="school-A",
    branch_id="branch-1",
)


class TestAuthenticatedUser:
    def test_is_super_admin(self):
        assert not ADMIN.is_super_admin
        assert AuthenticatedUser(user_id="root", role=Role.SUPER_ADMIN).is_super_admin

    def test_claims(self):
        assert ADMIN.to_claims() == {
            "userId": "user-1",
            "email": "admin@amani.ac.ke",
            "role": "ADMIN",
            "schoolId": "school-A",
            "branchId": "branch-1",
        }


class TestTokens:
    def test_round_trip(self):
        assert decode_access_token(create_access_token(ADMIN)) == ADMIN

    def test_expiry_claim_uses_settings(self):
        token = create_access_token(ADMIN)
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        exp = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        expected = datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRES_MINUTES)
        assert abs((exp - expected).total_seconds()) < 5

    def test_expired_token(self):
        token = create_access_token(ADMIN, expires_minutes=-5)
        with pytest.raises(InvalidTokenError, match="expired"):
            decode_access_token(token)

    def test_wrong_secret(self):
        token = create_access_token(ADMIN, secret="another-secret-that-is-long-enough-too")
        with pytest.raises(InvalidTokenError, match="Invalid token"):
            decode_access_token(token)

    def test_garbage(self):
        with pytest.raises(InvalidTokenError):
            decode_access_token("not-a-jwt")

    def test_missing_user_claim(self):
        token = jwt.encode(
            {"role": "ADMIN", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        with pytest.raises(InvalidTokenError, match="claims"):
            decode_access_token(token)

    def test_unknown_role(self):
        token = jwt.encode(
            {"userId": "u", "role": "JANITOR",
             "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        with pytest.raises(InvalidTokenError):
            decode_access_token(token)

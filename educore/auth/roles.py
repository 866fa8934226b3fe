"""User roles."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    HEAD_TEACHER = "HEAD_TEACHER"
    TEACHER = "TEACHER"
    PARENT = "PARENT"
    ACCOUNTANT = "ACCOUNTANT"
    RECEPTIONIST = "RECEPTIONIST"


# Roles allowed to operate without a branch association.
BRANCH_EXEMPT_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN})

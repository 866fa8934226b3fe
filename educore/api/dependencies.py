"""FastAPI dependencies: identity, tenant guards, role checks, data client.

The tenant guards here are the enforcement boundary for isolation. Every
router serving tenant data declares ``require_tenant``; the query
interceptor behind :func:`get_client` is the second line of defence.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from educore.api.errors import ApiError
from educore.auth.roles import BRANCH_EXEMPT_ROLES, Role
from educore.auth.tokens import AuthenticatedUser
from educore.db import get_session
from educore.multitenancy.client import TenantScopedClient
from educore.multitenancy.interceptor import QueryInterceptor

logger = logging.getLogger(__name__)


@dataclass
class TenantInfo:
    """Tenant resolved for the request by :func:`require_tenant`."""

    school_id: str | None
    branch_id: str | None


def get_current_user(request: Request) -> AuthenticatedUser:
    user = getattr(request.state, "user", None)
    if user is None:
        raise ApiError(401, "Authentication required")
    return user


def require_tenant(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> TenantInfo:
    """Resolve the request's tenant, rejecting tampered or missing tenancy.

    Non-super-admins are bound to their token's school: a differing
    ``X-School-Id``/``X-Branch-Id`` header is a 403, as is a token with no
    school. Super-admins may pick a tenant with the headers.
    """
    header_school_id = request.headers.get("x-school-id")
    header_branch_id = request.headers.get("x-branch-id")
    is_super_admin = user.is_super_admin

    if is_super_admin:
        school_id = user.school_id or header_school_id
        branch_id = user.branch_id or header_branch_id
    else:
        if header_school_id and user.school_id and header_school_id != user.school_id:
            logger.warning("Tenant header mismatch for user %s: token=%s header=%s",
                           user.user_id, user.school_id, header_school_id)
            raise ApiError(403, "Tenant mismatch: invalid X-School-Id for this token.")
        if header_branch_id and user.branch_id and header_branch_id != user.branch_id:
            raise ApiError(403, "Tenant mismatch: invalid X-Branch-Id for this token.")
        school_id = user.school_id
        branch_id = user.branch_id

    if not school_id and not is_super_admin:
        raise ApiError(403, "No school association found. Please contact support.")

    tenant = TenantInfo(school_id=school_id, branch_id=branch_id)
    request.state.tenant = tenant
    return tenant


def enforce_portal_tenant_match(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> None:
    """Reject a non-super-admin using another school's portal.

    The frontend reports the portal it is rendering in ``X-Portal-School-Id``.
    The header never selects a tenant; it only detects a mismatch.
    """
    portal_school_id = request.headers.get("x-portal-school-id")
    if not portal_school_id or user.is_super_admin:
        return
    if not user.school_id:
        raise ApiError(403, "Tenant mismatch: token has no school context.")
    if user.school_id != portal_school_id:
        raise ApiError(403, "Tenant mismatch: wrong portal for this token.")


def enforce_school_consistency(
    school_id: str,
    tenant: TenantInfo = Depends(require_tenant),
) -> str:
    """Guard for routes addressing a school by path parameter."""
    if tenant.school_id and tenant.school_id != school_id:
        raise ApiError(403, "Access denied: You cannot operate on a different school.")
    return school_id


def authorize(*roles: Role) -> Callable[[AuthenticatedUser], AuthenticatedUser]:
    """Dependency factory restricting a route to ``roles``."""
    allowed = frozenset(roles)

    def _check(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if user.role not in allowed:
            raise ApiError(
                403,
                "Access denied. Required roles: " + ", ".join(r.value for r in roles),
            )
        return user

    return _check


def require_branch(user: AuthenticatedUser = Depends(get_current_user)) -> str | None:
    if not user.branch_id and user.role not in BRANCH_EXEMPT_ROLES:
        raise ApiError(403, "Branch association required. Please contact administrator.")
    return user.branch_id


def get_branch_scope(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, str]:
    """Branch filter for branch-bound users.

    A user whose token carries a branch only reads and writes records of
    that branch. Returns ``{}`` for super-admins and school-wide users.
    """
    if user.is_super_admin or not user.branch_id:
        return {}
    return {"branch_id": user.branch_id}


def get_interceptor(request: Request) -> QueryInterceptor:
    return request.app.state.interceptor


def get_client(
    session: AsyncSession = Depends(get_session),
    interceptor: QueryInterceptor = Depends(get_interceptor),
) -> TenantScopedClient:
    return TenantScopedClient(session, interceptor)


def get_write_scope(
    user: AuthenticatedUser = Depends(get_current_user),
    tenant: TenantInfo = Depends(require_tenant),
) -> dict[str, str]:
    """Explicit school for super-admins writing tenant data.

    The interceptor does not scope super-admin calls, so a super-admin
    creating records must have selected a school (token or ``X-School-Id``).
    Returns ``{}`` for tenant-bound users, whose writes are scoped
    automatically.
    """
    if not user.is_super_admin:
        return {}
    if not tenant.school_id:
        raise ApiError(400, "Select a school (X-School-Id) before creating records.")
    return {"school_id": tenant.school_id}

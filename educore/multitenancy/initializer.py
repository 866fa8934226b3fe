"""
Tenant context initialization for inbound requests.

:class:`TenantContextMiddleware` runs after authentication. It derives a
:class:`TenantContext` from the authenticated user and publishes it for the
rest of the request, including every ``await`` and any task the request
spawns.

Derivation rules:
    - ``is_super_admin`` is ``role == SUPER_ADMIN``.
    - ``school_id``/``branch_id`` come from the token. The ``X-School-Id`` /
      ``X-Branch-Id`` headers are used only as a fallback for a super-admin
      whose token carries none (tenant switching in admin tooling).
    - Unauthenticated requests get no context.

The middleware never rejects a request. Tenant presence is enforced by the
``require_tenant`` dependency in :mod:`educore.api.dependencies`.

:func:`extract_subdomain` reads a school subdomain from the ``Host`` header
for the public tenant lookups in :mod:`educore.api.routes.subdomains`.
"""

from __future__ import annotations

from typing import Any, Callable
import logging
import re

from educore.auth.tokens import AuthenticatedUser
from educore.multitenancy.context import TenantContext, TenantScope

logger = logging.getLogger(__name__)

SCHOOL_HEADER = "x-school-id"
BRANCH_HEADER = "x-branch-id"


def derive_tenant_context(
    user: AuthenticatedUser | None,
    header_school_id: str | None = None,
    header_branch_id: str | None = None,
) -> TenantContext | None:
    """Build the tenant context for an authenticated identity.

    Args:
        user: The identity from the verified token, or None.
        header_school_id: Value of ``X-School-Id`` if sent.
        header_branch_id: Value of ``X-Branch-Id`` if sent.

    Returns:
        The context, or None when there is no authenticated user.
    """
    if user is None:
        return None

    is_super_admin = user.is_super_admin
    school_id = user.school_id
    branch_id = user.branch_id
    if is_super_admin:
        school_id = school_id or header_school_id or None
        branch_id = branch_id or header_branch_id or None

    return TenantContext(
        school_id=school_id,
        branch_id=branch_id,
        is_super_admin=is_super_admin,
        user_id=user.user_id,
    )


class TenantContextMiddleware:
    """ASGI middleware publishing the request's tenant context.

    Must sit inside the authentication middleware, which stores the
    identity as ``request.state.user``.

    Example:
        app.add_middleware(TenantContextMiddleware)
        app.add_middleware(AuthMiddleware)  # added last, runs first
    """

    def __init__(self, app: Any):
        self.app = app

    async def __call__(
        self,
        scope: dict[str, Any],
        receive: Callable[..., Any],
        send: Callable[..., Any],
    ) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        user = scope.get("state", {}).get("user")
        headers = dict(scope.get("headers", []))
        context = derive_tenant_context(
            user,
            header_school_id=_header(headers, SCHOOL_HEADER),
            header_branch_id=_header(headers, BRANCH_HEADER),
        )

        if context is None:
            await self.app(scope, receive, send)
            return

        logger.debug(
            "Tenant context school=%s branch=%s super_admin=%s user=%s",
            context.school_id, context.branch_id,
            context.is_super_admin, context.user_id,
        )
        async with TenantScope(context):
            await self.app(scope, receive, send)


_NON_TENANT_PREFIXES = frozenset({"www", "mail", "ftp", "smtp", "pop", "imap"})
_IPV4 = re.compile(r"^\d+\.\d+\.\d+\.\d+$")


def extract_subdomain(host: str | None) -> str | None:
    """Return the tenant subdomain of a ``Host`` header value.

    ``amani.educore.co.ke:443`` gives ``"amani"``. Bare domains, localhost,
    IPv4 addresses and service prefixes such as ``www`` give None.
    """
    hostname = (host or "").split(":")[0].strip().lower()
    if not hostname or hostname == "localhost" or _IPV4.match(hostname):
        return None
    parts = hostname.split(".")
    if len(parts) <= 2 or parts[0] in _NON_TENANT_PREFIXES:
        return None
    return parts[0]


def _header(headers: dict[bytes, bytes], name: str) -> str | None:
    value = headers.get(name.encode())
    return value.decode() if value else None

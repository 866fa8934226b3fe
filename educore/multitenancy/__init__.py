"""
Multi-tenant data isolation for EDucore.

Every school is a tenant. Requests carry exactly one tenant context and
every data-access call against a tenant-scoped model is filtered by the
context's ``school_id``.

Key Components:
    - TenantContext / TenantScope: request-scoped context store
      (contextvars)
    - TenantContextMiddleware: publishes the context after authentication
    - QueryInterceptor: rewrites data-access calls for the active tenant
    - TenantScopedClient: executes rewritten calls on an SQLAlchemy session
      (``educore.multitenancy.client``)
    - install_tenant_hooks: scopes raw ORM session use
      (``educore.multitenancy.orm``)

Example:
    from educore.multitenancy import TenantContext, TenantScope, get_current

    with TenantScope(TenantContext(school_id="school-A")):
        get_current().school_id  # "school-A"
"""

from educore.multitenancy.context import (
    TenantContext,
    TenantScope,
    get_current,
    require_context,
    run,
    run_async,
    run_with_tenant_context,
    tenant_required,
    with_tenant,
)
from educore.multitenancy.errors import (
    CrossTenantAccessError,
    RecordNotFoundError,
    TenantContextMissingError,
    TenantIsolationError,
)
from educore.multitenancy.initializer import (
    TenantContextMiddleware,
    derive_tenant_context,
    extract_subdomain,
)
from educore.multitenancy.interceptor import (
    TENANT_KEY,
    TENANT_SCOPED_MODELS,
    QueryAction,
    QueryCall,
    QueryInterceptor,
)

__all__ = [
    # Context
    "TenantContext",
    "TenantScope",
    "get_current",
    "require_context",
    "run",
    "run_async",
    "run_with_tenant_context",
    "tenant_required",
    "with_tenant",
    # Errors
    "CrossTenantAccessError",
    "RecordNotFoundError",
    "TenantContextMissingError",
    "TenantIsolationError",
    # Initializer
    "TenantContextMiddleware",
    "derive_tenant_context",
    "extract_subdomain",
    # Interceptor
    "TENANT_KEY",
    "TENANT_SCOPED_MODELS",
    "QueryAction",
    "QueryCall",
    "QueryInterceptor",
]

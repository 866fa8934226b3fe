"""Exceptions raised by the tenant isolation layer."""

from __future__ import annotations

from typing import Any


class TenantIsolationError(Exception):
    """Base class for tenant isolation failures."""


class TenantContextMissingError(TenantIsolationError):
    """A tenant-scoped resource was accessed without a tenant context."""

    def __init__(self, entity: str | None = None) -> None:
        self.entity = entity
        if entity:
            message = (
                f"No tenant context for tenant-scoped model {entity!r}. "
                "Ensure request middleware sets tenant context before "
                "accessing tenant-scoped resources."
            )
        else:
            message = (
                "No tenant set in context. Ensure request middleware sets "
                "tenant context before accessing tenant-scoped resources."
            )
        super().__init__(message)


class CrossTenantAccessError(TenantIsolationError):
    """A call named a school other than the active tenant's."""

    def __init__(self, entity: str, requested: Any, active: str) -> None:
        self.entity = entity
        self.requested = requested
        self.active = active
        super().__init__(
            f"Cross-tenant access to {entity}: requested school {requested!r} "
            f"but active tenant is {active!r}"
        )


class RecordNotFoundError(LookupError):
    """No record matched the (tenant-scoped) filter of an update or delete."""

    def __init__(self, entity: str, where: dict[str, Any] | None = None) -> None:
        self.entity = entity
        self.where = dict(where or {})
        super().__init__(f"{entity} not found")

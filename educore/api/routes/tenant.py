"""Introspection of the tenant bound to the current request."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from educore.api.dependencies import (
    TenantInfo,
    enforce_school_consistency,
    get_client,
    require_tenant,
)
from educore.api.errors import ApiError
from educore.multitenancy.client import TenantScopedClient
from educore.multitenancy.context import get_current

router = APIRouter(prefix="/api/tenant", tags=["tenant"])


@router.get("/context")
async def tenant_context(tenant: TenantInfo = Depends(require_tenant)) -> dict:
    context = get_current()
    return {
        "success": True,
        "data": {
            "context": context.to_dict() if context else None,
            "resolved": {"school_id": tenant.school_id, "branch_id": tenant.branch_id},
        },
    }


@router.get("/schools/{school_id}")
async def get_school(
    school_id: str = Depends(enforce_school_consistency),
    client: TenantScopedClient = Depends(get_client),
) -> dict:
    school = await client.school.find_unique(where={"id": school_id})
    if school is None:
        raise ApiError(404, "School not found")
    return {
        "success": True,
        "data": {
            "id": school.id,
            "name": school.name,
            "subdomain": school.subdomain,
            "county": school.county,
            "active": school.active,
        },
    }

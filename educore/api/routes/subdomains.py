"""Public tenant lookup by school subdomain.

Login pages served from ``<subdomain>.<domain>`` resolve their school here
before any user is authenticated. Only public school fields are returned.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from educore.api.dependencies import get_client
from educore.api.errors import ApiError
from educore.multitenancy.client import TenantScopedClient
from educore.multitenancy.initializer import extract_subdomain

router = APIRouter(prefix="/api/subdomains", tags=["subdomains"])


async def _branding(client: TenantScopedClient, subdomain: str) -> dict:
    school = await client.school.find_first(where={"subdomain": subdomain.lower()})
    if school is None:
        raise ApiError(404, "School not found")
    return {
        "success": True,
        "data": {
            "school_id": school.id,
            "school_name": school.name,
            "subdomain": school.subdomain,
            "status": "ACTIVE" if school.active else "INACTIVE",
        },
    }


@router.get("/current")
async def current_school(
    request: Request,
    client: TenantScopedClient = Depends(get_client),
) -> dict:
    subdomain = extract_subdomain(request.headers.get("host"))
    if subdomain is None:
        raise ApiError(404, "No school subdomain in host")
    return await _branding(client, subdomain)


@router.get("/{subdomain}/branding")
async def school_branding(
    subdomain: str,
    client: TenantScopedClient = Depends(get_client),
) -> dict:
    return await _branding(client, subdomain)

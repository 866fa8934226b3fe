"""Learner records.

Handlers never pass ``school_id`` to scope a query; the tenant-scoped
client adds it from the request's tenant context.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from educore.api.dependencies import (
    authorize,
    enforce_portal_tenant_match,
    get_branch_scope,
    get_client,
    get_write_scope,
    require_tenant,
)
from educore.api.errors import ApiError
from educore.auth.roles import Role
from educore.multitenancy.client import TenantScopedClient

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/learners",
    tags=["learners"],
    dependencies=[Depends(require_tenant), Depends(enforce_portal_tenant_match)],
)

_EDITORS = (Role.SUPER_ADMIN, Role.ADMIN, Role.HEAD_TEACHER)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class LearnerCreate(BaseModel):
    admission_number: str = Field(..., min_length=1, max_length=64)
    first_name: str = Field(..., min_length=1, max_length=128)
    last_name: str = Field(..., min_length=1, max_length=128)
    grade: str = Field(..., min_length=1, max_length=32)
    stream: str | None = None
    gender: str | None = None
    date_of_birth: date | None = None
    branch_id: str | None = None


class LearnerUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=128)
    last_name: str | None = Field(default=None, min_length=1, max_length=128)
    grade: str | None = None
    stream: str | None = None
    gender: str | None = None
    date_of_birth: date | None = None
    status: str | None = None
    branch_id: str | None = None


class LearnerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    admission_number: str
    first_name: str
    last_name: str
    grade: str
    stream: str | None = None
    gender: str | None = None
    date_of_birth: date | None = None
    status: str
    branch_id: str | None = None
    created_at: datetime | None = None


class LearnerPage(BaseModel):
    data: list[LearnerOut]
    total: int
    page: int
    limit: int


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

async def _check_branches(
    client: TenantScopedClient, branch_ids: set[str], school_scope: dict
) -> None:
    """Reject branch ids that are not branches of the caller's school."""
    if not branch_ids:
        return
    found = await client.branch.count(where={**school_scope, "id": {"in": sorted(branch_ids)}})
    if found != len(branch_ids):
        raise ApiError(400, "Branch not found in this school")


async def _prepare_rows(
    client: TenantScopedClient,
    bodies: list[LearnerCreate],
    scope: dict,
    branch: dict,
) -> list[dict]:
    rows = [{**b.model_dump(exclude_none=True), **scope, **branch} for b in bodies]
    if not branch:
        await _check_branches(client, {r["branch_id"] for r in rows if "branch_id" in r}, scope)
    return rows


@router.get("", response_model=LearnerPage)
async def list_learners(
    grade: str | None = Query(None),
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    branch: dict = Depends(get_branch_scope),
    client: TenantScopedClient = Depends(get_client),
) -> LearnerPage:
    where: dict = {**branch}
    if grade:
        where["grade"] = grade
    if status:
        where["status"] = status

    rows = await client.learner.find_many(
        where=where,
        order_by=["last_name", "first_name"],
        skip=(page - 1) * limit,
        take=limit,
    )
    total = await client.learner.count(where=where)
    return LearnerPage(
        data=[LearnerOut.model_validate(r) for r in rows],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{learner_id}", response_model=LearnerOut)
async def get_learner(
    learner_id: str,
    branch: dict = Depends(get_branch_scope),
    client: TenantScopedClient = Depends(get_client),
) -> LearnerOut:
    learner = await client.learner.find_first(where={"id": learner_id, **branch})
    if learner is None:
        raise ApiError(404, "Learner not found")
    return LearnerOut.model_validate(learner)


@router.post("", response_model=LearnerOut, status_code=201,
             dependencies=[Depends(authorize(*_EDITORS))])
async def create_learner(
    body: LearnerCreate,
    scope: dict = Depends(get_write_scope),
    branch: dict = Depends(get_branch_scope),
    client: TenantScopedClient = Depends(get_client),
) -> LearnerOut:
    existing = await client.learner.find_first(
        where={**scope, "admission_number": body.admission_number}
    )
    if existing is not None:
        raise ApiError(409, f"Admission number {body.admission_number} already exists")

    (row,) = await _prepare_rows(client, [body], scope, branch)
    learner = await client.learner.create(row)
    logger.info("Created learner %s (%s)", learner.id, learner.admission_number)
    return LearnerOut.model_validate(learner)


@router.post("/bulk", status_code=201, dependencies=[Depends(authorize(*_EDITORS))])
async def bulk_create_learners(
    body: list[LearnerCreate],
    scope: dict = Depends(get_write_scope),
    branch: dict = Depends(get_branch_scope),
    client: TenantScopedClient = Depends(get_client),
) -> dict:
    if not body:
        raise ApiError(400, "No learners supplied")

    numbers = [b.admission_number for b in body]
    repeated = sorted({n for n in numbers if numbers.count(n) > 1})
    if repeated:
        raise ApiError(409, "Duplicate admission numbers in request: " + ", ".join(repeated))
    existing = await client.learner.find_many(
        where={**scope, "admission_number": {"in": numbers}}
    )
    if existing:
        taken = sorted(l.admission_number for l in existing)
        raise ApiError(409, "Admission numbers already exist: " + ", ".join(taken))

    rows = await _prepare_rows(client, body, scope, branch)
    count = await client.learner.create_many(rows)
    logger.info("Bulk created %d learners", count)
    return {"success": True, "count": count}


@router.patch("/{learner_id}", response_model=LearnerOut,
              dependencies=[Depends(authorize(*_EDITORS))])
async def update_learner(
    learner_id: str,
    body: LearnerUpdate,
    branch: dict = Depends(get_branch_scope),
    client: TenantScopedClient = Depends(get_client),
) -> LearnerOut:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ApiError(400, "No changes supplied")

    where = {"id": learner_id, **branch}
    if "branch_id" in changes:
        if branch:
            changes.update(branch)
        elif changes["branch_id"] is not None:
            learner = await client.learner.find_first(where=where)
            if learner is None:
                raise ApiError(404, "Learner not found")
            await _check_branches(client, {changes["branch_id"]}, {"school_id": learner.school_id})

    learner = await client.learner.update(where=where, data=changes)
    return LearnerOut.model_validate(learner)


@router.delete("/{learner_id}",
               dependencies=[Depends(authorize(Role.SUPER_ADMIN, Role.ADMIN))])
async def delete_learner(
    learner_id: str,
    branch: dict = Depends(get_branch_scope),
    client: TenantScopedClient = Depends(get_client),
) -> dict:
    await client.learner.delete(where={"id": learner_id, **branch})
    return {"success": True, "id": learner_id}

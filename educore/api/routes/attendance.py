"""Daily attendance: bulk marking, listing and per-status summaries."""

from __future__ import annotations

import logging
from datetime import date
from enum import Enum

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, model_validator

from educore.api.dependencies import (
    enforce_portal_tenant_match,
    get_client,
    get_current_user,
    get_write_scope,
    require_branch,
    require_tenant,
)
from educore.api.errors import ApiError
from educore.auth.tokens import AuthenticatedUser
from educore.multitenancy.client import TenantScopedClient

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/attendance",
    tags=["attendance"],
    dependencies=[Depends(require_tenant), Depends(enforce_portal_tenant_match)],
)


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"
    SICK = "SICK"


class AttendanceMark(BaseModel):
    learner_id: str
    status: AttendanceStatus
    remarks: str | None = None


class BulkAttendance(BaseModel):
    attendance_date: date
    class_id: str | None = None
    records: list[AttendanceMark] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _one_mark_per_learner(self) -> "BulkAttendance":
        seen: set[str] = set()
        for record in self.records:
            if record.learner_id in seen:
                raise ValueError(f"Learner {record.learner_id} is marked more than once")
            seen.add(record.learner_id)
        return self


class AttendanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    learner_id: str
    class_id: str | None = None
    attendance_date: date
    status: str
    remarks: str | None = None
    marked_by: str | None = None


@router.get("", response_model=list[AttendanceOut])
async def list_attendance(
    attendance_date: date = Query(..., alias="date"),
    class_id: str | None = Query(None),
    client: TenantScopedClient = Depends(get_client),
) -> list[AttendanceOut]:
    where: dict = {"attendance_date": attendance_date}
    if class_id:
        where["class_id"] = class_id
    rows = await client.attendance.find_many(where=where, order_by="learner_id")
    return [AttendanceOut.model_validate(r) for r in rows]


@router.post("/bulk", status_code=201, dependencies=[Depends(require_branch)])
async def mark_attendance(
    body: BulkAttendance,
    user: AuthenticatedUser = Depends(get_current_user),
    scope: dict = Depends(get_write_scope),
    client: TenantScopedClient = Depends(get_client),
) -> dict:
    learner_ids = [r.learner_id for r in body.records]
    known = await client.learner.count(where={**scope, "id": {"in": learner_ids}})
    if known != len(set(learner_ids)):
        raise ApiError(400, "One or more learners do not belong to this school")

    # Re-marking a day replaces the earlier records for those learners.
    await client.attendance.delete_many(where={
        **scope,
        "attendance_date": body.attendance_date,
        "learner_id": {"in": learner_ids},
    })
    created = await client.attendance.create_many([
        {
            **scope,
            "learner_id": r.learner_id,
            "class_id": body.class_id,
            "attendance_date": body.attendance_date,
            "status": r.status.value,
            "remarks": r.remarks,
            "marked_by": user.user_id,
        }
        for r in body.records
    ])
    logger.info("Marked attendance for %d learners on %s", created, body.attendance_date)
    return {"success": True, "created": created}


@router.get("/summary")
async def attendance_summary(
    attendance_date: date = Query(..., alias="date"),
    client: TenantScopedClient = Depends(get_client),
) -> dict:
    summary = {}
    for status in AttendanceStatus:
        summary[status.value.lower()] = await client.attendance.count(
            where={"attendance_date": attendance_date, "status": status.value}
        )
    summary["total"] = sum(summary.values())
    return {"date": attendance_date.isoformat(), "summary": summary}

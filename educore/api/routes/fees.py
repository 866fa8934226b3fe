"""Fee invoices and outstanding balances."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, model_validator

from educore.api.dependencies import (
    authorize,
    enforce_portal_tenant_match,
    get_client,
    get_write_scope,
    require_tenant,
)
from educore.api.errors import ApiError
from educore.auth.roles import Role
from educore.multitenancy.client import TenantScopedClient

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/fees",
    tags=["fees"],
    dependencies=[Depends(require_tenant), Depends(enforce_portal_tenant_match)],
)

_BURSARY = (Role.SUPER_ADMIN, Role.ADMIN, Role.ACCOUNTANT)


class InvoiceCreate(BaseModel):
    invoice_number: str = Field(..., min_length=1, max_length=64)
    learner_id: str
    fee_structure_id: str | None = None
    term: str = Field(..., min_length=1, max_length=16)
    academic_year: int = Field(..., ge=2000, le=2100)
    total_amount: Decimal = Field(..., ge=0)
    paid_amount: Decimal = Field(default=Decimal("0"), ge=0)
    due_date: date | None = None

    @model_validator(mode="after")
    def _not_overpaid(self) -> "InvoiceCreate":
        if self.paid_amount > self.total_amount:
            raise ValueError("paid_amount cannot exceed total_amount")
        return self


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_number: str
    learner_id: str
    fee_structure_id: str | None = None
    term: str
    academic_year: int
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: str
    due_date: date | None = None
    created_at: datetime | None = None


def _invoice_status(total: Decimal, paid: Decimal) -> str:
    if paid <= 0:
        return "PENDING"
    if paid >= total:
        return "PAID"
    return "PARTIAL"


@router.get("/invoices", response_model=list[InvoiceOut])
async def list_invoices(
    learner_id: str | None = Query(None),
    status: str | None = Query(None),
    term: str | None = Query(None),
    academic_year: int | None = Query(None),
    client: TenantScopedClient = Depends(get_client),
) -> list[InvoiceOut]:
    where: dict = {}
    if learner_id:
        where["learner_id"] = learner_id
    if status:
        where["status"] = status
    if term:
        where["term"] = term
    if academic_year:
        where["academic_year"] = academic_year
    rows = await client.fee_invoice.find_many(where=where, order_by="-created_at")
    return [InvoiceOut.model_validate(r) for r in rows]


@router.post("/invoices", response_model=InvoiceOut, status_code=201,
             dependencies=[Depends(authorize(*_BURSARY))])
async def create_invoice(
    body: InvoiceCreate,
    scope: dict = Depends(get_write_scope),
    client: TenantScopedClient = Depends(get_client),
) -> InvoiceOut:
    learner = await client.learner.find_first(where={**scope, "id": body.learner_id})
    if learner is None:
        raise ApiError(404, "Learner not found")

    invoice = await client.fee_invoice.create({
        **scope,
        **body.model_dump(exclude_none=True),
        "balance": body.total_amount - body.paid_amount,
        "status": _invoice_status(body.total_amount, body.paid_amount),
    })
    logger.info("Created invoice %s for learner %s", invoice.invoice_number, learner.id)
    return InvoiceOut.model_validate(invoice)


@router.get("/outstanding", dependencies=[Depends(authorize(*_BURSARY))])
async def outstanding_balances(
    term: str | None = Query(None),
    academic_year: int | None = Query(None),
    client: TenantScopedClient = Depends(get_client),
) -> dict:
    where: dict = {"balance": {"gt": 0}}
    if term:
        where["term"] = term
    if academic_year:
        where["academic_year"] = academic_year

    totals = await client.fee_invoice.aggregate(where=where, sum=["balance", "total_amount"])
    return {
        "invoices": totals["count"],
        "outstanding": str(Decimal(totals["sum"]["balance"] or 0)),
        "billed": str(Decimal(totals["sum"]["total_amount"] or 0)),
    }

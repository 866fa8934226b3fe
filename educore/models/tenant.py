"""Tenant models.

- **School**: the tenant itself. Not tenant-scoped; only super-admins list
  schools across the platform.
- **Branch**: a campus of a school.
- **TenantScopedMixin**: column mixin adding the indexed ``school_id`` key
  that the query interceptor filters on.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from educore.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Mixin
# ---------------------------------------------------------------------------


class TenantScopedMixin:
    """Column mixin that adds an indexed ``school_id`` foreign key.

    Apply to any model that belongs to a school::

        class Learner(TenantScopedMixin, Base):
            __tablename__ = "learners"
            ...
    """

    @declared_attr
    def school_id(cls) -> Mapped[str]:
        return mapped_column(
            String(36),
            ForeignKey("schools.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        )


# ---------------------------------------------------------------------------
# School
# ---------------------------------------------------------------------------


class School(Base):
    __tablename__ = "schools"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    subdomain: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    county: Mapped[str | None] = mapped_column(String(128), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


# ---------------------------------------------------------------------------
# Branch
# ---------------------------------------------------------------------------


class Branch(TenantScopedMixin, Base):
    __tablename__ = "branches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    code: Mapped[str] = mapped_column(String(32), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

"""Shared fixtures: in-memory SQLite database and authenticated API client."""

from __future__ import annotations

import os

# Settings are read at import time.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-length-for-hs256")
os.environ.setdefault("ENVIRONMENT", "test")

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from educore.auth.roles import Role
from educore.auth.tokens import AuthenticatedUser, create_access_token
from educore.db import Base, TenantSession, get_session
from educore.main import app
from educore.models import Learner, School

SCHOOL_A = "school-a"
SCHOOL_B = "school-b"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    # TenantSession carries the scoping hooks installed by educore.main.
    return async_sessionmaker(engine, expire_on_commit=False, sync_session_class=TenantSession)


@pytest_asyncio.fixture
async def seeded(session_factory) -> dict[str, list[str]]:
    """Two schools with learners of their own. Returns learner ids per school."""
    ids: dict[str, list[str]] = {SCHOOL_A: [], SCHOOL_B: []}
    async with session_factory() as session:
        session.add_all([
            School(id=SCHOOL_A, name="Amani Academy", subdomain="amani"),
            School(id=SCHOOL_B, name="Baraka School", subdomain="baraka"),
        ])
        rows = [
            (SCHOOL_A, "A-001", "Achieng", "Otieno", "GRADE_4"),
            (SCHOOL_A, "A-002", "Baraka", "Mwangi", "GRADE_4"),
            (SCHOOL_A, "A-003", "Chebet", "Kiprop", "GRADE_5"),
            (SCHOOL_B, "B-001", "Daudi", "Njoroge", "GRADE_4"),
            (SCHOOL_B, "B-002", "Esther", "Wanjiru", "GRADE_6"),
        ]
        for school_id, adm, first, last, grade in rows:
            learner = Learner(
                school_id=school_id,
                admission_number=adm,
                first_name=first,
                last_name=last,
                grade=grade,
            )
            session.add(learner)
            await session.flush()
            ids[school_id].append(learner.id)
        await session.commit()
    return ids


def make_token(
    role: Role = Role.ADMIN,
    school_id: str | None = SCHOOL_A,
    branch_id: str | None = None,
    user_id: str = "user-1",
) -> str:
    return create_access_token(
        AuthenticatedUser(
            user_id=user_id,
            role=role,
            email=f"{user_id}@example.com",
            school_id=school_id,
            branch_id=branch_id,
        )
    )


def auth_headers(**kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(**kwargs)}"}


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

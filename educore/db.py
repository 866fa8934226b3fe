"""Async SQLAlchemy engine, session factory and declarative base."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Session

from educore.config.settings import settings


class Base(DeclarativeBase):
    pass


class TenantSession(Session):
    """Sync session class behind every ``AsyncSession``.

    The tenant scoping hooks (:mod:`educore.multitenancy.orm`) are
    registered on this class at application start.
    """


engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO, pool_pre_ping=True)

async_session = async_sessionmaker(
    engine,
    expire_on_commit=False,
    sync_session_class=TenantSession,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, committed on success."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

"""Liveness endpoint. Exempt from authentication."""

from __future__ import annotations

from fastapi import APIRouter

from educore import __version__
from educore.config.settings import settings

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
    }

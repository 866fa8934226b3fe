"""EDucore FastAPI application."""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from educore import __version__
from educore.api.errors import register_exception_handlers
from educore.api.middleware import AuthMiddleware, RequestLoggingMiddleware
from educore.api.routes import ROUTERS
from educore.config import configure_logging
from educore.config.settings import settings
from educore.db import TenantSession, engine
from educore.models import MODEL_REGISTRY
from educore.multitenancy.initializer import TenantContextMiddleware
from educore.multitenancy.interceptor import QueryInterceptor
from educore.multitenancy.orm import install_tenant_hooks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("EDucore %s started (environment=%s)", __version__, settings.ENVIRONMENT)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="EDucore",
        version=__version__,
        lifespan=lifespan,
    )

    interceptor = QueryInterceptor.from_settings(settings)
    app.state.interceptor = interceptor
    install_tenant_hooks(TenantSession, interceptor, MODEL_REGISTRY)

    # Added innermost first: CORS -> logging -> auth -> tenant context -> routes.
    app.add_middleware(TenantContextMiddleware)
    app.add_middleware(AuthMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    for router in ROUTERS:
        app.include_router(router)
    return app


app = create_app()

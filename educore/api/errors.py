"""API error type and exception handlers.

Error responses share one body shape::

    {"success": false, "error": {"message": "..."}}
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from educore.config.settings import settings
from educore.multitenancy.errors import RecordNotFoundError, TenantIsolationError

logger = logging.getLogger("educore.api")


class ApiError(Exception):
    """An error with an HTTP status, raised from dependencies and routes."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def error_response(status_code: int, message: str, **extra: object) -> JSONResponse:
    error: dict[str, object] = {"message": message}
    error.update(extra)
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


async def not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    return error_response(404, str(exc))


async def tenant_isolation_handler(request: Request, exc: TenantIsolationError) -> JSONResponse:
    logger.warning("Tenant isolation violation on %s %s: %s", request.method, request.url.path, exc)
    return error_response(403, "Access denied: tenant isolation violation")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(422, "Validation failed", details=jsonable_errors(exc))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return error_response(409, "Record conflicts with existing data")


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return error_response(400, str(exc))


async def internal_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    # Request bodies are validated by FastAPI (422); a pydantic error here is a server bug.
    return await generic_error_handler(request, exc)


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    if settings.is_development:
        return error_response(500, "Internal server error", detail=str(exc))
    return error_response(500, "Internal server error")


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RecordNotFoundError, not_found_handler)
    app.add_exception_handler(TenantIsolationError, tenant_isolation_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(ValidationError, internal_validation_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

"""Request-logging and JWT authentication middleware for FastAPI."""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from educore.api.errors import error_response
from educore.auth.tokens import InvalidTokenError, decode_access_token

logger = logging.getLogger("educore.api")

# ---------------------------------------------------------------------------
# Request logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID and log method/path/status/duration."""

    async def dispatch(self, request: Request, call_next):  # noqa: ANN001
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        logger.info(
            "method=%s path=%s status_code=%s duration_ms=%.1f request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request_id,
        )

        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

_EXEMPT_PREFIXES = ("/api/health", "/api/subdomains", "/docs", "/redoc", "/openapi.json")


class AuthMiddleware(BaseHTTPMiddleware):
    """Bearer-token authentication; stores the identity as ``request.state.user``."""

    async def dispatch(self, request: Request, call_next):  # noqa: ANN001
        path = request.url.path
        request.state.user = None

        if request.method == "OPTIONS" or any(path.startswith(p) for p in _EXEMPT_PREFIXES):
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        token = auth_header[7:].strip() if auth_header.startswith("Bearer ") else ""
        if not token:
            return error_response(401, "Authentication required")

        try:
            request.state.user = decode_access_token(token)
        except InvalidTokenError as exc:
            logger.info("Rejected token on %s: %s", path, exc)
            return error_response(401, "Invalid or expired token")

        return await call_next(request)

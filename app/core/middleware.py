"""
Request middleware and tenant helpers.
Request ids + access logging; tenant id extraction from the authenticated user.
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.core.exceptions import Unauthenticated
from app.core.logging_config import generate_request_id, get_logger, set_request_id

logger = get_logger(__name__)

# Paths that skip access logging
SKIP_LOGGING_PATHS = {"/", "/docs", "/redoc", "/openapi.json", "/api/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        path = request.url.path
        if path not in SKIP_LOGGING_PATHS and request.method != "OPTIONS":
            logger.info(f"{request.method} {path} -> {response.status_code} ({duration_ms:.1f}ms)")
        return response


def get_institute_id(user: dict) -> str:
    """
    Extract the tenant id from the authenticated user.
    Every caller MUST carry one; there is no cross-tenant role.
    """
    institute_id = user.get("institute_id")
    if not institute_id:
        raise Unauthenticated("No institute context. Sign in again.")
    return institute_id

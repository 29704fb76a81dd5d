"""
HTTP middlewares: security headers, request logging and body size limit.
"""

import logging
import time
import uuid
from typing import Callable, Dict
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings


logger = logging.getLogger("app.requests")

# Responses under these prefixes carry personal data
PRIVATE_PATH_PREFIXES = ("/auth", "/profiles", "/matching", "/chat", "/media", "/functions")

UNLOGGED_PATHS = {"/", "/health", "/docs", "/redoc", "/openapi.json"}


def _is_private(path: str) -> bool:
    if path.startswith(settings.API_V1_PREFIX):
        path = path[len(settings.API_V1_PREFIX):]
    return path.startswith(PRIVATE_PATH_PREFIXES)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Tags every response with a request id and hardening headers."""

    HEADERS: Dict[str, str] = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "camera=(), geolocation=(), microphone=(), payment=()",
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Keep the id a proxy or the mobile client already assigned
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        request.state.request_id = request_id

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        response.headers.update(self.HEADERS)

        if _is_private(request.url.path):
            response.headers["Cache-Control"] = "no-store, private"
            response.headers["Pragma"] = "no-cache"

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request with timing and client info.
    Server errors are logged at ERROR, client errors at WARNING.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)

        path = request.url.path
        if path in UNLOGGED_PATHS or request.method == "OPTIONS":
            return response

        log_data = {
            "request_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "client_ip": self._get_client_ip(request),
        }

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            f"{log_data['method']} {path} - {log_data['status_code']} ({log_data['duration_ms']}ms)",
            extra=log_data,
        )

        return response

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else "unknown"


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects bodies over MAX_REQUEST_BODY_MB based on Content-Length.
    The cap is sized for video uploads; media limits are enforced per file.
    """

    MAX_BODY_SIZE = settings.MAX_REQUEST_BODY_MB * 1024 * 1024

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("Content-Length")
        if not content_length:
            return await call_next(request)

        try:
            size = int(content_length)
        except ValueError:
            return JSONResponse(status_code=400, content={"detail": "Invalid Content-Length header."})

        if size > self.MAX_BODY_SIZE:
            return JSONResponse(
                status_code=413,
                content={"detail": f"Request body too large. Maximum size is {settings.MAX_REQUEST_BODY_MB}MB."},
            )

        return await call_next(request)

"""Security event logging middleware.

Writes one event per authentication-relevant step for ``/auth/`` and
``/api/`` requests: the attempt, the (masked) presented key, suspicious
user agents, and the outcome derived from the response status. Each request
gets a short correlation id, echoed back in the ``X-Request-ID`` header.

Also home to the middleware that stamps browser security headers on every
response.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..audit.logger import (
    SecurityEventType,
    SecurityLogger,
    is_suspicious_user_agent,
    outcome_event_type,
    request_id_scope,
)
from ..auth.keys import mask_api_key
from .auth import API_KEY_HEADER

logger = logging.getLogger("keyward.api.security")

REQUEST_ID_HEADER = "X-Request-ID"

DEFAULT_LOGGED_PREFIXES = ("/auth/", "/api/")


def client_ip(request: Request) -> str:
    """Best-effort client address, honouring proxy headers."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


class SecurityLoggingMiddleware(BaseHTTPMiddleware):
    """Logs authentication attempts and outcomes."""

    def __init__(self, app, security_logger: SecurityLogger | None = None, prefixes=DEFAULT_LOGGED_PREFIXES):
        super().__init__(app)
        self.security_logger = security_logger or SecurityLogger()
        self.prefixes = tuple(prefixes)

    def _should_log(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.prefixes)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not self._should_log(path):
            return await call_next(request)

        events = self.security_logger
        with request_id_scope(request.headers.get(REQUEST_ID_HEADER)) as request_id:
            ip = client_ip(request)
            user_agent = request.headers.get("User-Agent", "")
            started = time.perf_counter()

            events.log_event(
                SecurityEventType.AUTH_ATTEMPT,
                method=request.method,
                endpoint=path,
                client_ip=ip,
                UserAgent=user_agent or "unknown",
            )

            api_key = request.headers.get(API_KEY_HEADER)
            if api_key:
                events.log_event(
                    SecurityEventType.API_KEY_ATTEMPT,
                    endpoint=path,
                    client_ip=ip,
                    Key=mask_api_key(api_key),
                )

            if is_suspicious_user_agent(user_agent):
                events.log_event(
                    SecurityEventType.SUSPICIOUS_USER_AGENT,
                    endpoint=path,
                    client_ip=ip,
                    UserAgent=user_agent,
                )

            try:
                response = await call_next(request)
            except Exception as e:
                events.log_event(
                    SecurityEventType.AUTH_ERROR,
                    method=request.method,
                    endpoint=path,
                    client_ip=ip,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    reason=type(e).__name__,
                )
                raise

            event_type = outcome_event_type(response.status_code)
            if event_type is not None:
                events.log_event(
                    event_type,
                    method=request.method,
                    endpoint=path,
                    client_ip=ip,
                    status=response.status_code,
                    duration_ms=(time.perf_counter() - started) * 1000,
                )

            response.headers[REQUEST_ID_HEADER] = request_id
            return response


DEFAULT_SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add browser security headers to every response.

    Headers a handler already set are left alone.
    """

    def __init__(self, app, headers: dict[str, str] | None = None):
        super().__init__(app)
        self.headers = dict(DEFAULT_SECURITY_HEADERS if headers is None else headers)

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response

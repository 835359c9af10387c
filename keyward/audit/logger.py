"""Security event logging.

Authentication attempts and their outcomes are written to the
``keyward.security`` logger as one line per event, tagged with a short
per-request correlation id. Every field goes through the redactor, so
API keys appear only in masked form.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .redaction import get_redactor

SECURITY_LOGGER_NAME = "keyward.security"

logger = logging.getLogger(SECURITY_LOGGER_NAME)

_request_id: ContextVar[str | None] = ContextVar("keyward_request_id", default=None)

SUSPICIOUS_USER_AGENT_MARKERS = (
    "bot",
    "crawler",
    "spider",
    "scraper",
    "curl",
    "wget",
    "python",
    "postman",
    "insomnia",
    "httpie",
)


class SecurityEventType(str, Enum):
    """Types of security events."""

    AUTH_ATTEMPT = "AUTH_ATTEMPT"
    API_KEY_ATTEMPT = "API_KEY_ATTEMPT"
    AUTH_SUCCESS = "AUTH_SUCCESS"
    AUTH_FAILED = "AUTH_FAILED"
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"
    AUTH_CONFLICT = "AUTH_CONFLICT"
    AUTH_INVALID = "AUTH_INVALID"
    AUTH_ERROR = "AUTH_ERROR"
    SUSPICIOUS_USER_AGENT = "SUSPICIOUS_USER_AGENT"


_EVENT_LEVELS: dict[SecurityEventType, int] = {
    SecurityEventType.AUTH_FAILED: logging.WARNING,
    SecurityEventType.AUTH_FORBIDDEN: logging.WARNING,
    SecurityEventType.AUTH_INVALID: logging.WARNING,
    SecurityEventType.AUTH_ERROR: logging.ERROR,
    SecurityEventType.SUSPICIOUS_USER_AGENT: logging.WARNING,
}


class SecurityEvent(BaseModel):
    """A single security log entry.

    Attributes:
        event_type: Type of security event
        request_id: Per-request correlation id
        timestamp: ISO 8601 timestamp
        method: HTTP method
        endpoint: Request path
        client_ip: Client IP address
        status: Response status code, for outcome events
        duration_ms: Request duration in milliseconds
        reason: Human-readable explanation
        metadata: Additional context (redacted before writing)
    """

    event_type: SecurityEventType
    request_id: str | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    method: str | None = None
    endpoint: str | None = None
    client_ip: str | None = None
    status: int | None = None
    duration_ms: float | None = None
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def render(self) -> str:
        """Render as ``EVENT [request_id] - Key: value, ...``."""
        fields = {
            "Method": self.method,
            "Endpoint": self.endpoint,
            "IP": self.client_ip,
            "Status": self.status,
            "Duration": f"{self.duration_ms:.0f}ms" if self.duration_ms is not None else None,
            "Reason": self.reason,
        }
        fields.update(self.metadata)
        body = ", ".join(f"{k}: {v}" for k, v in fields.items() if v is not None)
        return f"{self.event_type.value} [{self.request_id or '-'}] - {body}"


def new_request_id() -> str:
    """Short correlation id for one request."""
    return uuid.uuid4().hex[:8]


def current_request_id() -> str | None:
    """Correlation id of the request being handled, if any."""
    return _request_id.get()


@contextmanager
def request_id_scope(request_id: str | None = None) -> Iterator[str]:
    """Bind a correlation id for the block and clear it afterwards."""
    rid = request_id or new_request_id()
    reset_token = _request_id.set(rid)
    try:
        yield rid
    finally:
        _request_id.reset(reset_token)


def is_suspicious_user_agent(user_agent: str | None) -> bool:
    """Flag user agents typical of scripted clients."""
    lowered = (user_agent or "").lower()
    return any(marker in lowered for marker in SUSPICIOUS_USER_AGENT_MARKERS)


def outcome_event_type(status: int) -> SecurityEventType | None:
    """Map a response status to the outcome event worth logging."""
    if status in (200, 201):
        return SecurityEventType.AUTH_SUCCESS
    if status == 401:
        return SecurityEventType.AUTH_FAILED
    if status == 403:
        return SecurityEventType.AUTH_FORBIDDEN
    if status == 409:
        return SecurityEventType.AUTH_CONFLICT
    if status == 400 or status == 422:
        return SecurityEventType.AUTH_INVALID
    if status >= 500:
        return SecurityEventType.AUTH_ERROR
    return None


class SecurityLogger:
    """Writes redacted security events to the ``keyward.security`` logger."""

    def __init__(self, enabled: bool = True, target: logging.Logger | None = None):
        self.enabled = enabled
        self._logger = target or logger
        self._redactor = get_redactor()

    def log(self, event: SecurityEvent) -> None:
        """Write one event."""
        if not self.enabled:
            return
        if event.request_id is None:
            event = event.model_copy(update={"request_id": current_request_id()})
        if event.metadata:
            event = event.model_copy(update={"metadata": self._redactor.redact_value(event.metadata)})
        level = _EVENT_LEVELS.get(event.event_type, logging.INFO)
        self._logger.log(level, self._redactor.redact_string(event.render()))

    def log_event(self, event_type: SecurityEventType, **fields: Any) -> None:
        """Build and write an event from keyword fields."""
        known = set(SecurityEvent.model_fields)
        metadata = {k: v for k, v in fields.items() if k not in known}
        event_fields = {k: v for k, v in fields.items() if k in known}
        event_fields.setdefault("metadata", {}).update(metadata)
        self.log(SecurityEvent(event_type=event_type, **event_fields))


# Exports
__all__ = [
    "SECURITY_LOGGER_NAME",
    "SecurityEvent",
    "SecurityEventType",
    "SecurityLogger",
    "current_request_id",
    "is_suspicious_user_agent",
    "new_request_id",
    "outcome_event_type",
    "request_id_scope",
]

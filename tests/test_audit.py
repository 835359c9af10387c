"""Tests for credential redaction and security event logging."""

import logging

import pytest

from keyward.audit import (
    ApiKeyRedactingFilter,
    Redactor,
    SecurityEvent,
    SecurityEventType,
    SecurityLogger,
    current_request_id,
    get_redactor,
    install_log_redaction,
    is_suspicious_user_agent,
    redact,
    redact_string,
    request_id_scope,
)
from keyward.audit.logger import outcome_event_type

API_KEY = "ak_0123456789abcdef0123456789abcdef"


class TestRedaction:
    """Tests for redacting credentials in text and data."""

    def test_redact_generated_key(self):
        """Test generated keys are masked to their first six characters."""
        result = redact_string(f"User logged in with key {API_KEY}")
        assert API_KEY not in result
        assert "ak_012" in result
        assert "*" * 10 in result

    def test_redact_header_value(self):
        """Test arbitrary header values are masked."""
        result = redact_string("X-API-KEY: admin-key-123456")
        assert "admin-key-123456" not in result
        assert "admin-" in result

    def test_redact_password(self):
        """Test password values are removed entirely."""
        result = redact_string('{"username": "alice", "password": "SecurePass123!"}')
        assert "SecurePass123!" not in result
        assert "[REDACTED]" in result
        assert "alice" in result

    def test_text_without_secrets_unchanged(self):
        text = "Registration attempt for username: alice"
        assert redact_string(text) == text

    def test_redact_dict(self):
        """Test sensitive keys in structured data are masked."""
        result = redact({"username": "alice", "password": "SecurePass123!", "api_key": "secret-value-1"})
        assert result["username"] == "alice"
        assert result["password"] == "[REDACTED]"
        assert result["api_key"] == "secret********"

    def test_redact_nested(self):
        result = redact({"outer": [{"token": "abcdefghij"}], "count": 3})
        assert result["outer"][0]["token"] == "abcdef****"
        assert result["count"] == 3

    def test_get_redactor_singleton(self):
        assert get_redactor() is get_redactor()
        assert isinstance(get_redactor(), Redactor)


class TestApiKeyRedactingFilter:
    """Tests for the logging filter."""

    def _record(self, msg, args=()):
        return logging.LogRecord("keyward.test", logging.INFO, __file__, 1, msg, args, None)

    def test_masks_formatted_message(self):
        """Test keys passed as format args are masked in the final message."""
        record = self._record("Authenticated with %s", (API_KEY,))

        assert ApiKeyRedactingFilter().filter(record) is True
        assert API_KEY not in record.getMessage()
        assert "ak_012" in record.getMessage()

    def test_clean_record_untouched(self):
        record = self._record("Loaded %d users", (3,))
        ApiKeyRedactingFilter().filter(record)
        assert record.args == (3,)
        assert record.getMessage() == "Loaded 3 users"

    def test_install_on_logger_handlers(self):
        """Test installing twice leaves one filter per handler."""
        logger = logging.getLogger("keyward.test.redaction")
        handler = logging.Handler()
        logger.addHandler(handler)
        try:
            install_log_redaction(logger)
            install_log_redaction(logger)
            filters = [f for f in handler.filters if isinstance(f, ApiKeyRedactingFilter)]
            assert len(filters) == 1
        finally:
            logger.removeHandler(handler)


class TestRequestId:
    """Tests for the per-request correlation id."""

    def test_scope_sets_and_clears(self):
        assert current_request_id() is None
        with request_id_scope() as rid:
            assert current_request_id() == rid
            assert len(rid) == 8
        assert current_request_id() is None

    def test_scope_uses_given_id(self):
        with request_id_scope("abc123") as rid:
            assert rid == "abc123"


class TestSecurityLogger:
    """Tests for security event output."""

    def test_render(self):
        event = SecurityEvent(
            event_type=SecurityEventType.AUTH_FAILED,
            request_id="r1",
            endpoint="/api/auth/me",
            status=401,
        )
        assert event.render() == "AUTH_FAILED [r1] - Endpoint: /api/auth/me, Status: 401"

    def test_log_event_masks_keys(self, caplog):
        """Test keys in event fields never reach the log in full."""
        with caplog.at_level(logging.INFO, logger="keyward.security"):
            SecurityLogger().log_event(SecurityEventType.API_KEY_ATTEMPT, endpoint="/api/x", Key=API_KEY)

        assert API_KEY not in caplog.text
        assert "API_KEY_ATTEMPT" in caplog.text

    def test_failure_logged_as_warning(self, caplog):
        with caplog.at_level(logging.INFO, logger="keyward.security"):
            SecurityLogger().log_event(SecurityEventType.AUTH_FAILED, endpoint="/api/x", status=401)
        assert caplog.records[-1].levelno == logging.WARNING

    def test_request_id_attached(self, caplog):
        with caplog.at_level(logging.INFO, logger="keyward.security"):
            with request_id_scope("req42"):
                SecurityLogger().log_event(SecurityEventType.AUTH_ATTEMPT, endpoint="/auth/login")
        assert "[req42]" in caplog.text

    def test_disabled_logger_writes_nothing(self, caplog):
        with caplog.at_level(logging.INFO, logger="keyward.security"):
            SecurityLogger(enabled=False).log_event(SecurityEventType.AUTH_ATTEMPT, endpoint="/auth/login")
        assert caplog.records == []

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (200, SecurityEventType.AUTH_SUCCESS),
            (201, SecurityEventType.AUTH_SUCCESS),
            (400, SecurityEventType.AUTH_INVALID),
            (401, SecurityEventType.AUTH_FAILED),
            (403, SecurityEventType.AUTH_FORBIDDEN),
            (409, SecurityEventType.AUTH_CONFLICT),
            (500, SecurityEventType.AUTH_ERROR),
            (404, None),
            (429, None),
        ],
    )
    def test_outcome_event_type(self, status, expected):
        assert outcome_event_type(status) == expected

    def test_suspicious_user_agent(self):
        assert is_suspicious_user_agent("curl/8.0")
        assert is_suspicious_user_agent("python-httpx/0.27")
        assert not is_suspicious_user_agent("Mozilla/5.0")
        assert not is_suspicious_user_agent(None)

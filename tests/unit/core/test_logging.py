"""
Tests for logging middleware.
Tests credential and PII masking, request events and formatter output.
"""

import json
import logging
from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.middleware.logging import (
    StructuredFormatter,
    StructuredLoggingMiddleware,
    get_client_ip,
    is_sensitive_field,
    mask_headers,
    mask_sensitive_data,
    setup_logging,
    should_log_request,
)


class TestSensitiveFieldDetection:
    """Test sensitive field name detection."""

    @pytest.mark.parametrize("field_name,expected", [
        ("password", True),
        ("Password", True),
        ("access_token", True),
        ("client_secret", True),
        ("Authorization", True),
        ("cookie", True),
        ("api-key", True),
        ("email", False),
        ("company_id", False),
        ("role", False),
    ])
    def test_is_sensitive_field(self, field_name, expected):
        assert is_sensitive_field(field_name) is expected


class TestMasking:
    """Test data masking."""

    def test_mask_nested(self):
        data = {
            "email": "jane@example.com",
            "password": "hunter2",
            "profile": {"phone": "+1 555 123 4567", "token": "abc"},
            "items": [{"secret": "s"}, "plain"],
        }

        masked = mask_sensitive_data(data)

        assert masked["email"] == "[EMAIL]"
        assert masked["password"] == "[REDACTED]"
        assert masked["profile"]["phone"] == "[PHONE]"
        assert masked["profile"]["token"] == "[REDACTED]"
        assert masked["items"] == [{"secret": "[REDACTED]"}, "plain"]

    def test_max_depth(self):
        data: dict = {}
        cursor = data
        for _ in range(15):
            cursor["next"] = {}
            cursor = cursor["next"]

        masked = mask_sensitive_data(data, max_depth=3)

        assert masked["next"]["next"]["next"]["next"] == "[MAX_DEPTH_EXCEEDED]"

    def test_mask_headers_keeps_scheme(self):
        masked = mask_headers({"authorization": "Bearer abc.def", "accept": "*/*"})

        assert masked["authorization"] == "Bearer [REDACTED]"
        assert masked["accept"] == "*/*"

    @pytest.mark.parametrize("path,expected", [
        ("/health", False),
        ("/ready", False),
        ("/v1/jobs", True),
    ])
    def test_should_log_request(self, path, expected):
        assert should_log_request(path) is expected

    def test_client_ip_is_masked(self):
        request = Mock()
        request.headers = {"x-forwarded-for": "203.0.113.42, 10.0.0.1"}

        assert get_client_ip(request) == "203.0.113.xxx"

    def test_client_ip_non_ipv4(self):
        request = Mock()
        request.headers = {}
        request.client.host = "::1"

        assert get_client_ip(request) == "unknown"


@pytest.fixture
def logged_app():
    app = FastAPI()
    app.add_middleware(StructuredLoggingMiddleware, log_request_body=True)

    @app.post("/echo")
    async def echo(payload: dict):
        return payload

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


class TestStructuredLoggingMiddleware:
    """Request events and request id propagation."""

    def test_request_events(self, logged_app, caplog):
        client = TestClient(logged_app)

        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            response = client.post(
                "/echo",
                json={"password": "hunter2", "name": "ok"},
                headers={"x-request-id": "req-1", "authorization": "Bearer abc"},
            )

        assert response.headers["x-request-id"] == "req-1"
        events = [
            json.loads(r.getMessage())
            for r in caplog.records
            if r.name == "core.middleware.logging"
        ]
        started = next(e for e in events if e["event"] == "request_started")
        completed = next(e for e in events if e["event"] == "request_completed")

        assert started["request_id"] == completed["request_id"] == "req-1"
        assert started["body"]["password"] == "[REDACTED]"
        assert started["headers"]["authorization"] == "Bearer [REDACTED]"
        assert completed["status_code"] == 200
        assert "hunter2" not in caplog.text

    def test_health_not_logged(self, logged_app, caplog):
        client = TestClient(logged_app)

        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            response = client.get("/health")

        assert "x-request-id" in response.headers
        assert not [r for r in caplog.records if r.name == "core.middleware.logging"]


class TestFormatter:
    """JSON formatter and logging setup."""

    def test_structured_formatter(self):
        record = logging.LogRecord(
            "api.services.jobs", logging.INFO, __file__, 1, "Auto-closed 2 job posting(s)", None, None
        )
        record.request_id = "req-9"

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "api.services.jobs"
        assert data["request_id"] == "req-9"

    def test_setup_logging_is_idempotent(self):
        setup_logging("INFO", json_logs=True)
        setup_logging("INFO", json_logs=True)

        structured = [
            h for h in logging.getLogger().handlers if getattr(h, "_structured", False)
        ]
        assert len(structured) == 1

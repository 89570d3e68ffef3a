from __future__ import annotations

import structlog

from authkit.core.logging import (
    add_service_context,
    bind_request_context,
    clear_request_context,
)


class TestServiceContext:
    def test_adds_service_and_environment(self):
        processor = add_service_context("authkit", "staging")
        event = processor(None, "info", {"event": "user_logged_in"})
        assert event == {"event": "user_logged_in", "service": "authkit", "environment": "staging"}

    def test_environment_optional(self):
        event = add_service_context("authkit")(None, "info", {"event": "x"})
        assert "environment" not in event

    def test_explicit_fields_win(self):
        event = add_service_context("authkit")(None, "info", {"event": "x", "service": "worker"})
        assert event["service"] == "worker"


class TestRequestContext:
    def teardown_method(self):
        clear_request_context()

    def test_bind_and_clear(self):
        bind_request_context("GET", "/api/v1/auth/me", "10.0.0.1")
        assert structlog.contextvars.get_contextvars() == {
            "method": "GET",
            "path": "/api/v1/auth/me",
            "client_ip": "10.0.0.1",
        }
        clear_request_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_bind_replaces_previous_request(self):
        bind_request_context("GET", "/a", None)
        bind_request_context("POST", "/b", None)
        assert structlog.contextvars.get_contextvars()["path"] == "/b"

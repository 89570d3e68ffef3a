from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from authkit.clients.identity_store import (
    InMemoryIdentityStore,
    PermissionMapAccessChecker,
    UserIdentity,
)
from authkit.clients.session_store import MemorySessionStore
from authkit.config import Settings
from authkit.main import create_app


def build_app(**overrides):
    settings = Settings(
        IDENTITY_COOKIE_SECURE=False,
        SESSION_COOKIE_SECURE=False,
        LOG_LEVEL="WARNING",
        **overrides,
    )
    identity_store = InMemoryIdentityStore(
        [
            UserIdentity(id="alice", auth_key="alice-auth-key", access_tokens={"alice-token": None}),
            UserIdentity(id="bob", auth_key="bob-auth-key", access_tokens={"bob-token": "bearer"}),
        ]
    )
    return create_app(
        settings,
        identity_store=identity_store,
        session_store=MemorySessionStore(),
        access_checker=PermissionMapAccessChecker({"alice": {"reports.view"}}),
    )


@pytest.mark.integration
class TestAuthFlow:
    def setup_method(self):
        self.app = build_app()
        self.ctx = TestClient(self.app)
        self.client = self.ctx.__enter__()

    def teardown_method(self):
        self.ctx.__exit__(None, None, None)

    def login(self, token: str = "alice-token", **extra):
        return self.client.post("/api/v1/auth/login", json={"token": token, **extra})

    def test_guest_status(self):
        resp = self.client.get("/api/v1/auth/status")
        assert resp.status_code == 200
        assert resp.json() == {"authenticated": False, "user_id": None}

    def test_login_status_logout(self):
        resp = self.login()
        assert resp.status_code == 200
        data = resp.json()
        assert data["user_id"] == "alice"
        assert data["remembered"] is False
        assert data["return_url"] == "/"

        resp = self.client.get("/api/v1/auth/status")
        assert resp.json() == {"authenticated": True, "user_id": "alice"}

        resp = self.client.post("/api/v1/auth/logout")
        assert resp.status_code == 200

        resp = self.client.get("/api/v1/auth/status")
        assert resp.json()["authenticated"] is False

    def test_session_id_changes_on_login(self):
        self.client.get("/api/v1/auth/me", headers={"accept": "text/html"}, follow_redirects=False)
        before = self.client.cookies.get("SESSID")
        assert before

        self.login()
        after = self.client.cookies.get("SESSID")
        assert after
        assert after != before

    def test_login_flash_shown_once(self):
        self.login()

        resp = self.client.get("/api/v1/auth/me")
        assert resp.status_code == 200
        assert resp.json() == {"user_id": "alice", "flashes": {"login": "Signed in as alice"}}

        resp = self.client.get("/api/v1/auth/me")
        assert resp.json()["flashes"] == {}

    def test_unknown_token_rejected(self):
        resp = self.login("nope")
        assert resp.status_code == 401
        assert resp.json()["error_code"] == "AUTH_FAILED"

    def test_token_type_mismatch_rejected(self):
        resp = self.login("bob-token", token_type="basic")
        assert resp.status_code == 401

    def test_guest_browser_redirected(self):
        resp = self.client.get(
            "/api/v1/auth/me",
            headers={"accept": "text/html"},
            follow_redirects=False,
        )
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"

    def test_return_url_after_redirect(self):
        self.client.get("/api/v1/auth/me", headers={"accept": "text/html"}, follow_redirects=False)
        resp = self.login()
        assert resp.json()["return_url"] == "/api/v1/auth/me"

    def test_return_url_keeps_query(self):
        self.client.get(
            "/api/v1/auth/me?tab=keys&page=2", headers={"accept": "text/html"}, follow_redirects=False
        )
        resp = self.login()
        assert resp.json()["return_url"] == "/api/v1/auth/me?tab=keys&page=2"

    def test_return_url_ignores_forged_host(self):
        self.client.get(
            "/api/v1/auth/me",
            headers={"accept": "text/html", "host": "evil.example"},
            follow_redirects=False,
        )
        resp = self.login()
        return_url = resp.json()["return_url"]
        assert return_url == "/api/v1/auth/me"
        assert "evil.example" not in return_url

    def test_guest_api_client_forbidden(self):
        resp = self.client.get("/api/v1/auth/me", headers={"accept": "application/json"})
        assert resp.status_code == 403
        data = resp.json()
        assert data["error_code"] == "LOGIN_REQUIRED"
        assert data["message"] == "Login Required"

    def test_permission_check(self):
        self.login()
        resp = self.client.get("/api/v1/auth/can/reports.view")
        assert resp.json() == {"permission": "reports.view", "allowed": True}
        resp = self.client.get("/api/v1/auth/can/reports.delete")
        assert resp.json()["allowed"] is False

    def test_store_outage_is_503(self):
        self.login()
        with patch.object(MemorySessionStore, "get", side_effect=ConnectionError("down")):
            resp = self.client.get("/api/v1/auth/status")
        assert resp.status_code == 503
        assert resp.json()["error_code"] == "SESSION_UNAVAILABLE"


@pytest.mark.integration
class TestRememberMeFlow:
    def setup_method(self):
        self.app = build_app(ENABLE_AUTO_LOGIN=True)
        self.ctx = TestClient(self.app)
        self.client = self.ctx.__enter__()

    def teardown_method(self):
        self.ctx.__exit__(None, None, None)

    def test_identity_cookie_restores_login(self):
        resp = self.client.post(
            "/api/v1/auth/login",
            json={"token": "bob-token", "token_type": "bearer", "remember_seconds": 86400},
        )
        assert resp.status_code == 200
        assert resp.json()["remembered"] is True
        assert "_identity" in resp.cookies

        # Browser restart: the session cookie is gone, the identity cookie is not.
        self.client.cookies.delete("SESSID")
        resp = self.client.get("/api/v1/auth/status")
        assert resp.json() == {"authenticated": True, "user_id": "bob"}
        assert "SESSID" in resp.cookies

    def test_logout_clears_identity_cookie(self):
        self.client.post(
            "/api/v1/auth/login",
            json={"token": "alice-token", "remember_seconds": 3600},
        )
        resp = self.client.post("/api/v1/auth/logout")
        assert resp.status_code == 200
        assert "_identity" not in self.client.cookies

        self.client.cookies.delete("SESSID")
        resp = self.client.get("/api/v1/auth/status")
        assert resp.json()["authenticated"] is False

    def test_tampered_cookie_ignored(self):
        self.client.cookies.set("_identity", '[1,"bob","forged-key",86400]')
        resp = self.client.get("/api/v1/auth/status")
        assert resp.json()["authenticated"] is False

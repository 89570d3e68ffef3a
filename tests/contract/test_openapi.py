from __future__ import annotations

import inspect

from fastapi.testclient import TestClient

from authkit.main import create_app


class TestOpenAPISchema:
    def setup_method(self):
        app = create_app()
        self.ctx = TestClient(app)
        self.client = self.ctx.__enter__()

    def teardown_method(self):
        self.ctx.__exit__(None, None, None)

    def test_openapi_available(self):
        resp = self.client.get("/openapi.json")
        assert resp.status_code == 200
        schema = resp.json()
        assert schema["info"]["title"] == "authkit identity and session API"
        assert schema["info"]["version"] == "1.0.0"

    def test_health_endpoint_in_schema(self):
        resp = self.client.get("/openapi.json")
        paths = resp.json()["paths"]
        assert "/api/v1/health" in paths

    def test_login_logout_in_schema(self):
        resp = self.client.get("/openapi.json")
        paths = resp.json()["paths"]
        assert "post" in paths["/api/v1/auth/login"]
        assert "post" in paths["/api/v1/auth/logout"]

    def test_identity_endpoints_in_schema(self):
        resp = self.client.get("/openapi.json")
        paths = resp.json()["paths"]
        assert "get" in paths["/api/v1/auth/status"]
        assert "get" in paths["/api/v1/auth/me"]
        assert "get" in paths["/api/v1/auth/can/{permission}"]

    def test_store_backed_endpoints_are_sync(self):
        # Store-backed endpoints run in the threadpool.
        routes = [r for r in self.client.app.routes if getattr(r, "path", "").startswith("/api/v1")]
        assert routes
        for route in routes:
            assert not inspect.iscoroutinefunction(route.endpoint), route.path

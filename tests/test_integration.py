"""
Integration tests for the FHIR demo Flask application.

Tests the complete gate wiring and protected routes.
"""

import importlib
import sys

import pytest
from flask import Flask

ADMIN = "integration-admin-token"


@pytest.fixture
def demo_app(monkeypatch: pytest.MonkeyPatch) -> Flask:
    """Create the demo app from environment configuration."""
    monkeypatch.setenv("AUTH_SERVER_CERTS_ADDRESS", "https://auth.invalid/jwks")
    monkeypatch.setenv("AUTH_SERVER_TOKEN_ADDRESS", "https://auth.invalid/token")
    monkeypatch.setenv("ADMIN_TOKEN", ADMIN)

    # Import here so the module-level config sees the environment
    for name in ("examples.fhir_demo.backend", "examples.fhir_demo.app_config"):
        sys.modules.pop(name, None)
    backend = importlib.import_module("examples.fhir_demo.backend")

    app = backend.create_app()
    app.config["TESTING"] = True
    return app


class TestDiscovery:
    """Discovery routes need no credentials."""

    def test_metadata_is_public(self, demo_app: Flask):
        r = demo_app.test_client().get("/metadata")
        assert r.status_code == 200
        assert b"oauth-uris" in r.data

    def test_well_known_is_public(self, demo_app: Flask):
        r = demo_app.test_client().get("/.well-known/smart-configuration")
        assert r.status_code == 200
        assert r.get_json()["token_endpoint"] == "https://auth.invalid/token"


class TestProtectedRoutes:
    def test_no_token_returns_operation_outcome(self, demo_app: Flask):
        r = demo_app.test_client().get("/Patient/1")
        assert r.status_code == 401
        body = r.get_json()
        assert body["resourceType"] == "OperationOutcome"
        assert body["issue"][0]["diagnostics"] == "Missing token"

    def test_malformed_token_rejected_without_network(self, demo_app: Flask):
        r = demo_app.test_client().get("/Patient/1", headers={"Authorization": "Bearer abc"})
        assert r.status_code == 401

    def test_admin_token_can_write_then_read(self, demo_app: Flask):
        client = demo_app.test_client()
        headers = {"Authorization": f"Bearer {ADMIN}"}

        r = client.put("/Patient/p1", headers=headers)
        assert r.status_code == 200

        r = client.get("/Patient/p1", headers=headers)
        assert r.status_code == 200
        assert r.get_json() == {"resourceType": "Patient", "id": "p1"}

    def test_whoami_reports_verdict(self, demo_app: Flask):
        r = demo_app.test_client().get(
            "/whoami", headers={"Authorization": f"Bearer {ADMIN}"}
        )
        assert r.get_json() == {"verdict": "allow-all"}

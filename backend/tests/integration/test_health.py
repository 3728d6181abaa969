"""Integration tests for the health endpoint and request ID propagation"""

import pytest
from fastapi.testclient import TestClient


pytestmark = pytest.mark.integration


def test_health_reports_database(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-abc-123"})
    assert response.headers["X-Request-ID"] == "req-abc-123"


def test_request_id_is_generated(client: TestClient):
    assert client.get("/health").headers.get("X-Request-ID")


def test_unknown_route_uses_error_envelope(client: TestClient):
    response = client.get("/api/v1/nothing-here")

    assert response.status_code == 404
    assert response.json()["success"] is False

"""Tests for health endpoints and error handling"""
from fastapi.testclient import TestClient

from user_service.errors import EmailDeliveryError


def test_health(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_liveness(client: TestClient):
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


def test_readiness(client: TestClient):
    response = client.get("/health/ready")
    assert response.status_code == 200

    checks = response.json()["checks"]
    assert checks["database"] is True
    assert checks["cache"] is True


def test_readiness_cache_down(client: TestClient, cache, monkeypatch):
    def broken_ping():
        raise ConnectionError("cache unreachable")

    monkeypatch.setattr(cache, "ping", broken_ping)
    response = client.get("/health/ready")
    assert response.status_code == 503
    assert response.json()["checks"]["cache"] is False


def test_unknown_route(client: TestClient):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_mail_failure_is_generic_500(client: TestClient, registration_data: dict, mailer):
    """Test that a relay failure surfaces as a 500 without leaking details"""

    def failing_send(to_email, subject, html_body, text_body):
        raise EmailDeliveryError("relay said 554 at smtp.internal")

    mailer._send_email = failing_send

    response = client.post("/api/auth/register", json=registration_data)
    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "An unexpected error occurred. Please try again later.",
    }

"""Tests for probes, the root banner and unknown routes."""

from fastapi.testclient import TestClient

from relay.api.application import create_app
from relay.config import RelaySettings
from relay.services import build_services


class TestProbes:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["service"] == "Push Relay"
        assert "uptime" in body

    def test_ready(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["checks"] == {"store": True, "cloud_push": True, "web_push": True}

    def test_live(self, client):
        assert client.get("/health/live").json()["status"] == "alive"

    def test_probes_need_no_key(self, client):
        assert client.get("/health", headers={"Authorization": "Bearer nope"}).status_code == 200


class TestBanner:
    def test_lists_endpoints_outside_production(self, client):
        body = client.get("/").json()
        assert body["status"] == "active"
        assert body["endpoints"]["send"] == "POST /api/v1/notifications/send"

    def test_hidden_in_production(self, cloud_push, web_push):
        settings = RelaySettings(environment="production", rate_limit_enabled=False)
        client = TestClient(create_app(build_services(settings, cloud_push=cloud_push, web_push=web_push)))
        assert client.get("/").status_code == 404


def test_unknown_route_body(client):
    response = client.get("/api/v1/nowhere")
    assert response.status_code == 404
    assert response.json() == {
        "error": "Not Found",
        "message": "The requested endpoint does not exist",
        "code": "not_found",
    }

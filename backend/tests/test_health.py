from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from badminton_alphabet.main import create_app

from conftest import make_settings


def test_health_reports_configuration(client) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "configured": True, "identity_provider": True}


def test_database_health_endpoint_success(client) -> None:
    response = client.get("/api/health/database")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["dialect"] == "sqlite"
    assert payload["checkouts"] >= 1
    assert isinstance(payload["pool_status"], str)


def test_database_health_endpoint_failure(client, seeded_database, monkeypatch) -> None:
    def refuse() -> None:
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(seeded_database, "ping", refuse)
    response = client.get("/api/health/database")

    assert response.status_code == 503
    assert response.json()["status"] == "unavailable"


def test_unconfigured_database_degrades_to_errors() -> None:
    app = create_app(make_settings())
    with TestClient(app) as client:
        health = client.get("/api/health")
        assert health.status_code == 200
        assert health.json()["configured"] is False
        assert health.json()["identity_provider"] is False

        assert client.get("/api/health/database").status_code == 503

        stages = client.get("/api/stages")
        assert stages.status_code == 500
        assert stages.json() == {"error": "database not configured"}

        sync = client.post("/api/auth/sync", json={"email": "coach@club.com", "role": "coach"})
        assert sync.status_code == 500
        assert sync.json() == {"error": "database not configured"}


def test_auth_url_requires_identity_url() -> None:
    with TestClient(create_app(make_settings())) as client:
        response = client.get("/api/auth/url", params={"provider": "google"})
    assert response.status_code == 500


def test_auth_url_points_at_provider_authorize_endpoint() -> None:
    settings = make_settings(identity_url="https://auth.example.com/", app_url="https://app.example.com")
    with TestClient(create_app(settings)) as client:
        response = client.get("/api/auth/url", params={"provider": "google"})

    assert response.status_code == 200
    assert response.json() == {
        "url": "https://auth.example.com/auth/v1/authorize?provider=google&redirect_to=https%3A%2F%2Fapp.example.com%2F"
    }


def test_oauth_callback_page_notifies_opener(client) -> None:
    for path in ("/auth/callback", "/auth/callback/"):
        response = client.get(path)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "OAUTH_AUTH_SUCCESS" in response.text
        assert "window.close()" in response.text

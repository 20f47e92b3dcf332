# backend/tests/test_main.py
#
# Tests for the app-level wiring: health check, error envelope, and the
# catch-all handler.

from fastapi.testclient import TestClient

from backend.app import main
from backend.app.main import create_app
from conftest import TOKENS, FakeVerifier, auth


def test_health_check(client):
    """
    Tests the /health endpoint to ensure the server is running. It needs no
    credentials.
    """
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["message"] == "Clinic Management System API is running"
    assert body["timestamp"]


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "Route not found",
        "message": "Cannot GET /api/nothing-here",
    }


def test_invalid_body_is_a_bad_request(client, receptionist):
    # items must be a list
    response = client.post("/api/bills", headers=receptionist, json={"patientId": "p1", "items": "lots"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Validation Error"
    assert body["details"]


def test_unexpected_error_becomes_500_without_detail(seeded_store, mocker):
    app = create_app(store=seeded_store, verifier=FakeVerifier(TOKENS))
    mocker.patch.object(seeded_store.users, "get", side_effect=RuntimeError("table is gone"))
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/patients", headers=auth("doctor-token"))

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Internal Server Error"
    assert "detail" not in body


def test_unexpected_error_includes_detail_in_development(seeded_store, mocker):
    mocker.patch.object(main, "APP_ENV", "development")
    app = create_app(store=seeded_store, verifier=FakeVerifier(TOKENS))
    mocker.patch.object(seeded_store.users, "get", side_effect=RuntimeError("table is gone"))
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/patients", headers=auth("doctor-token"))

    assert response.status_code == 500
    assert "table is gone" in response.json()["detail"]


def test_route_failure_reports_route_message(client, doctor, seeded_store, mocker):
    mocker.patch.object(seeded_store.patients, "all", side_effect=RuntimeError("throttled"))

    response = client.get("/api/patients", headers=doctor)

    assert response.status_code == 500
    assert response.json()["message"] == "Failed to fetch patients"

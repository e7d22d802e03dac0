"""End-to-end tests for the FastAPI routes with a stubbed upstream."""
import pytest
import requests
from fastapi.testclient import TestClient

from age_detector.backend.main import app, get_forwarder
from conftest import FakeResponse, make_image_bytes

ORIGIN = {"Origin": "http://localhost:3000"}


@pytest.fixture
def client_for(make_forwarder):
    """Build a TestClient whose forwarder talks to a fake upstream."""

    def factory(response=None, error=None):
        forwarder, session = make_forwarder(response=response, error=error)
        app.dependency_overrides[get_forwarder] = lambda: forwarder
        return TestClient(app), session

    yield factory
    app.dependency_overrides.clear()


def image_files(content_type="image/jpeg", data=None):
    return {"image": ("face.jpg", data if data is not None else make_image_bytes(), content_type)}


def test_missing_origin_is_forbidden(client_for):
    client, session = client_for()

    response = client.post("/api/detect-age", files=image_files())

    assert response.status_code == 403
    assert response.json()["error"] == "Unauthorized"
    assert session.calls == []


def test_unknown_origin_is_forbidden(client_for):
    client, session = client_for()

    response = client.post("/api/detect-age", files=image_files(), headers={"Origin": "https://evil.example"})

    assert response.status_code == 403
    assert session.calls == []


def test_info_endpoint_is_guarded_and_lists_formats(client_for):
    client, _ = client_for()

    assert client.get("/api/detect-age").status_code == 403

    response = client.get("/api/detect-age", headers=ORIGIN)
    assert response.status_code == 200
    body = response.json()
    assert body["methods"] == ["POST"]
    assert body["maxFileSize"] == "10MB"
    assert "image/webp" in body["supportedFormats"]


def test_health_and_root_are_public(client_for):
    client, _ = client_for()

    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").json()["status"] == "running"


def test_successful_detection(client_for):
    client, session = client_for(FakeResponse(200, {"result": {"age": 30, "confidence": 0.91}}))

    response = client.post("/api/detect-age", files=image_files(), headers=ORIGIN)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["result"]["age"] == 30
    assert body["result"]["age_min"] == 27
    assert body["result"]["age_max"] == 33
    assert body["result"]["age_range"] == "27-33"
    assert len(session.calls) == 1


def test_missing_file_is_bad_request(client_for):
    client, session = client_for()

    response = client.post("/api/detect-age", data={"other": "x"}, headers=ORIGIN)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "No image file provided", "details": None}
    assert session.calls == []


def test_text_image_field_is_bad_request(client_for):
    client, session = client_for()

    response = client.post("/api/detect-age", data={"image": "notafile"}, headers=ORIGIN)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "No image file provided", "details": None}
    assert session.calls == []


def test_invalid_type_is_bad_request(client_for):
    client, session = client_for()

    response = client.post("/api/detect-age", files=image_files("image/gif"), headers=ORIGIN)

    assert response.status_code == 400
    assert "Invalid file type" in response.json()["error"]
    assert session.calls == []


@pytest.mark.parametrize("error,status", [
    (requests.ReadTimeout("slow"), 408),
    (requests.ConnectionError("refused"), 503),
])
def test_transport_failures(client_for, error, status):
    client, _ = client_for(error=error)

    response = client.post("/api/detect-age", files=image_files(), headers=ORIGIN)

    assert response.status_code == status
    assert response.json()["success"] is False


def test_upstream_error_does_not_leak_body(client_for):
    client, _ = client_for(FakeResponse(500, text="stack trace with /srv/model.py"))

    response = client.post("/api/detect-age", files=image_files(), headers=ORIGIN)

    assert response.status_code == 500
    assert "model.py" not in response.text
    assert response.json()["details"] == "Internal server error"


def test_malformed_upstream_is_bad_gateway(client_for):
    client, _ = client_for(FakeResponse(200, {"unexpected": True}))

    response = client.post("/api/detect-age", files=image_files(), headers=ORIGIN)

    assert response.status_code == 502
    assert response.json()["error"] == "Invalid response from AI service"


@pytest.mark.parametrize("payload", [
    {"age": float("nan"), "confidence": 0.9},
    {"age": 30, "confidence": 0.9, "timestamp": 1e20},
])
def test_unusable_numbers_are_bad_gateway(client_for, payload):
    client, _ = client_for(FakeResponse(200, payload))

    response = client.post("/api/detect-age", files=image_files(), headers=ORIGIN)

    assert response.status_code == 502
    assert response.json()["error"] == "Invalid response from AI service"


def test_unclassified_failure_is_internal_error(client_for):
    client, session = client_for()
    session.error = RuntimeError("boom")

    response = client.post("/api/detect-age", files=image_files(), headers=ORIGIN)

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"

"""Tests for upload validation and upstream forwarding."""
import pytest
import requests

from age_detector.backend.errors import (
    MalformedResponseError,
    ServiceUnavailableError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
)
from age_detector.backend.forwarder import UploadRequest
from age_detector.config.settings import MAX_FILE_SIZE
from conftest import FakeResponse, make_image_bytes


@pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", "text/plain", ""])
def test_rejects_disallowed_type_without_network_call(make_forwarder, content_type):
    forwarder, session = make_forwarder()
    upload = UploadRequest(filename="x", content_type=content_type, data=make_image_bytes())

    with pytest.raises(ValidationError):
        forwarder.submit(upload)
    assert session.calls == []


def test_rejects_oversized_upload(make_forwarder):
    forwarder, session = make_forwarder()
    upload = UploadRequest(filename="big.jpg", content_type="image/jpeg", data=b"\xff" * (MAX_FILE_SIZE + 1))

    with pytest.raises(ValidationError) as excinfo:
        forwarder.submit(upload)
    assert "10MB" in excinfo.value.message
    assert session.calls == []


def test_rejects_empty_and_missing_upload(make_forwarder):
    forwarder, session = make_forwarder()

    with pytest.raises(ValidationError):
        forwarder.submit(None)
    with pytest.raises(ValidationError):
        forwarder.submit(UploadRequest(filename="e.jpg", content_type="image/jpeg", data=b""))
    assert session.calls == []


def test_rejects_undecodable_bytes(make_forwarder):
    forwarder, session = make_forwarder()
    upload = UploadRequest(filename="fake.png", content_type="image/png", data=b"definitely not a png")

    with pytest.raises(ValidationError):
        forwarder.submit(upload)
    assert session.calls == []


def test_accepts_every_allowed_type(make_forwarder):
    forwarder, _ = make_forwarder()
    for content_type, fmt in [("image/jpeg", "JPEG"), ("image/jpg", "JPEG"), ("image/png", "PNG"), ("image/webp", "WEBP")]:
        forwarder.validate(UploadRequest(filename="a", content_type=content_type, data=make_image_bytes(fmt=fmt)))


def test_forwards_multipart_image_field_with_timeout(make_forwarder, jpeg_upload, forwarder_config):
    forwarder, session = make_forwarder()

    forwarder.submit(jpeg_upload)

    assert len(session.calls) == 1
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == forwarder_config.endpoint_url
    assert kwargs["timeout"] == 30
    filename, data, content_type = kwargs["files"]["image"]
    assert (filename, data, content_type) == ("face.jpg", jpeg_upload.data, "image/jpeg")


def test_success_returns_normalized_prediction(make_forwarder, jpeg_upload):
    forwarder, _ = make_forwarder(FakeResponse(200, {"age": 30, "confidence": 0.91, "age_range": "10-90"}))

    prediction = forwarder.submit(jpeg_upload)

    assert prediction.age == 30
    assert prediction.age_min == 27
    assert prediction.age_max == 33
    assert prediction.age_range == "27-33"
    assert prediction.confidence == pytest.approx(0.91)


def test_timeout_maps_to_timeout_error(make_forwarder, jpeg_upload):
    forwarder, session = make_forwarder(error=requests.ReadTimeout("read timed out"))

    with pytest.raises(UpstreamTimeoutError) as excinfo:
        forwarder.submit(jpeg_upload)
    assert not isinstance(excinfo.value, ServiceUnavailableError)
    assert excinfo.value.status_code == 408
    assert len(session.calls) == 1


def test_connect_timeout_is_still_a_timeout(make_forwarder, jpeg_upload):
    forwarder, _ = make_forwarder(error=requests.ConnectTimeout("connect timed out"))

    with pytest.raises(UpstreamTimeoutError):
        forwarder.submit(jpeg_upload)


def test_connection_refused_maps_to_service_unavailable(make_forwarder, jpeg_upload, connection_refused):
    forwarder, session = make_forwarder(error=connection_refused)

    with pytest.raises(ServiceUnavailableError) as excinfo:
        forwarder.submit(jpeg_upload)
    assert excinfo.value.status_code == 503
    assert len(session.calls) == 1


def test_upstream_500_maps_to_upstream_error(make_forwarder, jpeg_upload):
    forwarder, session = make_forwarder(FakeResponse(500, text="Traceback: secret internals"))

    with pytest.raises(UpstreamError) as excinfo:
        forwarder.submit(jpeg_upload)
    assert excinfo.value.upstream_status == 500
    assert excinfo.value.status_code == 500
    assert "secret" not in excinfo.value.message
    assert len(session.calls) == 1


def test_upstream_404_keeps_status(make_forwarder, jpeg_upload):
    forwarder, _ = make_forwarder(FakeResponse(404, text="not found"))

    with pytest.raises(UpstreamError) as excinfo:
        forwarder.submit(jpeg_upload)
    assert excinfo.value.status_code == 404
    assert excinfo.value.details == "API unavailable"


def test_non_json_body_is_malformed(make_forwarder, jpeg_upload):
    forwarder, _ = make_forwarder(FakeResponse(200, payload=None, text="<html>oops</html>"))

    with pytest.raises(MalformedResponseError):
        forwarder.submit(jpeg_upload)


def test_body_without_prediction_is_malformed(make_forwarder, jpeg_upload):
    forwarder, _ = make_forwarder(FakeResponse(200, {"status": "ok"}))

    with pytest.raises(MalformedResponseError) as excinfo:
        forwarder.submit(jpeg_upload)
    assert excinfo.value.status_code == 502

"""Shared fixtures: synthetic images and a stub requests session."""
import io
import json

import numpy as np
import pytest
import requests
from PIL import Image

from age_detector.backend.forwarder import AgeForwarder, UploadRequest
from age_detector.config.settings import ForwarderConfig


def make_image_bytes(color=(120, 120, 120), size=(64, 48), fmt="JPEG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def decode_pixels(data: bytes) -> np.ndarray:
    return np.array(Image.open(io.BytesIO(data)).convert("RGB"))


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Records outbound calls and replays a canned response or exception."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(200, {"age": 30, "confidence": 0.91})
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append(("POST", url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def jpeg_upload():
    return UploadRequest(filename="face.jpg", content_type="image/jpeg", data=make_image_bytes())


@pytest.fixture
def forwarder_config():
    return ForwarderConfig(endpoint_url="http://upstream.test/api/detect-age", timeout_seconds=30)


@pytest.fixture
def make_forwarder(forwarder_config):
    def factory(response=None, error=None):
        session = FakeSession(response=response, error=error)
        return AgeForwarder(config=forwarder_config, session=session), session
    return factory


@pytest.fixture
def connection_refused():
    return requests.ConnectionError("Connection refused")

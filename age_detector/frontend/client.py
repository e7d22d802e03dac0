"""HTTP client the Streamlit frontend uses to reach the detection backend."""
import logging
from typing import Optional

import requests
import pydantic

from age_detector.backend.forwarder import UploadRequest
from age_detector.backend.schemas import DetectionResponse, NormalizedPrediction
from age_detector.config.settings import (
    FRONTEND_API_URL,
    FRONTEND_ORIGIN,
    FRONTEND_TIMEOUT_SECONDS,
    UPLOAD_FIELD_NAME,
)

logger = logging.getLogger(__name__)

DETECT_AGE_PATH = "/api/detect-age"
HEALTH_PATH = "/health"
HEALTH_TIMEOUT_SECONDS = 5

TIMEOUT_MESSAGE = "Request timeout. Please try again."
NETWORK_MESSAGE = "Network error. Please check your connection and ensure the AI server is running."
UNEXPECTED_MESSAGE = "An unexpected error occurred."


class DetectionFailed(Exception):
    """A detection attempt failed; ``message`` is safe to show to the user."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DetectionClient:
    """Posts images to ``/api/detect-age`` and parses the canonical result."""

    def __init__(
        self,
        api_url: str = FRONTEND_API_URL,
        origin: str = FRONTEND_ORIGIN,
        timeout: float = FRONTEND_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.origin = origin
        self.timeout = timeout
        self.session = session or requests.Session()

    def detect_age(self, upload: UploadRequest) -> NormalizedPrediction:
        """Send ``upload`` to the backend and return its prediction.

        Raises:
            DetectionFailed: on timeout, network failure or any error response
        """
        url = f"{self.api_url}{DETECT_AGE_PATH}"
        files = {UPLOAD_FIELD_NAME: (upload.filename, upload.data, upload.content_type)}
        logger.info(f"Requesting age detection: {upload.filename} ({upload.size} bytes) -> {url}")

        try:
            response = self.session.post(
                url,
                files=files,
                headers={"Origin": self.origin},
                timeout=self.timeout,
            )
        except requests.Timeout:
            raise DetectionFailed(TIMEOUT_MESSAGE)
        except requests.ConnectionError as e:
            logger.error(f"Backend unreachable: {e}")
            raise DetectionFailed(NETWORK_MESSAGE)
        except requests.RequestException as e:
            logger.error(f"Request to backend failed: {e}")
            raise DetectionFailed(UNEXPECTED_MESSAGE)

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code != 200:
            logger.error(f"Backend returned HTTP {response.status_code}: {body!r}")
            message = None
            if isinstance(body, dict):
                # The origin guard puts its explanation in "message"
                message = body.get("message") if body.get("error") == "Unauthorized" else body.get("error")
            if not isinstance(message, str) or not message:
                message = f"HTTP error! status: {response.status_code}"
            raise DetectionFailed(message)

        try:
            return DetectionResponse.model_validate(body).result
        except pydantic.ValidationError as e:
            logger.error(f"Unexpected response from backend: {e}")
            raise DetectionFailed(UNEXPECTED_MESSAGE)

    def check_health(self) -> bool:
        """Return True when the backend answers its health check."""
        try:
            response = self.session.get(f"{self.api_url}{HEALTH_PATH}", timeout=HEALTH_TIMEOUT_SECONDS)
            return response.status_code == 200
        except requests.RequestException:
            return False

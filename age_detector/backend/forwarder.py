"""Upload validation and forwarding to the external age prediction service."""
import io
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from PIL import Image, UnidentifiedImageError

from age_detector.backend.errors import (
    MalformedResponseError,
    ServiceUnavailableError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
)
from age_detector.backend.resolver import normalize_prediction
from age_detector.backend.schemas import NormalizedPrediction
from age_detector.config.settings import ForwarderConfig, load_forwarder_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadRequest:
    """A single image upload, alive only for the duration of one request."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class AgeForwarder:
    """Validates uploads and relays them to the prediction service.

    Every call makes at most one outbound request. Failures are mapped onto
    the typed errors in ``age_detector.backend.errors`` and never retried.
    """

    def __init__(self, config: Optional[ForwarderConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or load_forwarder_config()
        self.session = session or requests.Session()

    def validate(self, upload: Optional[UploadRequest]):
        """Reject uploads that must not reach the prediction service."""
        if upload is None or not upload.data:
            raise ValidationError("No image file provided")

        if upload.content_type not in self.config.allowed_types:
            raise ValidationError("Invalid file type. Please upload JPG, PNG, or WebP images only.")

        if upload.size > self.config.max_file_size:
            max_mb = self.config.max_file_size // (1024 * 1024)
            raise ValidationError(f"File too large. Maximum size is {max_mb}MB.")

        try:
            with Image.open(io.BytesIO(upload.data)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.info(f"Rejected undecodable upload {upload.filename!r}: {e}")
            raise ValidationError("The uploaded file is not a readable image.")

    def submit(self, upload: Optional[UploadRequest]) -> NormalizedPrediction:
        """Validate ``upload``, forward it and return the canonical prediction."""
        self.validate(upload)

        files = {self.config.field_name: (upload.filename, upload.data, upload.content_type)}
        logger.info(
            f"Forwarding {upload.filename!r} ({upload.content_type}, {upload.size} bytes) "
            f"to {self.config.endpoint_url}"
        )

        try:
            response = self.session.post(
                self.config.endpoint_url,
                files=files,
                timeout=self.config.timeout_seconds,
            )
        except requests.Timeout:
            # Checked first: ConnectTimeout is also a ConnectionError
            logger.error(f"Prediction service timed out after {self.config.timeout_seconds}s")
            raise UpstreamTimeoutError()
        except requests.ConnectionError as e:
            logger.error(f"Prediction service unreachable: {e}")
            raise ServiceUnavailableError()

        if not 200 <= response.status_code < 300:
            logger.error(f"Python API Error: {response.status_code} {response.text[:1000]}")
            raise UpstreamError(response.status_code)

        try:
            document = response.json()
        except ValueError:
            logger.error(f"Invalid response from Python API: {response.text[:1000]}")
            raise MalformedResponseError(details="Response body is not JSON")

        try:
            prediction = normalize_prediction(document)
        except MalformedResponseError as e:
            logger.error(f"Invalid response from Python API ({e.details}): {document!r}")
            raise

        logger.info(
            f"Prediction for {upload.filename!r}: age={prediction.age} "
            f"confidence={prediction.confidence:.3f} faces={prediction.faces_count}"
        )
        return prediction

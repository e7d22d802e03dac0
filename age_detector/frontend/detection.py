"""Upload checks and the detect-age round trip, independent of the Streamlit page."""
import logging

from age_detector.backend.forwarder import UploadRequest
from age_detector.config.settings import ALLOWED_TYPES, MAX_FILE_SIZE
from age_detector.frontend.client import UNEXPECTED_MESSAGE, DetectionClient, DetectionFailed
from age_detector.frontend.state import DetectorSession, LoadingState
from age_detector.imaging.normalizer import normalize_or_original

logger = logging.getLogger(__name__)


def validate_upload(upload: UploadRequest):
    """Client-side checks mirroring the backend; returns an error message or None."""
    if upload.content_type not in ALLOWED_TYPES:
        return "Please select a valid image file (JPG, PNG, WebP)"
    if upload.size > MAX_FILE_SIZE:
        return "File size is too large. Please select an image under 10MB"
    return None


def run_detection(detector: DetectorSession, client: DetectionClient, upload: UploadRequest, mode: str):
    """Validate, normalize and submit an image, recording the outcome on ``detector``.

    Every attempt that reaches ``loading`` leaves it again, as success or error.
    """
    error = validate_upload(upload)
    if error:
        if detector.state is not LoadingState.IDLE:
            detector.reset()
        detector.fail(error)
        return

    detector.start(upload)
    try:
        normalized = normalize_or_original(upload, mode)
        result = client.detect_age(normalized)
    except DetectionFailed as e:
        detector.fail(e.message)
        return
    except Exception as e:
        logger.error(f"Detection failed for {upload.filename}: {e}", exc_info=True)
        detector.fail(UNEXPECTED_MESSAGE)
        return
    detector.succeed(result)
    logger.info(f"Detected age {result.age} ({result.age_range}) for {upload.filename}")

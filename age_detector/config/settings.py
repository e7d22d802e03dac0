"""Centralized configuration settings for the age detection system."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Upstream prediction service
PYTHON_API_URL = os.getenv("PYTHON_API_URL", "http://localhost:6969/api/detect-age")
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))

# Upload constraints
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
ALLOWED_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
UPLOAD_FIELD_NAME = "image"

# Origins allowed to call /api/*
DEFAULT_ALLOWED_ORIGINS = (
    "https://age-detection.kdx.web.id",
    "http://localhost:3000",
    "http://localhost:8501",
)
ALLOWED_ORIGINS = tuple(
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", ",".join(DEFAULT_ALLOWED_ORIGINS)).split(",")
    if origin.strip()
)

# Canonical result contract
AGE_RANGE_MARGIN = 3
FALLBACK_AGE = 25
FALLBACK_CONFIDENCE = 0.8
FALLBACK_FACES_COUNT = 1
MODEL_INPUT_SIZE = "224x224"

# Image normalizer
GENERAL_MAX_EDGE = 512
GENERAL_JPEG_QUALITY = 92
CAPTURE_SIZE = 480  # Square side for camera captures
CAPTURE_JPEG_QUALITY = 95

# FastAPI configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
API_VERSION = "1.0.0"

# Streamlit configuration
STREAMLIT_HOST = os.getenv("STREAMLIT_HOST", "0.0.0.0")
STREAMLIT_PORT = int(os.getenv("STREAMLIT_PORT", "8501"))
FRONTEND_API_URL = os.getenv("FRONTEND_API_URL", f"http://localhost:{API_PORT}")
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", f"http://localhost:{STREAMLIT_PORT}")
FRONTEND_TIMEOUT_SECONDS = float(os.getenv("FRONTEND_TIMEOUT_SECONDS", "35"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class ForwarderConfig:
    """Immutable settings handed to the forwarder at construction."""
    endpoint_url: str = PYTHON_API_URL
    timeout_seconds: float = UPSTREAM_TIMEOUT_SECONDS
    max_file_size: int = MAX_FILE_SIZE
    allowed_types: Tuple[str, ...] = ALLOWED_TYPES
    field_name: str = UPLOAD_FIELD_NAME


def load_forwarder_config() -> ForwarderConfig:
    """Build the forwarder configuration from the environment-derived settings."""
    return ForwarderConfig(
        endpoint_url=PYTHON_API_URL,
        timeout_seconds=UPSTREAM_TIMEOUT_SECONDS,
        max_file_size=MAX_FILE_SIZE,
        allowed_types=ALLOWED_TYPES,
        field_name=UPLOAD_FIELD_NAME,
    )

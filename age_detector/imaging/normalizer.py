"""Image normalization applied before an upload leaves the client.

Responsibilities:
- decode the image and apply EXIF orientation
- downscale to a bounded resolution (square crop for camera captures)
- measure mean luminance and pick a brightness/contrast tier
- apply the correction in a single pass over the pixel buffer
- re-encode as JPEG, falling back to the original bytes on any failure
"""
import io
import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Tuple

import numpy as np
from PIL import Image, ImageOps

from age_detector.backend.forwarder import UploadRequest
from age_detector.config.settings import (
    CAPTURE_JPEG_QUALITY,
    CAPTURE_SIZE,
    GENERAL_JPEG_QUALITY,
    GENERAL_MAX_EDGE,
)

logger = logging.getLogger(__name__)

GENERAL = "general"
CAPTURE = "capture"

DARK_THRESHOLD = 100
BRIGHT_THRESHOLD = 180


@dataclass(frozen=True)
class Adjustment:
    """Brightness/contrast correction chosen from the measured luminance."""
    tier: str
    brightness: float
    contrast: float


DARK = Adjustment(tier="dark", brightness=40.0, contrast=1.2)
BRIGHT = Adjustment(tier="bright", brightness=-20.0, contrast=1.1)
NORMAL = Adjustment(tier="normal", brightness=10.0, contrast=1.1)


def compute_target_size(width: int, height: int, max_edge: int = GENERAL_MAX_EDGE) -> Tuple[int, int]:
    """Scale the longer edge down to ``max_edge``, preserving aspect ratio.

    Images already within the cap keep their size.
    """
    longest = max(width, height)
    if longest <= max_edge:
        return width, height
    scale = max_edge / float(longest)
    return max(1, round(width * scale)), max(1, round(height * scale))


def center_square_box(width: int, height: int) -> Tuple[int, int, int, int]:
    """Box (left, upper, right, lower) of the centered square taken from the larger dimension."""
    side = min(width, height)
    left = (width - side) // 2
    top = (height - side) // 2
    return left, top, left + side, top + side


def mean_luminance(pixels: np.ndarray) -> float:
    """Average of R, G and B across every pixel."""
    return float(pixels[..., :3].mean())


def choose_adjustment(mean: float) -> Adjustment:
    if mean < DARK_THRESHOLD:
        return DARK
    if mean > BRIGHT_THRESHOLD:
        return BRIGHT
    return NORMAL


def apply_adjustment(pixels: np.ndarray, adjustment: Adjustment) -> np.ndarray:
    """Apply ``clamp((v - 128) * contrast + 128 + brightness)`` to every channel in place."""
    adjusted = (pixels.astype(np.float32) - 128.0) * adjustment.contrast + 128.0 + adjustment.brightness
    np.clip(adjusted, 0, 255, out=adjusted)
    pixels[...] = np.rint(adjusted).astype(np.uint8)
    return pixels


def load_image(data: bytes) -> Image.Image:
    """Decode image bytes into an upright RGB image."""
    image = Image.open(io.BytesIO(data))
    image = ImageOps.exif_transpose(image)
    return image.convert("RGB")


def resize_image(image: Image.Image, mode: str = GENERAL) -> Image.Image:
    """Downscale for the general path, or square-crop and resize for captures."""
    if mode == CAPTURE:
        box = center_square_box(*image.size)
        return image.resize((CAPTURE_SIZE, CAPTURE_SIZE), Image.Resampling.LANCZOS, box=box)
    if mode != GENERAL:
        raise ValueError(f"Invalid mode: {mode}. Must be '{GENERAL}' or '{CAPTURE}'")
    target = compute_target_size(*image.size)
    if target == image.size:
        return image
    return image.resize(target, Image.Resampling.LANCZOS)


def encode_jpeg(pixels: np.ndarray, quality: int) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def normalize_image(data: bytes, mode: str = GENERAL) -> bytes:
    """Run the full normalization pipeline and return JPEG bytes.

    Args:
        data: Encoded source image
        mode: ``"general"`` for uploads, ``"capture"`` for camera snapshots

    Returns:
        Re-encoded JPEG bytes
    """
    image = resize_image(load_image(data), mode)
    pixels = np.array(image, dtype=np.uint8)

    mean = mean_luminance(pixels)
    adjustment = choose_adjustment(mean)
    apply_adjustment(pixels, adjustment)

    quality = CAPTURE_JPEG_QUALITY if mode == CAPTURE else GENERAL_JPEG_QUALITY
    logger.debug(
        f"Normalized {image.size[0]}x{image.size[1]} image: mean={mean:.1f} "
        f"tier={adjustment.tier} quality={quality}"
    )
    return encode_jpeg(pixels, quality)


def normalize_or_original(upload: UploadRequest, mode: str = GENERAL) -> UploadRequest:
    """Normalize ``upload``, or hand back the original if anything goes wrong."""
    try:
        data = normalize_image(upload.data, mode)
    except Exception as e:
        logger.warning(f"Image normalization failed for {upload.filename!r}, using original: {e}")
        return upload

    stem = PurePath(upload.filename).stem or "image"
    return UploadRequest(filename=f"{stem}.jpg", content_type="image/jpeg", data=data)

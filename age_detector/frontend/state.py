"""Detection lifecycle shared by the upload and camera flows."""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from age_detector.backend.forwarder import UploadRequest
from age_detector.backend.schemas import NormalizedPrediction

logger = logging.getLogger(__name__)


class LoadingState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class DetectorSession:
    """Per-user UI state: ``idle -> loading -> {success, error}``.

    ``error`` returns to ``idle`` through ``dismiss_error``; any settled state
    returns to ``idle`` through ``reset``, which also drops the image and result.
    """
    state: LoadingState = LoadingState.IDLE
    selected_image: Optional[UploadRequest] = None
    result: Optional[NormalizedPrediction] = None
    error: Optional[str] = None

    def _require(self, *allowed: LoadingState):
        if self.state not in allowed:
            names = ", ".join(s.value for s in allowed)
            raise ValueError(f"Invalid transition from '{self.state.value}'. Expected one of: {names}")

    def start(self, image: UploadRequest):
        """Begin a detection for ``image``, discarding any previous outcome."""
        self._require(LoadingState.IDLE, LoadingState.SUCCESS, LoadingState.ERROR)
        self.selected_image = image
        self.result = None
        self.error = None
        self.state = LoadingState.LOADING
        logger.debug(f"Detection started for {image.filename!r}")

    def succeed(self, result: NormalizedPrediction):
        self._require(LoadingState.LOADING)
        self.result = result
        self.state = LoadingState.SUCCESS

    def fail(self, message: str):
        """Record a failure; allowed from idle for local validation errors."""
        self._require(LoadingState.LOADING, LoadingState.IDLE)
        self.error = message
        self.state = LoadingState.ERROR
        logger.info(f"Detection failed: {message}")

    def dismiss_error(self):
        self._require(LoadingState.ERROR)
        self.error = None
        self.state = LoadingState.IDLE

    def reset(self):
        """Return to idle, clearing the selected image, the result and any error."""
        self._require(LoadingState.IDLE, LoadingState.SUCCESS, LoadingState.ERROR)
        self.selected_image = None
        self.result = None
        self.error = None
        self.state = LoadingState.IDLE

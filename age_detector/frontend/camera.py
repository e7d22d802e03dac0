"""Camera capture with a single exclusive media stream."""
import io
import logging
import threading
from typing import Callable, MutableMapping, Optional, Protocol

import av
import cv2
import numpy as np
from PIL import Image
from streamlit_webrtc import VideoProcessorBase

logger = logging.getLogger(__name__)

CAMERA_PLAYING_KEY = "camera_playing"


class MediaStream(Protocol):
    """A hardware stream that must be released when no longer used."""

    def stop(self) -> None:
        ...


class WebRtcStream:
    """Handle on the streamlit-webrtc player, driven through session state.

    The player renders with ``desired_playing_state`` read from
    ``state[CAMERA_PLAYING_KEY]``, so flipping the flag opens or releases
    the browser camera on the next rerun.
    """

    def __init__(self, state: MutableMapping):
        self.state = state
        self.state[CAMERA_PLAYING_KEY] = True

    def stop(self):
        self.state[CAMERA_PLAYING_KEY] = False


class FrameGrabber(VideoProcessorBase):
    """Video processor that keeps the most recent frame for snapshots."""

    def __init__(self):
        self._lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None

    def recv(self, frame: av.VideoFrame) -> av.VideoFrame:
        """Store each incoming frame as RGB and pass it through unchanged."""
        img = frame.to_ndarray(format="bgr24")
        with self._lock:
            self._frame = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        return frame

    def latest_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._frame is None else self._frame.copy()


def frame_to_png(frame: np.ndarray) -> bytes:
    """Encode an RGB frame losslessly; the normalizer does the lossy encode."""
    buffer = io.BytesIO()
    Image.fromarray(frame).save(buffer, format="PNG")
    return buffer.getvalue()


class CameraSession:
    """Owns at most one open camera stream at a time."""

    def __init__(self, open_stream: Callable[[], MediaStream]):
        self._open_stream = open_stream
        self.stream: Optional[MediaStream] = None

    @property
    def active(self) -> bool:
        return self.stream is not None

    def start(self) -> MediaStream:
        """Open a new stream, stopping any previous one first."""
        if self.stream is not None:
            logger.info("Stopping previous camera stream before starting a new one")
            self.stop()
        self.stream = self._open_stream()
        logger.info("Camera stream started")
        return self.stream

    def stop(self):
        """Release the current stream, if any."""
        if self.stream is None:
            return
        stream, self.stream = self.stream, None
        stream.stop()
        logger.info("Camera stream released")

    def capture(self, frame_source: Callable[[], Optional[np.ndarray]]) -> Optional[bytes]:
        """Grab the latest frame as PNG bytes and release the stream.

        Returns None when no frame has arrived yet.
        """
        try:
            frame = frame_source()
        finally:
            self.stop()
        if frame is None:
            logger.warning("No camera frame available to capture")
            return None
        return frame_to_png(frame)

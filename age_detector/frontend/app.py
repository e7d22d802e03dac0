"""Streamlit frontend for age detection from uploaded or captured photos."""
import logging
from datetime import datetime

import streamlit as st
from streamlit_webrtc import webrtc_streamer

from age_detector.backend.forwarder import UploadRequest
from age_detector.backend.schemas import NormalizedPrediction
from age_detector.config.settings import (
    AGE_RANGE_MARGIN,
    LOG_FORMAT,
    LOG_LEVEL,
)
from age_detector.frontend.camera import CAMERA_PLAYING_KEY, CameraSession, FrameGrabber, WebRtcStream
from age_detector.frontend.client import DetectionClient
from age_detector.frontend.detection import run_detection
from age_detector.frontend.state import DetectorSession, LoadingState
from age_detector.imaging.normalizer import CAPTURE, GENERAL

# Configure logging
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

# Page config
st.set_page_config(
    page_title="AI Age Detector",
    page_icon="🧑",
    layout="wide"
)

TIPS = [
    "Use a clear and sharp photo",
    "Make sure the face is clearly visible",
    "Avoid photos that are too dark",
    "Frontal photos give the best results",
]


@st.cache_resource
def get_client() -> DetectionClient:
    """Create the backend client once per server process."""
    return DetectionClient()


def analyze(detector: DetectorSession, upload: UploadRequest, mode: str):
    """Run one detection attempt behind a spinner."""
    with st.spinner("🔍 Analyzing your photo..."):
        run_detection(detector, get_client(), upload, mode)


def render_result(result: NormalizedPrediction):
    """Show the canonical prediction."""
    st.metric("Estimated Age", f"{result.age} years")
    st.write(f"**Age Range:** {result.age_range} years")
    st.write(f"**Confidence:** {result.confidence * 100:.1f}%")
    st.progress(result.confidence)

    if result.gender:
        icon = "♂️" if result.gender == "male" else "♀️"
        st.info(f"{icon} **Detected Gender:** {result.gender.capitalize()} (based on facial feature analysis)")

    st.success(result.message)

    with st.expander("⚙️ Technical Details"):
        try:
            analyzed_at = datetime.fromisoformat(result.timestamp.replace("Z", "+00:00")).strftime("%H:%M:%S")
        except ValueError:
            analyzed_at = result.timestamp
        st.write(f"**Analyzed at:** {analyzed_at}")
        st.write(f"**Method:** {result.method}")
        st.write(f"**Range margin:** ±{result.model_info.range_margin} years")
        st.write(f"**Input size:** {result.model_info.input_size}")
        st.write(f"**Faces detected:** {result.faces_count}")
        st.write(f"**Raw prediction:** {result.raw_prediction:.2f}")


def reset_all(detector: DetectorSession, camera: CameraSession):
    """Discard the image, result and error, and clear the uploader widget."""
    camera.stop()
    detector.reset()
    st.session_state.uploader_nonce += 1
    st.session_state.last_upload_key = None


def main():
    """Main Streamlit application."""
    st.title("🧑 AI Age Detector")
    st.caption(f"Upload or capture a photo to estimate age (±{AGE_RANGE_MARGIN} years).")
    st.markdown("---")

    # Initialize session state
    if "detector" not in st.session_state:
        st.session_state.detector = DetectorSession()
    if "camera" not in st.session_state:
        st.session_state.camera = CameraSession(lambda: WebRtcStream(st.session_state))
    if "uploader_nonce" not in st.session_state:
        st.session_state.uploader_nonce = 0
    if "last_upload_key" not in st.session_state:
        st.session_state.last_upload_key = None

    detector: DetectorSession = st.session_state.detector
    camera: CameraSession = st.session_state.camera

    # Sidebar
    with st.sidebar:
        st.header("Status")
        if get_client().check_health():
            st.success("✅ AI service reachable")
        else:
            st.error("❌ AI service unavailable")

        st.markdown("---")
        st.header("💡 Tips for Best Results")
        for tip in TIPS:
            st.markdown(f"- {tip}")

    col1, col2 = st.columns([1, 1])

    with col1:
        st.header("📤 Your Photo")

        uploaded = st.file_uploader(
            "Choose an image (JPG, PNG, WebP, max 10MB)",
            type=["jpg", "jpeg", "png", "webp"],
            key=f"uploader_{st.session_state.uploader_nonce}",
            disabled=camera.active,
        )
        if uploaded is not None:
            upload_key = (uploaded.name, uploaded.size)
            if upload_key != st.session_state.last_upload_key:
                st.session_state.last_upload_key = upload_key
                upload = UploadRequest(
                    filename=uploaded.name,
                    content_type=uploaded.type or "",
                    data=uploaded.getvalue(),
                )
                analyze(detector, upload, GENERAL)

        if not camera.active:
            if st.button("📷 Use Camera", use_container_width=True):
                camera.start()
                st.rerun()
        else:
            webrtc_ctx = webrtc_streamer(
                key="age-camera",
                video_processor_factory=FrameGrabber,
                media_stream_constraints={"video": True, "audio": False},
                desired_playing_state=st.session_state.get(CAMERA_PLAYING_KEY, False),
            )
            capture_col, cancel_col = st.columns(2)
            with capture_col:
                if st.button("📸 Capture", type="primary", use_container_width=True):
                    processor = webrtc_ctx.video_processor
                    png = camera.capture(processor.latest_frame if processor else lambda: None)
                    if png is None:
                        st.warning("Camera is not ready yet. Please try again.")
                    else:
                        analyze(
                            detector,
                            UploadRequest(filename="captured.png", content_type="image/png", data=png),
                            CAPTURE,
                        )
                    st.rerun()
            with cancel_col:
                if st.button("✖️ Cancel", use_container_width=True):
                    camera.stop()
                    st.rerun()

        if detector.selected_image is not None:
            st.image(detector.selected_image.data, caption=detector.selected_image.filename, use_container_width=True)

    with col2:
        st.header("📊 Result")

        if detector.state is LoadingState.SUCCESS and detector.result is not None:
            render_result(detector.result)
            if st.button("🔄 Analyze Another Photo", use_container_width=True):
                reset_all(detector, camera)
                st.rerun()
        elif detector.state is LoadingState.ERROR:
            st.error(f"❌ {detector.error}")
            if st.button("Try Again", use_container_width=True):
                detector.dismiss_error()
                st.session_state.last_upload_key = None
                st.rerun()
        else:
            st.info("Select or capture a photo to get started.")


if __name__ == "__main__":
    main()

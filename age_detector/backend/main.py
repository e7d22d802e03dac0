"""FastAPI backend that validates uploads and forwards them for age detection."""
import logging
from typing import Optional

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from age_detector.backend.errors import ForwarderError, ValidationError
from age_detector.backend.forwarder import AgeForwarder, UploadRequest
from age_detector.backend.origin import AllowListOriginPolicy, OriginGuardMiddleware
from age_detector.backend.schemas import (
    ApiInfoResponse,
    DetectionResponse,
    ErrorResponse,
    HealthResponse,
)
from age_detector.config.settings import (
    ALLOWED_ORIGINS,
    ALLOWED_TYPES,
    API_VERSION,
    LOG_FORMAT,
    LOG_LEVEL,
    MAX_FILE_SIZE,
    PYTHON_API_URL,
)

# Configure logging
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(title="Age Detection API", version=API_VERSION)
app.add_middleware(OriginGuardMiddleware, policy=AllowListOriginPolicy(ALLOWED_ORIGINS))

# Global forwarder instance
_forwarder: Optional[AgeForwarder] = None


def get_forwarder() -> AgeForwarder:
    """Get or create the process-wide forwarder."""
    global _forwarder
    if _forwarder is None:
        _forwarder = AgeForwarder()
        logger.info(f"Forwarding predictions to {_forwarder.config.endpoint_url}")
    return _forwarder


@app.exception_handler(ForwarderError)
async def forwarder_error_handler(request: Request, exc: ForwarderError):
    """Render typed failures as short messages; diagnostics stay in the log."""
    body = ErrorResponse(error=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """A form field that is not a file upload counts as a missing image."""
    logger.warning(f"Rejected request body: {exc.errors()}")
    return await forwarder_error_handler(request, ValidationError("No image file provided"))


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Age Detection API",
        "version": API_VERSION,
        "endpoints": {
            "health": "/health",
            "detect_age": "/api/detect-age",
            "docs": "/docs",
            "redoc": "/redoc"
        },
        "status": "running"
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        message="API is running",
        upstream=PYTHON_API_URL,
    )


@app.get("/api/detect-age", response_model=ApiInfoResponse)
async def detect_age_info():
    """Describe the detect-age endpoint."""
    return ApiInfoResponse(
        message="Age Detection API",
        version=API_VERSION,
        methods=["POST"],
        maxFileSize=f"{MAX_FILE_SIZE // (1024 * 1024)}MB",
        supportedFormats=list(ALLOWED_TYPES),
    )


@app.post("/api/detect-age", response_model=DetectionResponse)
async def detect_age(
    image: Optional[UploadFile] = File(None),
    forwarder: AgeForwarder = Depends(get_forwarder),
):
    """Validate an uploaded image and return the normalized age prediction.

    Args:
        image: Uploaded image file (multipart field ``image``)

    Returns:
        Detection response wrapping the canonical prediction
    """
    if image is None:
        raise ValidationError("No image file provided")

    try:
        contents = await image.read()
        upload = UploadRequest(
            filename=image.filename or "upload",
            content_type=image.content_type or "",
            data=contents,
        )
        prediction = await run_in_threadpool(forwarder.submit, upload)
        return DetectionResponse(result=prediction)

    except ForwarderError:
        raise
    except Exception as e:
        logger.error(f"API Route Error: {e}", exc_info=True)
        raise ForwarderError()


if __name__ == "__main__":
    import uvicorn
    from age_detector.config.settings import API_HOST, API_PORT

    uvicorn.run(app, host=API_HOST, port=API_PORT)

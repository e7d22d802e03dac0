"""Typed errors raised while validating and forwarding an upload."""
from typing import Optional


class ForwarderError(Exception):
    """Base class for errors surfaced to the caller as a short message."""

    status_code = 500
    user_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.user_message
        self.details = details
        super().__init__(self.message)


class ValidationError(ForwarderError):
    """Raised when the upload is missing, of the wrong type, too large or not an image."""

    status_code = 400
    user_message = "Invalid image upload."


class ForbiddenOriginError(ForwarderError):
    """Raised when the request origin is absent or not on the allow-list."""

    status_code = 403
    user_message = "You don't have permission to access this resource."


class UpstreamTimeoutError(ForwarderError):
    """Raised when the prediction service does not answer within the timeout."""

    status_code = 408
    user_message = "Request timeout. Please try again."


class UpstreamError(ForwarderError):
    """Raised when the prediction service answers with a non-2xx status."""

    user_message = "Failed to process image"

    def __init__(self, upstream_status: int, message: Optional[str] = None):
        self.upstream_status = upstream_status
        details = "Internal server error" if upstream_status == 500 else "API unavailable"
        super().__init__(message, details=details)

    @property
    def status_code(self) -> int:
        # 3xx and success envelopes with success=false are reported as a bad gateway
        return self.upstream_status if self.upstream_status >= 400 else 502


class MalformedResponseError(ForwarderError):
    """Raised when a successful upstream response lacks the prediction fields."""

    status_code = 502
    user_message = "Invalid response from AI service"


class ServiceUnavailableError(ForwarderError):
    """Raised when the prediction service cannot be reached at all."""

    status_code = 503
    user_message = "Unable to connect to AI service. Please try again later."

"""Same-origin guard for the /api routes."""
import logging
from typing import Iterable, Optional, Protocol

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from age_detector.backend.errors import ForbiddenOriginError

logger = logging.getLogger(__name__)


class OriginPolicy(Protocol):
    """Decides whether a request origin may use the API."""

    def allows(self, origin: Optional[str]) -> bool:
        ...


def normalize_origin(origin: str) -> str:
    return origin.strip().rstrip("/").lower()


class AllowListOriginPolicy:
    """Accepts only origins that exactly match one of a fixed list."""

    def __init__(self, allowed_origins: Iterable[str]):
        self.allowed_origins = frozenset(normalize_origin(o) for o in allowed_origins if o)

    def allows(self, origin: Optional[str]) -> bool:
        if not origin:
            return False
        return normalize_origin(origin) in self.allowed_origins


def forbidden_response(error: ForbiddenOriginError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"error": "Unauthorized", "message": error.message},
    )


class OriginGuardMiddleware(BaseHTTPMiddleware):
    """Rejects requests to protected paths before any other processing."""

    def __init__(self, app, policy: OriginPolicy, protected_prefix: str = "/api"):
        super().__init__(app)
        self.policy = policy
        self.protected_prefix = protected_prefix

    async def dispatch(self, request, call_next):
        if request.url.path.startswith(self.protected_prefix):
            origin = request.headers.get("origin")
            if not self.policy.allows(origin):
                logger.warning(f"Rejected {request.method} {request.url.path} from origin {origin!r}")
                return forbidden_response(ForbiddenOriginError())
        return await call_next(request)

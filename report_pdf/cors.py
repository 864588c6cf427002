"""CORS headers for an allow-list of caller origins."""

from typing import Iterable

from starlette.datastructures import MutableHeaders
from starlette.middleware.base import BaseHTTPMiddleware

ALLOW_METHODS = "POST, OPTIONS"
ALLOW_HEADERS = "Content-Type"
MAX_AGE_SECONDS = "86400"


def apply_cors_headers(origin: str, headers: MutableHeaders, allowed_origins: Iterable[str]) -> None:
    """
    Add CORS headers to a response.

    Allowed origins are echoed back with Vary: Origin. Methods, headers and
    preflight lifetime are advertised on every response.
    """
    if origin and origin in allowed_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers.add_vary_header("Origin")
    headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
    headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
    headers["Access-Control-Max-Age"] = MAX_AGE_SECONDS


class AllowListCORSMiddleware(BaseHTTPMiddleware):
    """Applies apply_cors_headers to success and error responses alike."""

    def __init__(self, app, allowed_origins: Iterable[str] = ()):
        super().__init__(app)
        self.allowed_origins = frozenset(allowed_origins)

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        apply_cors_headers(request.headers.get("origin", ""), response.headers, self.allowed_origins)
        return response

"""Security headers and HTTPS enforcement."""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from onboarding.config import settings

BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    # The wizard needs the map pin and the ID camera, nothing else
    "Permissions-Policy": "geolocation=(self), camera=(self), microphone=(), payment=()",
}

PRODUCTION_HEADERS = {
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    "Content-Security-Policy": (
        "default-src 'self'; img-src 'self' data: https:; "
        "frame-ancestors 'none'; base-uri 'self'; form-action 'self';"
    ),
}

# Responses under these prefixes carry applicant data or resume tokens
NO_STORE_PREFIXES = ("/api/applications", "/api/admin")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(BASE_HEADERS)
        if settings.environment == "production":
            response.headers.update(PRODUCTION_HEADERS)
        if request.url.path.startswith(NO_STORE_PREFIXES):
            response.headers["Cache-Control"] = "no-store"
        return response


class HTTPSRedirectMiddleware(BaseHTTPMiddleware):
    """Redirect plain HTTP to HTTPS (always on in production)."""

    def __init__(self, app, force_https: bool = False):
        super().__init__(app)
        self.force_https = force_https or settings.environment == "production"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self.force_https and request.url.scheme == "http":
            return RedirectResponse(url=str(request.url.replace(scheme="https")), status_code=301)
        return await call_next(request)

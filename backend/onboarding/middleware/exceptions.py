"""Application error types and the handlers that render them.

Every error response shares one envelope:

    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable error message",
            "details": {...}  // optional
        }
    }

Not-found and illegal-transition responses carry fixed messages and never
include record state.
"""

import logging
from typing import Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import DBAPIError, DisconnectionError, IntegrityError, InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class OnboardingException(Exception):
    """Base exception for onboarding application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Union[dict, list, None] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ApplicationNotFoundError(OnboardingException):
    """Unknown public id or resume token.

    The message never varies with the lookup key or the reason, so a
    near-miss token is indistinguishable from one that never existed.
    """

    def __init__(self):
        super().__init__(
            message="Application not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="APPLICATION_NOT_FOUND",
        )


class StepValidationError(OnboardingException):
    """One or more step gates failed.

    ``incomplete_steps`` holds step keys (e.g. "package", "signature");
    ``errors`` holds per-field conditions ("package.package_type: ...").
    """

    def __init__(
        self,
        incomplete_steps: list[str],
        errors: list[str] | None = None,
        message: str = "Application is incomplete",
    ):
        self.incomplete_steps = list(incomplete_steps)
        self.errors = list(errors or [])
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_FAILED",
            details={
                "incomplete_steps": self.incomplete_steps,
                "errors": self.errors,
            },
        )


class IllegalTransitionError(OnboardingException):
    """Lifecycle change not permitted from the current status."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(
            message="Application cannot continue from its current state",
            status_code=status.HTTP_409_CONFLICT,
            error_code="ILLEGAL_TRANSITION",
        )


# Backend failures the record store retries before giving up
TRANSIENT_STORE_ERRORS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    ConnectionError,
    TimeoutError,
)


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    """Render the shared error envelope."""
    error = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def _context(request: Request, **extra) -> dict:
    return {"path": request.url.path, "method": request.method, **extra}


async def onboarding_exception_handler(request: Request, exc: OnboardingException) -> JSONResponse:
    context = _context(request, error_code=exc.error_code)
    if isinstance(exc, IllegalTransitionError):
        # Only the log sees the real states
        context.update(current_status=exc.current, target_status=exc.target)
    logger.warning("%s on %s: %s", exc.error_code, request.url.path, exc.message, extra=context)
    return create_error_response(exc.status_code, exc.message, exc.error_code, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Auth failures (401/403), unknown routes, and other framework HTTP errors."""
    if exc.status_code >= 500:
        logger.error("HTTP %s: %s", exc.status_code, exc.detail, extra=_context(request))
    response = create_error_response(
        exc.status_code, str(exc.detail), error_code=f"HTTP_{exc.status_code}"
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Malformed request bodies: unknown fields, wrong types, bad enum values."""
    logger.info("Request validation failed on %s", request.url.path, extra=_context(request))
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Constraint violations that escaped the store (e.g. repeated id collisions)."""
    logger.error("Integrity error on %s: %s", request.url.path, exc.orig, extra=_context(request))
    return create_error_response(
        status.HTTP_409_CONFLICT,
        "Application could not be saved. Please try again.",
        error_code="CONFLICT",
    )


async def store_unavailable_handler(
    request: Request,
    exc: Union[DBAPIError, DisconnectionError],
) -> JSONResponse:
    """Transient store failures that outlasted the retry policy."""
    logger.error("Store unavailable on %s: %s", request.url.path, exc, extra=_context(request))
    return create_error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Service temporarily unavailable. Please try again.",
        error_code="DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s", request.url.path, extra=_context(request))
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register all error handlers with the FastAPI app."""
    app.add_exception_handler(OnboardingException, onboarding_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    for exc_type in (OperationalError, InterfaceError, DisconnectionError):
        app.add_exception_handler(exc_type, store_unavailable_handler)
    app.add_exception_handler(Exception, general_exception_handler)

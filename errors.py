"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to the ``{success: false, error, errors, code}``
JSON shape, adds ``Retry-After`` for rate limits and clears the access
session cookie when the error asks for it.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

GENERIC_RETRY_MESSAGE = "Something went wrong. Please try again."


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing."""


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"
    clear_session_cookie: bool = False

    def __init__(
        self,
        message: str,
        *,
        errors: Optional[list[str]] = None,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors if errors else [message]
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {
            "success": False,
            "error": self.message,
            "errors": list(self.errors),
            "code": self.error_code,
        }
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload

    def headers(self) -> Optional[dict[str, str]]:
        return None


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class InvalidCodeError(AppError):
    """OTP rejected. One message for every cause, so nothing is enumerable."""

    status_code = 400
    error_code = "invalid_code"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class SessionRevokedError(AuthenticationError):
    """The session was well-formed but no longer grants access to the record."""

    error_code = "session_revoked"
    clear_session_cookie = True


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, message: str, *, retry_after_seconds: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after_seconds = retry_after_seconds

    def headers(self) -> Optional[dict[str, str]]:
        if self.retry_after_seconds > 0:
            return {"Retry-After": str(self.retry_after_seconds)}
        return None


class ServiceUnavailableError(AppError):
    status_code = 503
    error_code = "service_unavailable"


def _clear_session_cookie(request: Request, response: JSONResponse) -> None:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        return
    response.delete_cookie(
        settings.access.cookie_name,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        response = JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers()
        )
        if exc.clear_session_cookie:
            _clear_session_cookie(request, response)
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Never echo pydantic internals back to the caller
        error = ValidationError("Invalid request body.")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": GENERIC_RETRY_MESSAGE,
                "errors": [GENERIC_RETRY_MESSAGE],
                "code": "internal_error",
            },
        )

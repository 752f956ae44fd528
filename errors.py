"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

OTP rejections all share one status, code and message so a caller cannot
tell "no code was issued" from "wrong code"; the subclass and its ``reason``
exist for logging only.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

INVALID_OTP_MESSAGE = "Invalid or expired OTP"


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    @property
    def headers(self) -> Optional[dict[str, str]]:
        return None

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class WeakPasswordError(ValidationError):
    error_code = "weak_password"


class RateLimitError(AppError):
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, message: str, *, retry_after: int) -> None:
        super().__init__(message, details={"retry_after": retry_after})
        self.retry_after = retry_after

    @property
    def headers(self) -> Optional[dict[str, str]]:
        return {"Retry-After": str(self.retry_after)}


class OtpInvalidError(AppError):
    """Any OTP rejection. Rendered identically regardless of the cause."""

    status_code = 400
    error_code = "invalid_otp"
    reason: str = "invalid"

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(INVALID_OTP_MESSAGE)
        if reason is not None:
            self.reason = reason


class OtpNotFoundError(OtpInvalidError):
    reason = "not_found"


class OtpExpiredError(OtpInvalidError):
    reason = "expired"


class OtpAlreadyUsedError(OtpInvalidError):
    reason = "already_used"


class OtpAttemptsExhaustedError(OtpInvalidError):
    reason = "attempts_exhausted"


class OtpMismatchError(OtpInvalidError):
    reason = "invalid_code"


class AccountNotFoundError(OtpInvalidError):
    reason = "account_not_found"


class GatewayError(AppError):
    status_code = 500
    error_code = "gateway_error"


class CredentialUpdateError(AppError):
    status_code = 500
    error_code = "credential_update_failed"


class PersistenceError(AppError):
    status_code = 500
    error_code = "persistence_failure"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Malformed bodies are a 400 like every other validation failure
        error = ValidationError("Invalid request body")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )

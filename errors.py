"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.
Malformed click series query parameters are reported the same way as
window parameters the window query layer rejects.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


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


class InvalidWindowParametersError(ValidationError):
    """Window length, offset or bucket width rejected before querying."""

    error_code = "invalid_window_parameters"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class SubjectNotFoundError(NotFoundError):
    """No profile with the given id. Raised on read paths only."""

    error_code = "subject_not_found"


class StoreUnavailableError(AppError):
    """The counter store or profile store failed to answer."""

    status_code = 503
    error_code = "store_unavailable"


class QueryTimeoutError(AppError):
    status_code = 504
    error_code = "query_timeout"


# Click series query parameter -> window parameter name
_WINDOW_QUERY_FIELDS = {
    "bucket": "bucket_width",
    "window": "window_length",
    "offset": "offset",
}


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        for error in exc.errors():
            loc = tuple(error.get("loc", ()))
            if len(loc) == 2 and loc[0] == "query" and loc[1] in _WINDOW_QUERY_FIELDS:
                field = _WINDOW_QUERY_FIELDS[loc[1]]
                err = InvalidWindowParametersError(
                    f"{field}: {error.get('msg', 'invalid value')}", field=field
                )
                return JSONResponse(status_code=err.status_code, content=err.to_dict())
        return await request_validation_exception_handler(request, exc)

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

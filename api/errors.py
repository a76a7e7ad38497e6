"""
API error hierarchy and the FastAPI exception handlers that turn it into
the uniform error envelope::

    {"statusCode": 409, "message": "...", "success": false, "errors": [...]}

Every handler-level failure is raised as an ``ApiError`` subclass at the
point of detection; nothing is retried or partially recovered.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.middleware import REQUEST_ID_HEADER, get_request_id
from config.settings import config

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors that map onto an HTTP error envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[Any]] = None,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.errors = errors or []
        self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "statusCode": self.status_code,
            "message": self.message,
            "success": False,
            "errors": self.errors,
        }
        if self.code:
            body["code"] = self.code
        return body


class ValidationError(ApiError):
    """Missing or blank input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ConflictError(ApiError):
    """A unique field is already taken."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class UploadError(ApiError):
    """The external avatar upload failed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Failed to upload file"


class NotFoundError(ApiError):
    # 400 rather than 404 so login failures share one status code.
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource does not exist"


class AuthError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid credentials"


class UnauthorizedError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"


class InternalError(ApiError):
    """
    Unexpected persistence or token failure.

    The message stays generic; ``code`` identifies the failing step so it
    can be correlated with the server log without leaking details.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"


# ── Handlers ───────────────────────────────────────────────────────────


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "[%s] %s %s failed [%s]: %s", get_request_id(request),
            request.method, request.url.path, exc.code or "-", exc.message,
        )
    else:
        logger.info(
            "[%s] %s %s rejected (%d): %s", get_request_id(request),
            request.method, request.url.path, exc.status_code, exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        or err.get("msg", "")
        for err in exc.errors()
    ]
    return await api_error_handler(
        request, ValidationError("Invalid request payload", errors)
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    error = ApiError(str(exc.detail), status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error.to_dict(),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = get_request_id(request)
    logger.exception(
        "[%s] Unhandled error on %s %s", request_id, request.method, request.url.path
    )
    error = InternalError(
        "An unexpected error occurred",
        [repr(exc)] if config.debug else [],
        code="UNHANDLED",
    )
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict(),
        headers={REQUEST_ID_HEADER: request_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-producing handlers on *app*."""
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

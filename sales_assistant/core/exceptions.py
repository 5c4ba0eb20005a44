"""Application exception classes and handlers."""

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sales_assistant.schemas.response_schema import error_body

logger = structlog.get_logger()


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


# --- Bad Request (400) ---


class ValidationFailedError(AppException):
    """Request body passed schema validation but breaks a business rule."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="VALIDATION_FAILED", status_code=400)


# --- Authentication (401) ---


class AuthenticationError(AppException):
    """Base authentication error."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message=message, code="UNAUTHORIZED", status_code=401)


class InvalidSessionError(AppException):
    """Session cookie could not be decoded or lacks a user email."""

    def __init__(self) -> None:
        super().__init__(
            message="Invalid session",
            code="INVALID_SESSION",
            status_code=401,
        )


# --- Authorization (403) ---


class AuthorizationError(AppException):
    """Insufficient permissions."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message=message, code="FORBIDDEN", status_code=403)


# --- Not Found (404) ---


class ConversationNotFoundError(AppException):
    """Conversation does not exist (deleted or expired)."""

    def __init__(self) -> None:
        super().__init__(
            message="Conversation not found",
            code="CONVERSATION_NOT_FOUND",
            status_code=404,
        )


# --- Store (500 / 503) ---


class StoreConfigurationError(AppException):
    """Key-value store credentials are missing or used outside the server."""

    def __init__(self, message: str = "Redis configuration is incomplete") -> None:
        super().__init__(message=message, code="STORE_MISCONFIGURED", status_code=500)


class StoreUnavailableError(AppException):
    """Key-value store operation failed."""

    def __init__(self) -> None:
        super().__init__(
            message="Conversation store is unavailable, please retry",
            code="STORE_UNAVAILABLE",
            status_code=503,
        )


# --- Exception Handlers ---


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Central exception handler for AppException."""
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            path=request.url.path,
            code=exc.code,
            error=exc.message,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.message, exc.code),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation errors in the common error shape."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content=error_body(
            422,
            f"{location}: {detail}" if location else detail,
            "VALIDATION_ERROR",
        ),
    )

"""Response envelopes shared by every JSON endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Error body: status, human-readable message and machine code."""

    status: int
    message: str
    code: str


class ApiResponse(BaseModel, Generic[T]):
    """Success body wrapping the endpoint payload in ``data``."""

    status: int = 200
    message: str = "Success"
    data: T | None = None


ERROR_RESPONSES: dict[int | str, dict] = {
    401: {"model": ErrorResponse, "description": "Missing or invalid session"},
    403: {"model": ErrorResponse, "description": "Conversation owned by another user"},
    404: {"model": ErrorResponse, "description": "Conversation not found"},
    503: {"model": ErrorResponse, "description": "Conversation store unavailable"},
}


def success_response(data: T, status: int = 200, message: str = "Success") -> dict:
    """Build the success envelope returned by endpoints."""
    return {"status": status, "message": message, "data": data}


def error_body(status: int, message: str, code: str) -> dict:
    """Build the error envelope used by handlers and middleware."""
    return ErrorResponse(status=status, message=message, code=code).model_dump()

"""Request rate limiting."""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from sales_assistant.schemas.response_schema import error_body


def session_or_address(request: Request) -> str:
    """Rate-limit per session user, falling back to the client address."""
    email = getattr(request.state, "user_email", None)
    return email or get_remote_address(request)


limiter = Limiter(key_func=session_or_address)


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Custom handler for rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content=error_body(429, "Rate limit exceeded", "RATE_LIMIT_EXCEEDED"),
    )

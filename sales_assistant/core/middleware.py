"""ASGI session middleware."""

import json

import structlog
from starlette.requests import cookie_parser
from starlette.types import ASGIApp, Receive, Scope, Send

from sales_assistant.core.config import settings
from sales_assistant.core.exceptions import InvalidSessionError
from sales_assistant.core.security import decode_session_cookie
from sales_assistant.schemas.response_schema import error_body

logger = structlog.get_logger()

PUBLIC_PATHS: set[str] = {
    "",
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


class SessionMiddleware:
    """Pure ASGI middleware validating the session cookie (SSE-compatible).

    Rejected requests are answered here, before any router, model or tool
    is reached.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "")
        if method == "OPTIONS":
            await self.app(scope, receive, send)
            return

        path = scope["path"]
        normalized = path.rstrip("/") or "/"
        if normalized in PUBLIC_PATHS or path.startswith(("/docs", "/redoc")):
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        cookies = cookie_parser(headers.get(b"cookie", b"").decode("latin-1"))
        cookie_value = cookies.get(settings.chat.session_cookie_name)

        if not cookie_value:
            await self._send_error(send, 401, "UNAUTHORIZED", "Unauthorized")
            return

        try:
            email = decode_session_cookie(cookie_value)
        except InvalidSessionError:
            logger.info("Rejected invalid session cookie", path=path)
            await self._send_error(send, 401, "INVALID_SESSION", "Invalid session")
            return

        scope.setdefault("state", {})
        scope["state"]["user_email"] = email

        await self.app(scope, receive, send)

    @staticmethod
    async def _send_error(send: Send, status: int, code: str, message: str) -> None:
        """Send a JSON error response directly."""
        body = json.dumps(error_body(status, message, code)).encode()

        await send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode()],
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})

"""Session cookie decoding."""

import base64
import binascii
import json
from typing import Any
from urllib.parse import unquote

from sales_assistant.core.exceptions import InvalidSessionError


def decode_session_cookie(value: str) -> str:
    """Decode a ``beyond_ai_session`` cookie value and return the user email.

    The cookie is URL-encoded base64 of a JSON document shaped like
    ``{"user": {"email": ...}, ...}``.

    Raises:
        InvalidSessionError: If the value cannot be decoded or has no email.
    """
    try:
        raw = base64.b64decode(unquote(value), validate=False)
        payload: Any = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise InvalidSessionError() from exc

    user = payload.get("user") if isinstance(payload, dict) else None
    email = user.get("email") if isinstance(user, dict) else None
    if not isinstance(email, str) or not email:
        raise InvalidSessionError()
    return email


def encode_session_cookie(email: str, **extra: Any) -> str:
    """Build a cookie value for ``email`` (used by tooling and tests)."""
    payload = {"user": {"email": email, **extra}}
    return base64.b64encode(json.dumps(payload).encode()).decode()

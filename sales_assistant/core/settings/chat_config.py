"""Chat orchestration configuration."""

from pydantic import BaseModel


class ChatConfig(BaseModel, frozen=True):
    """Limits applied to each chat request."""

    max_steps: int
    max_duration_seconds: int
    rate_limit: str
    session_cookie_name: str
    timezone: str

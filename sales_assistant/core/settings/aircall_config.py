"""Aircall API configuration."""

from pydantic import BaseModel, SecretStr


class AircallConfig(BaseModel, frozen=True):
    """Aircall basic-auth settings."""

    api_id: str
    api_token: SecretStr
    base_url: str

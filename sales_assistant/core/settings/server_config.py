"""Uvicorn server configuration."""

from pydantic import BaseModel


class ServerConfig(BaseModel, frozen=True):
    """Bind address used by the ``sales-assistant`` entry point."""

    host: str
    port: int
    reload: bool = False

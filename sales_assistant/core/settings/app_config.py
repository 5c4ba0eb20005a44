"""Application environment configuration."""

from typing import Literal

from pydantic import BaseModel

APP_VERSION = "0.1.0"


class AppConfig(BaseModel, frozen=True):
    """Application environment settings."""

    name: str
    env: Literal["development", "staging", "production"]
    debug: bool
    cors_origins: str = ""

    @property
    def version(self) -> str:
        return APP_VERSION

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env == "development"

    @property
    def allowed_origins(self) -> list[str]:
        """Browser origins allowed to call the API with the session cookie.

        Development accepts any origin; other environments only the
        comma-separated ``CORS_ORIGINS`` entries.
        """
        if self.is_development:
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

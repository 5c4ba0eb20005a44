"""Salesforce API configuration."""

from pydantic import BaseModel, SecretStr


class SalesforceConfig(BaseModel, frozen=True):
    """Salesforce OAuth client-credentials settings."""

    client_id: str
    client_secret: SecretStr
    login_url: str
    api_version: str
    closed_stages: str

    @property
    def closed_stages_list(self) -> list[str]:
        """Get closed stage names as a list."""
        return [stage.strip() for stage in self.closed_stages.split(",") if stage.strip()]

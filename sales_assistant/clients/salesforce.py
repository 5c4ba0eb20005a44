"""Salesforce REST API client using the OAuth 2.0 client-credentials flow."""

import time
from typing import Any

import httpx
import structlog

from sales_assistant.core.settings import SalesforceConfig

logger = structlog.get_logger()

TOKEN_LIFETIME_SECONDS = 60 * 60
TOKEN_REFRESH_MARGIN_SECONDS = 5 * 60


class SalesforceError(RuntimeError):
    """Raised when Salesforce rejects a request or is misconfigured."""


def soql_literal(value: str) -> str:
    """Quote a string for use inside a SOQL WHERE clause."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def soql_list(values: list[str]) -> str:
    """Render a parenthesised SOQL ``IN`` list."""
    return "(" + ", ".join(soql_literal(v) for v in values) + ")"


class SalesforceClient:
    """Thin async wrapper over the Salesforce REST API.

    The access token is cached for an hour. Each request opens a short-lived
    ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        config: SalesforceConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._config = config
        self._transport = transport
        self._timeout = timeout
        self._token: str | None = None
        self._instance_url: str | None = None
        self._expires_at = 0.0

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def clear_token(self) -> None:
        self._token = None
        self._instance_url = None
        self._expires_at = 0.0

    async def authenticate(self) -> tuple[str, str]:
        """Return ``(access_token, instance_url)``, refreshing when needed."""
        if (
            self._token
            and self._instance_url
            and time.monotonic() < self._expires_at - TOKEN_REFRESH_MARGIN_SECONDS
        ):
            return self._token, self._instance_url

        client_secret = self._config.client_secret.get_secret_value()
        if not self._config.client_id or not client_secret:
            raise SalesforceError(
                "Missing SALESFORCE_CLIENT_ID or SALESFORCE_CLIENT_SECRET"
            )

        async with self._http() as client:
            response = await client.post(
                f"{self._config.login_url}/services/oauth2/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._config.client_id,
                    "client_secret": client_secret,
                },
            )
        if response.status_code != 200:
            logger.error(
                "Salesforce authentication failed",
                status=response.status_code,
                body=response.text[:500],
            )
            raise SalesforceError(
                f"Salesforce authentication failed: {response.status_code}"
            )

        data = response.json()
        self._token = data["access_token"]
        self._instance_url = data["instance_url"]
        self._expires_at = time.monotonic() + TOKEN_LIFETIME_SECONDS
        return self._token, self._instance_url

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        retry_on_unauthorized: bool = True,
    ) -> httpx.Response:
        token, instance_url = await self.authenticate()
        url = f"{instance_url}/services/data/{self._config.api_version}{path}"
        async with self._http() as client:
            response = await client.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )

        if response.status_code == 401 and retry_on_unauthorized:
            self.clear_token()
            return await self._request(
                method, path, params=params, json=json, retry_on_unauthorized=False
            )
        if response.status_code >= 400:
            logger.error(
                "Salesforce request failed",
                method=method,
                path=path,
                status=response.status_code,
                body=response.text[:500],
            )
            raise SalesforceError(
                f"Salesforce request failed: {response.status_code}"
            )
        return response

    async def query(self, soql: str) -> list[dict[str, Any]]:
        """Run a SOQL query and return its records."""
        response = await self._request("GET", "/query", params={"q": " ".join(soql.split())})
        return list(response.json().get("records", []))

    async def update(self, sobject: str, record_id: str, fields: dict[str, Any]) -> None:
        """Patch fields on an existing record."""
        await self._request("PATCH", f"/sobjects/{sobject}/{record_id}", json=fields)

    async def create(self, sobject: str, fields: dict[str, Any]) -> str:
        """Insert a record and return its id."""
        response = await self._request("POST", f"/sobjects/{sobject}", json=fields)
        return str(response.json()["id"])

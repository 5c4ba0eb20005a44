"""Unit tests for the Salesforce REST client."""

from urllib.parse import parse_qs

import httpx
import pytest
from pydantic import SecretStr

from sales_assistant.clients.salesforce import (
    SalesforceClient,
    SalesforceError,
    soql_list,
    soql_literal,
)
from sales_assistant.core.settings import SalesforceConfig

INSTANCE = "https://example.my.salesforce.com"


def _config(client_id: str = "cid", secret: str = "csecret") -> SalesforceConfig:
    return SalesforceConfig(
        client_id=client_id,
        client_secret=SecretStr(secret),
        login_url="https://login.salesforce.com",
        api_version="v59.0",
        closed_stages="Agreement Signed,Closed Won",
    )


class FakeSalesforce:
    """Records requests and answers like the Salesforce REST API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_calls = 0
        self.unauthorized_once = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/services/oauth2/token":
            self.token_calls += 1
            return httpx.Response(
                200,
                json={"access_token": f"token-{self.token_calls}", "instance_url": INSTANCE},
            )
        if self.unauthorized_once:
            self.unauthorized_once = False
            return httpx.Response(401, json=[{"errorCode": "INVALID_SESSION_ID"}])
        if request.method == "GET" and request.url.path.endswith("/query"):
            return httpx.Response(200, json={"records": [{"Id": "001"}], "done": True})
        if request.method == "POST":
            return httpx.Response(201, json={"id": "a0B1", "success": True})
        if request.method == "PATCH":
            return httpx.Response(204)
        return httpx.Response(404)


@pytest.fixture
def fake() -> FakeSalesforce:
    return FakeSalesforce()


@pytest.fixture
def client(fake: FakeSalesforce) -> SalesforceClient:
    return SalesforceClient(_config(), transport=httpx.MockTransport(fake))


class TestSoqlQuoting:
    def test_escapes_quotes_and_backslashes(self) -> None:
        assert soql_literal("O'Brien\\") == "'O\\'Brien\\\\'"

    def test_renders_in_list(self) -> None:
        assert soql_list(["New", "Won"]) == "('New', 'Won')"


class TestAuthentication:
    async def test_posts_client_credentials(
        self, client: SalesforceClient, fake: FakeSalesforce
    ) -> None:
        token, instance_url = await client.authenticate()

        assert token == "token-1"
        assert instance_url == INSTANCE
        form = parse_qs(fake.requests[0].content.decode())
        assert form == {
            "grant_type": ["client_credentials"],
            "client_id": ["cid"],
            "client_secret": ["csecret"],
        }

    async def test_token_is_cached(
        self, client: SalesforceClient, fake: FakeSalesforce
    ) -> None:
        await client.query("SELECT Id FROM Lead")
        await client.query("SELECT Id FROM Lead")

        assert fake.token_calls == 1

    async def test_missing_credentials(self, fake: FakeSalesforce) -> None:
        client = SalesforceClient(_config(secret=""), transport=httpx.MockTransport(fake))

        with pytest.raises(SalesforceError, match="SALESFORCE_CLIENT_ID"):
            await client.authenticate()
        assert fake.requests == []

    async def test_failed_token_request(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(400, text="bad"))
        client = SalesforceClient(_config(), transport=transport)

        with pytest.raises(SalesforceError, match="authentication failed"):
            await client.authenticate()


class TestRequests:
    async def test_query_collapses_whitespace_and_returns_records(
        self, client: SalesforceClient, fake: FakeSalesforce
    ) -> None:
        records = await client.query("SELECT Id\n    FROM Lead\n   LIMIT 5")

        assert records == [{"Id": "001"}]
        query_request = fake.requests[-1]
        assert query_request.url.path == "/services/data/v59.0/query"
        assert query_request.url.params["q"] == "SELECT Id FROM Lead LIMIT 5"
        assert query_request.headers["Authorization"] == "Bearer token-1"

    async def test_retries_once_after_unauthorized(
        self, client: SalesforceClient, fake: FakeSalesforce
    ) -> None:
        await client.authenticate()
        fake.unauthorized_once = True

        records = await client.query("SELECT Id FROM Lead")

        assert records == [{"Id": "001"}]
        assert fake.token_calls == 2
        assert fake.requests[-1].headers["Authorization"] == "Bearer token-2"

    async def test_update_patches_record(
        self, client: SalesforceClient, fake: FakeSalesforce
    ) -> None:
        await client.update("Lead", "00Q1", {"Status": "Qualified"})

        request = fake.requests[-1]
        assert request.method == "PATCH"
        assert request.url.path == "/services/data/v59.0/sobjects/Lead/00Q1"

    async def test_create_returns_id(self, client: SalesforceClient) -> None:
        assert await client.create("A_B_Note__c", {"Body__c": "hi"}) == "a0B1"

    async def test_error_status_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/services/oauth2/token":
                return httpx.Response(
                    200, json={"access_token": "t", "instance_url": INSTANCE}
                )
            return httpx.Response(400, json=[{"errorCode": "MALFORMED_QUERY"}])

        client = SalesforceClient(_config(), transport=httpx.MockTransport(handler))

        with pytest.raises(SalesforceError, match="400"):
            await client.query("SELECT")

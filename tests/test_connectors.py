"""Tests for the HTTP connectors to external services."""

import json

import httpx
import pytest

from third_party_application.config import (
    ApiPlatformEventsConfig,
    EmailConfig,
    GatewayConfig,
    SubscriptionFieldsConfig,
)
from third_party_application.connectors import (
    ApiPlatformEventsConnector,
    ApiSubscriptionFieldsConnector,
    AwsApiGatewayConnector,
    EmailConnector,
    EmailTemplates,
)
from third_party_application.models import Actor, ApiIdentifier, RateLimitTier


class RecordingTransport:
    """Mock transport that records requests and answers with a fixed status."""

    def __init__(self, status_code: int = 200, headers: dict[str, str] | None = None):
        self.status_code = status_code
        self.headers = headers or {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, headers=self.headers, json={})

    def client(self, base_url: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=base_url, transport=httpx.MockTransport(self.handler))

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


GATEWAY_CONFIG = GatewayConfig(base_url="http://gateway.test", api_key="secret-key")


@pytest.mark.asyncio
class TestAwsApiGatewayConnector:
    """Test usage plan registration."""

    async def test_create_or_update_application(self):
        transport = RecordingTransport(headers={"x-amzn-requestid": "req-1"})
        connector = AwsApiGatewayConnector(GATEWAY_CONFIG, transport.client("http://gateway.test"))

        await connector.create_or_update_application("gw-1", "server-token", RateLimitTier.GOLD)

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/usage-plans/GOLD/api-keys"
        assert request.headers["x-api-key"] == "secret-key"
        assert transport.last_json() == {"apiKeyName": "gw-1", "apiKeyValue": "server-token"}
        await connector.close()

    async def test_create_failure_raises(self):
        transport = RecordingTransport(status_code=500)
        connector = AwsApiGatewayConnector(GATEWAY_CONFIG, transport.client("http://gateway.test"))

        with pytest.raises(httpx.HTTPStatusError):
            await connector.create_or_update_application("gw-1", "token", RateLimitTier.BRONZE)

    async def test_delete_application(self):
        transport = RecordingTransport()
        connector = AwsApiGatewayConnector(GATEWAY_CONFIG, transport.client("http://gateway.test"))

        await connector.delete_application("gw-1")

        assert transport.requests[0].method == "DELETE"
        assert transport.requests[0].url.path == "/v1/api-keys/gw-1"

    async def test_delete_unknown_key_is_success(self):
        """Test a 404 from the gateway counts as already deleted."""
        transport = RecordingTransport(status_code=404)
        connector = AwsApiGatewayConnector(GATEWAY_CONFIG, transport.client("http://gateway.test"))

        await connector.delete_application("gw-unknown")

    async def test_delete_failure_raises(self):
        transport = RecordingTransport(status_code=503)
        connector = AwsApiGatewayConnector(GATEWAY_CONFIG, transport.client("http://gateway.test"))

        with pytest.raises(httpx.HTTPStatusError):
            await connector.delete_application("gw-1")


@pytest.mark.asyncio
class TestApiSubscriptionFieldsConnector:
    """Test subscription field deletion."""

    async def test_delete_subscriptions(self):
        transport = RecordingTransport(status_code=204)
        connector = ApiSubscriptionFieldsConnector(
            SubscriptionFieldsConfig(base_url="http://fields.test"),
            transport.client("http://fields.test"),
        )

        await connector.delete_subscriptions("client-1")

        assert transport.requests[0].url.path == "/field/application/client-1"

    async def test_delete_missing_is_success(self):
        transport = RecordingTransport(status_code=404)
        connector = ApiSubscriptionFieldsConnector(
            SubscriptionFieldsConfig(base_url="http://fields.test"),
            transport.client("http://fields.test"),
        )

        await connector.delete_subscriptions("client-1")


@pytest.mark.asyncio
class TestApiPlatformEventsConnector:
    """Test subscription events."""

    async def test_subscribed_event(self):
        transport = RecordingTransport(status_code=201)
        connector = ApiPlatformEventsConnector(
            ApiPlatformEventsConfig(base_url="http://events.test"),
            transport.client("http://events.test"),
        )

        sent = await connector.send_api_subscribed_event(
            "app-1", ApiIdentifier(context="hello", version="1.0"), Actor.gatekeeper("gk-1")
        )

        assert sent is True
        assert transport.requests[0].url.path == "/application-events/subscribedToApi"
        payload = transport.last_json()
        assert payload["applicationId"] == "app-1"
        assert payload["context"] == "hello"
        assert payload["version"] == "1.0"
        assert payload["actor"] == {"id": "gk-1", "actorType": "GATEKEEPER"}

    async def test_unsubscribed_event(self):
        transport = RecordingTransport(status_code=201)
        connector = ApiPlatformEventsConnector(
            ApiPlatformEventsConfig(base_url="http://events.test"),
            transport.client("http://events.test"),
        )

        await connector.send_api_unsubscribed_event(
            "app-1", ApiIdentifier(context="hello", version="1.0")
        )

        assert transport.requests[0].url.path == "/application-events/unsubscribedFromApi"
        assert "actor" not in transport.last_json()

    async def test_failure_returns_false(self):
        """Test event failures are reported as False rather than raised."""
        transport = RecordingTransport(status_code=500)
        connector = ApiPlatformEventsConnector(
            ApiPlatformEventsConfig(base_url="http://events.test"),
            transport.client("http://events.test"),
        )

        sent = await connector.send_api_subscribed_event(
            "app-1", ApiIdentifier(context="hello", version="1.0")
        )

        assert sent is False

    async def test_disabled_sends_nothing(self):
        transport = RecordingTransport()
        connector = ApiPlatformEventsConnector(
            ApiPlatformEventsConfig(base_url="http://events.test", enabled=False),
            transport.client("http://events.test"),
        )

        sent = await connector.send_api_subscribed_event(
            "app-1", ApiIdentifier(context="hello", version="1.0")
        )

        assert sent is False
        assert transport.requests == []


@pytest.mark.asyncio
class TestEmailConnector:
    """Test templated emails."""

    @pytest.fixture
    def transport(self):
        return RecordingTransport()

    @pytest.fixture
    def connector(self, transport):
        config = EmailConfig(
            base_url="http://email.test",
            dev_hub_base_url="http://devhub.test/",
            environment_name="QA",
        )
        return EmailConnector(config, transport.client("http://email.test"))

    async def test_verification_email(self, connector, transport):
        await connector.send_application_verification("admin@example.com", "code-1", "My App")

        assert transport.requests[0].url.path == "/hmrc/email"
        payload = transport.last_json()
        assert payload["to"] == ["admin@example.com"]
        assert payload["templateId"] == EmailTemplates.APPLICATION_VERIFICATION
        assert payload["force"] is False
        parameters = payload["parameters"]
        assert parameters["applicationName"] == "My App"
        assert parameters["environmentName"] == "QA"
        assert parameters["developerHubLink"] == (
            "http://devhub.test/developer/application-verification?code=code-1"
        )

    async def test_recipients_are_sorted(self, connector, transport):
        await connector.send_application_rejected(
            "My App", "Bad name", {"zed@example.com", "amy@example.com"}
        )

        payload = transport.last_json()
        assert payload["to"] == ["amy@example.com", "zed@example.com"]
        assert payload["parameters"]["reason"] == "Bad name"

    async def test_no_recipients_sends_nothing(self, connector, transport):
        await connector.send_application_approved_notification("My App", set())

        assert transport.requests == []

    async def test_collaborator_confirmation_article(self, connector, transport):
        await connector.send_added_collaborator_confirmation(
            "ADMINISTRATOR", "My App", "new@example.com"
        )

        parameters = transport.last_json()["parameters"]
        assert parameters["article"] == "an"
        assert parameters["role"] == "administrator"

    async def test_failure_raises(self):
        transport = RecordingTransport(status_code=502)
        connector = EmailConnector(
            EmailConfig(base_url="http://email.test", dev_hub_base_url="http://devhub.test"),
            transport.client("http://email.test"),
        )

        with pytest.raises(httpx.HTTPStatusError):
            await connector.send_removed_collaborator_confirmation("My App", "dev@example.com")

"""HTTP client for the external API gateway that holds usage plans."""

import logging

import httpx

from ..config import GatewayConfig
from ..models.application import RateLimitTier

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"


class AwsApiGatewayConnector:
    """Registers application API keys against rate-limit usage plans."""

    def __init__(self, config: GatewayConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=httpx.Timeout(config.timeout_seconds),
        )

    def _headers(self) -> dict[str, str]:
        return {API_KEY_HEADER: self.config.api_key}

    async def create_or_update_application(
        self, application_name: str, server_token: str, usage_plan: RateLimitTier
    ) -> None:
        """Put the application's API key into the usage plan for its tier.

        Raises:
            httpx.HTTPError: If the gateway call fails or times out
        """
        response = await self._client.post(
            f"/v1/usage-plans/{usage_plan.value}/api-keys",
            json={"apiKeyName": application_name, "apiKeyValue": server_token},
            headers=self._headers(),
        )
        response.raise_for_status()
        request_id = response.headers.get("x-amzn-requestid")
        logger.info(
            f"Created or updated application '{application_name}' in API gateway "
            f"(usage plan {usage_plan.value}, request ID {request_id})"
        )

    async def delete_application(self, application_name: str) -> None:
        """Remove the application's API key. An unknown key counts as deleted.

        Raises:
            httpx.HTTPError: If the gateway call fails with anything but 404
        """
        response = await self._client.delete(
            f"/v1/api-keys/{application_name}", headers=self._headers()
        )
        if response.status_code == 404:
            logger.info(f"Application '{application_name}' was not registered in API gateway")
            return
        response.raise_for_status()
        logger.info(f"Deleted application '{application_name}' from API gateway")

    async def close(self) -> None:
        await self._client.aclose()

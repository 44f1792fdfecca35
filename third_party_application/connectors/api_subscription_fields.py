"""HTTP client for the API subscription fields service."""

import logging

import httpx

from ..config import SubscriptionFieldsConfig

logger = logging.getLogger(__name__)


class ApiSubscriptionFieldsConnector:
    def __init__(self, config: SubscriptionFieldsConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=httpx.Timeout(config.timeout_seconds),
        )

    async def delete_subscriptions(self, client_id: str) -> None:
        """Delete all subscription field values held for a client id.

        Raises:
            httpx.HTTPError: If the call fails with anything but 404
        """
        response = await self._client.delete(f"/field/application/{client_id}")
        if response.status_code == 404:
            return
        response.raise_for_status()
        logger.debug(f"Deleted subscription fields for client {client_id}")

    async def close(self) -> None:
        await self._client.aclose()
